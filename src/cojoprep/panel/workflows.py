import sys
from pathlib import Path

from cojoprep.panel.plink_panel import build_panel
from cojoprep.utils.main import (
    array_task_id,
    close_logger,
    create_default_log,
    get_logger,
    require_executable,
    resolve_config,
)
from cojoprep.utils.report import console, fail


def run_panel_direct(args, ctx=None):
    """
    Build one chromosome of the PLINK reference panel. The chromosome comes
    from --chromosome or from the scheduler's job-array index.
    """
    config = resolve_config(getattr(args, "config", None))
    section = config.get("panel", {})
    outdir = Path(args.outdir or Path.cwd())

    chromosome = args.chromosome if args.chromosome is not None else array_task_id()
    if chromosome is None:
        fail("❌ No chromosome: pass --chromosome or run inside a job array (tasks 1-23).")
        sys.exit(1)

    bcftools = args.bcftools or section.get("bcftools", "bcftools")
    plink = args.plink or section.get("plink", "plink")
    prefix = args.prefix or section.get("prefix", "discovery_hg38")

    log_file = create_default_log("panel", f"{prefix}_chr{chromosome}", outdir / "logs")
    logger = get_logger("panel", log_file)

    console.print(f"\n🧬 Building reference panel for chromosome {chromosome}")
    try:
        require_executable(bcftools)
        require_executable(plink)
        result = build_panel(
            chromosome,
            vcf_template=args.vcf_template,
            samples=args.samples,
            outdir=outdir,
            prefix=prefix,
            update_sex=args.update_sex,
            r2_threshold=args.r2_threshold if args.r2_threshold is not None else section.get("r2_threshold", 0.3),
            maf=args.maf if args.maf is not None else section.get("maf", 0.0001),
            ld_window=section.get("ld_window", 99999),
            ld_window_r2=section.get("ld_window_r2", 0.05),
            bcftools=bcftools,
            plink=plink,
            keep_vcf=args.keep_vcf,
            logger=logger,
        )
    except (ValueError, FileNotFoundError, EnvironmentError, RuntimeError) as e:
        logger.error(str(e))
        fail(str(e))
        sys.exit(1)
    finally:
        close_logger(logger)

    console.print(f"✅ Chr {result['chromosome']} done → [cyan]{result['plink_prefix']}[/cyan]")
    console.print(f"   rsID-free copy: [cyan]{result['no_rsid_prefix']}[/cyan]")

    result["log_file"] = log_file
    if ctx is not None:
        ctx["panel"] = result
    return result
