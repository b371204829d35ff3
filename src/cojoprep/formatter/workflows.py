import sys
from pathlib import Path

from cojoprep.formatter.main import create_ma_inputs, create_snplist_inputs
from cojoprep.utils.main import (
    create_default_log,
    get_logger,
    close_logger,
    resolve_config,
)
from cojoprep.utils.report import console, fail, print_qc_table


MA_QC_LABELS = {
    "input_rows": "Raw rows",
    "unparseable_markers": "Unparseable markers",
    "unmatched_rows": "Rows without an index match",
    "duplicate_marker_rows": "Rows with a repeated (chr, pos)",
    "allele_mismatch_rows": "Rows with mismatching alleles",
    "flipped_rows": "Rows re-oriented to the alt allele",
    "output_rows": "Rows written",
}


# ------------------------------------------------------------
# make-ma
# ------------------------------------------------------------
def run_make_ma_direct(args, ctx=None):
    """
    Raw meta-analysis table -> GCTA-COJO .ma file, keyed on the reference
    panel's variant IDs.
    """
    config = resolve_config(getattr(args, "config", None))
    outdir = Path(args.outdir or Path.cwd())
    log_file = create_default_log("make_ma", args.sample_id, outdir / "logs")
    logger = get_logger("make_ma", log_file)

    console.print(f"\n📥 Reformatting [cyan]{args.sumstats}[/cyan] → .ma")
    try:
        result = create_ma_inputs(args, config, logger)
    except (ValueError, FileNotFoundError) as e:
        logger.error(str(e))
        fail(str(e))
        sys.exit(1)
    finally:
        close_logger(logger)

    print_qc_table(f".ma conversion — panel {result['panel_version']}", result["qc"], MA_QC_LABELS)
    if result["excluded_file"]:
        console.print(f"⚠️ Excluded rows listed in [yellow]{result['excluded_file']}[/yellow]")
    console.print(f"✅ .ma file written: [cyan]{result['ma_file']}[/cyan]")

    result["log_file"] = log_file
    if ctx is not None:
        ctx["make_ma"] = result
    return result


# ------------------------------------------------------------
# snplist
# ------------------------------------------------------------
def run_snplist_direct(args, ctx=None):
    config = resolve_config(getattr(args, "config", None))
    outdir = Path(args.outdir or Path.cwd())
    log_file = create_default_log("snplist", args.sample_id, outdir / "logs")
    logger = get_logger("snplist", log_file)

    try:
        result = create_snplist_inputs(args, config, logger)
    except (ValueError, FileNotFoundError) as e:
        logger.error(str(e))
        fail(str(e))
        sys.exit(1)
    finally:
        close_logger(logger)

    for name, absent in result["missing_from_ma"].items():
        console.print(
            f"⚠️ {name}: {len(absent)} SNP(s) absent from the .ma file; "
            "GCTA will ignore them."
        )
    console.print(f"✅ {len(result['snplists'])} conditioning list(s) written to [cyan]{outdir}[/cyan]")

    result["log_file"] = log_file
    if ctx is not None:
        ctx["snplist"] = result
    return result
