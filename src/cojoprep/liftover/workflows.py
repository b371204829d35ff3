import sys
from pathlib import Path

from cojoprep.liftover.liftover import attach_alleles, lift_intervals
from cojoprep.liftover.projector import PyLiftoverProjector, resolve_chain_file
from cojoprep.utils.io import read_table
from cojoprep.utils.main import (
    close_logger,
    create_default_log,
    get_logger,
    resolve_config,
)
from cojoprep.utils.report import console, fail, print_qc_table


QC_LABELS = {
    "input_intervals": "Input intervals",
    "output_intervals": "Output intervals",
    "unmapped": "Unmapped intervals",
    "inconsistent": "Inconsistent chain hits",
    "disallowed_contig": "Hits on disallowed contigs",
    "split_extra": "Extra hits from split intervals",
    "approx_intervals": "Approximate (symbolic/no allele) intervals",
    "dropped": "Dropped (input − output)",
}


def _setting(args, section, key):
    value = getattr(args, key, None)
    return value if value is not None else section.get(key)


def run_liftover_direct(args, ctx=None):
    """
    (chr, pos) table + variant master list -> intervals on the target build.
    """
    config = resolve_config(getattr(args, "config", None))
    section = config.get("liftover", {})
    outdir = Path(args.outdir or Path.cwd())
    log_file = create_default_log("liftover", args.sample_id, outdir / "logs")
    logger = get_logger("liftover", log_file)

    source_build = _setting(args, section, "source_build")
    target_build = _setting(args, section, "target_build")
    disallowed = args.disallowed_contigs if args.disallowed_contigs is not None else section.get("disallowed_contigs", [])
    sample = args.sample_id or Path(args.input).name.split(".")[0]
    output = Path(args.output) if args.output else outdir / f"{sample}_{target_build}.tsv"

    try:
        chain_file = Path(args.chain) if args.chain else resolve_chain_file(args.resource_folder, source_build, target_build)
        logger.info(f"Chain file: {chain_file} ({source_build} → {target_build})")

        user = read_table(args.input)
        master = read_table(args.master)
        logger.info(f"Read {user.height:,} rows from {args.input}; {master.height:,} master variants from {args.master}")

        intervals, join_qc = attach_alleles(
            user,
            master,
            chr_col=_setting(args, section, "chr_col"),
            pos_col=_setting(args, section, "pos_col"),
            master_chr_col=_setting(args, section, "master_chr_col"),
            master_pos_col=_setting(args, section, "master_pos_col"),
            master_ref_col=_setting(args, section, "master_ref_col"),
            master_alt_col=_setting(args, section, "master_alt_col"),
        )
        if join_qc["rows_without_alleles"]:
            logger.warning(f"{join_qc['rows_without_alleles']:,} rows have no allele match in the master list")

        console.print(f"\n🔁 Lifting {intervals.height:,} intervals {source_build} → {target_build}")
        lifted, qc = lift_intervals(intervals, PyLiftoverProjector(chain_file), disallowed_contigs=disallowed)

        output.parent.mkdir(parents=True, exist_ok=True)
        lifted.write_csv(output, separator="\t")
        logger.info(f"Wrote {lifted.height:,} intervals to {output}")
        log = logger.warning if qc["dropped"] > 0 else logger.info
        log(
            f"Dropped {qc['dropped']:,} of {qc['input_intervals']:,} intervals "
            f"(unmapped {qc['unmapped']:,}, disallowed contig {qc['disallowed_contig']:,}, "
            f"inconsistent {qc['inconsistent']:,}, split extra {qc['split_extra']:,})"
        )
    except (ValueError, FileNotFoundError) as e:
        logger.error(str(e))
        fail(str(e))
        sys.exit(1)
    finally:
        close_logger(logger)

    print_qc_table(f"Liftover {source_build} → {target_build}", qc, QC_LABELS)
    if qc["dropped"] > 0:
        console.print(f"⚠️ {qc['dropped']:,} interval(s) did not make it to {target_build}.")
    console.print(f"✅ Lifted table written: [cyan]{output}[/cyan]")

    outputs = {
        "lifted": str(output),
        "chain_file": str(chain_file),
        "log_file": log_file,
        "qc": {**join_qc, **qc},
    }
    if ctx is not None:
        ctx["liftover"] = outputs
    return outputs
