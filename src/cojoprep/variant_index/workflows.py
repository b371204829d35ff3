import sys
from pathlib import Path

from cojoprep.utils.main import (
    create_default_log,
    get_logger,
    close_logger,
    resolve_config,
)
from cojoprep.utils.report import console, fail, print_qc_table
from cojoprep.variant_index.variant_index import (
    build_variant_index,
    collect_bim_files,
    read_bim,
    write_variant_index,
)


QC_LABELS = {
    "input_rows": "Variants read",
    "duplicate_positions": "Positions shared by several variants",
    "duplicate_rows_dropped": "Variants dropped (ambiguous position)",
    "n_variants": "Variants in index",
}


def run_variant_index_direct(args, ctx=None):
    """
    Build the (chr, pos) -> variant_id index from per-chromosome .bim files
    and persist it with its panel-version sidecar.
    """
    config = resolve_config(getattr(args, "config", None))
    outdir = Path(args.outdir or Path.cwd())
    output = Path(args.output) if args.output else outdir / f"variant_index_{args.panel_version}.tsv"

    log_file = create_default_log("variant_index", args.sample_id, outdir / "logs")
    logger = get_logger("variant_index", log_file)

    try:
        files = collect_bim_files(
            paths=args.bim,
            directory=args.bim_dir,
            pattern=args.bim_glob or config["variant_index"]["bim_glob"],
        )
        console.print(f"\n📥 Reading {len(files)} variant metadata file(s)")

        frames = []
        for path in files:
            df = read_bim(path, strip_rsid=args.strip_rsid)
            logger.info(f"Read {df.height:,} variants from {path}")
            frames.append(df)

        index, qc = build_variant_index(frames)
        if qc["duplicate_rows_dropped"]:
            logger.warning(
                f"Dropped {qc['duplicate_rows_dropped']:,} variants at "
                f"{qc['duplicate_positions']:,} positions carrying several variants."
            )

        meta = write_variant_index(index, output, args.panel_version, source_files=files)
        logger.info(f"Wrote {meta['n_variants']:,} variants to {output} (panel {args.panel_version})")

    except (ValueError, FileNotFoundError) as e:
        logger.error(str(e))
        fail(str(e))
        sys.exit(1)
    finally:
        close_logger(logger)

    print_qc_table(f"Variant index — panel {args.panel_version}", qc, QC_LABELS)
    console.print(f"✅ Variant index written: [cyan]{output}[/cyan]")

    outputs = {
        "variant_index": str(output),
        "meta_file": str(output) + ".meta.json",
        "log_file": log_file,
        "qc": qc,
    }
    if ctx is not None:
        ctx["variant_index"] = outputs
    return outputs
