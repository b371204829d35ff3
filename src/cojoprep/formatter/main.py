from pathlib import Path

import polars as pl

from cojoprep.formatter.to_ma import (
    RAW_COLUMNS,
    classify_rows,
    excluded_rows,
    ma_from_classified,
    read_ma,
    write_ma,
)
from cojoprep.formatter.to_snplist import (
    check_snplist_against_ma,
    make_snplists,
    write_snplist,
)
from cojoprep.utils.io import read_table
from cojoprep.variant_index.variant_index import load_variant_index


def raw_column_map(args, config) -> dict:
    """Config column names, overridden by any --<field>-col flag."""
    columns = {**RAW_COLUMNS, **config.get("raw_columns", {})}
    for key in RAW_COLUMNS:
        value = getattr(args, f"{key}_col", None)
        if value:
            columns[key] = value
    return columns


def create_ma_inputs(args, config, logger):
    """Handler for raw meta-analysis → GCTA-COJO .ma conversion."""
    outdir = Path(args.outdir or Path.cwd())
    sample = args.sample_id or Path(args.sumstats).name.split(".")[0]
    ma_file = outdir / f"{sample}.ma"
    excluded_file = outdir / f"{sample}_ma_excluded.tsv"

    index, meta = load_variant_index(args.variant_index, expected_panel_version=args.panel_version)
    logger.info(
        f"Variant index {args.variant_index}: {index.height:,} variants, "
        f"panel {meta.get('panel_version')}"
    )

    columns = raw_column_map(args, config)
    separator = config["ma"]["marker_separator"]
    raw = read_table(args.sumstats, schema_overrides={columns["marker"]: pl.Utf8})
    logger.info(f"Read {raw.height:,} rows × {raw.width} columns from {args.sumstats}")

    tagged = classify_rows(raw, index, columns=columns, separator=separator)
    ma, qc = ma_from_classified(tagged, placeholder_se=config["ma"]["placeholder_se"])
    write_ma(ma, ma_file)
    logger.info(f"Wrote {ma.height:,} rows to {ma_file}")

    excluded = excluded_rows(tagged)
    if excluded.height:
        excluded.write_csv(excluded_file, separator="\t")
        logger.warning(
            f"Excluded {excluded.height:,} rows "
            f"(no index match: {qc['unmatched_rows']:,}, "
            f"repeated marker: {qc['duplicate_marker_rows']:,}, "
            f"unparseable marker: {qc['unparseable_markers']:,}, "
            f"allele mismatch: {qc['allele_mismatch_rows']:,}); see {excluded_file}"
        )
    else:
        # stale audit file from an earlier run
        excluded_file.unlink(missing_ok=True)

    return {
        "ma_file": str(ma_file),
        "excluded_file": str(excluded_file) if excluded.height else None,
        "panel_version": meta.get("panel_version"),
        "qc": qc,
    }


def create_snplist_inputs(args, config, logger):
    """Handler for top-hits table → per-locus conditioning lists."""
    outdir = Path(args.outdir or Path.cwd())
    top_hits = read_table(args.top_hits)
    logger.info(f"Read {top_hits.height:,} top hits from {args.top_hits}")

    lists = make_snplists(
        top_hits,
        chr_col=args.chr_col,
        pos_col=args.pos_col,
        ref_col=args.ref_col,
        alt_col=args.alt_col,
        sep=config["snplist"]["id_separator"],
    )

    ma = read_ma(args.ma) if args.ma else None
    written, missing = [], {}
    for name, ids in lists.items():
        path = write_snplist(ids, outdir / name)
        written.append(str(path))
        if ma is not None:
            absent = check_snplist_against_ma(ids, ma)
            if absent:
                missing[name] = absent
                logger.warning(f"{name}: {len(absent)} SNP(s) not in {args.ma}: {', '.join(absent)}")

    logger.info(f"Wrote {len(written)} conditioning list(s) to {outdir}")
    return {"snplists": written, "missing_from_ma": missing}
