from pathlib import Path
from typing import Dict, Optional, Tuple

import polars as pl

from cojoprep.utils.chromosomes import chromosome_code_expr
from cojoprep.utils.io import require_columns
from cojoprep.utils.main import DataQualityError, SchemaError


# GCTA-COJO .ma layout: exact names, exact order
MA_SCHEMA = {
    "SNP": pl.Utf8,
    "A1": pl.Utf8,
    "A2": pl.Utf8,
    "freq": pl.Float64,
    "b": pl.Float64,
    "se": pl.Float64,
    "p": pl.Float64,
    "N": pl.Float64,
}
MA_COLUMNS = list(MA_SCHEMA)

# Logical raw fields -> METAL column names
RAW_COLUMNS = {
    "marker": "MarkerName",
    "allele1": "Allele1",
    "allele2": "Allele2",
    "freq1": "Freq1",
    "n": "Weight",
    "effect": "Zscore",
    "p": "P-value",
}

STATUS_OK = "ok"
STATUS_UNPARSEABLE = "unparseable_marker"
STATUS_NO_MATCH = "no_index_match"
STATUS_ALLELE_MISMATCH = "allele_mismatch"
STATUS_DUPLICATE = "duplicate_marker"


def _split_marker(separator: str) -> pl.Expr:
    marker = (
        pl.col("marker")
        .cast(pl.Utf8)
        .str.replace_all(":", "_", literal=True)
        .str.replace_all("-", "_", literal=True)
    )
    if separator not in ("_", ":", "-"):
        marker = marker.str.replace_all(separator, "_", literal=True)
    return marker.str.split_exact("_", 1)


def classify_rows(
    raw_df: pl.DataFrame,
    index_df: pl.DataFrame,
    columns: Optional[Dict[str, str]] = None,
    separator: str = "_",
) -> pl.DataFrame:
    """
    Resolve every raw row against the variant index and tag it with a
    ``status``: ok, unparseable_marker, no_index_match, duplicate_marker or
    allele_mismatch. Every raw row sharing a (chr, pos) with another raw row is
    a duplicate_marker; none of the copies is kept.

    Returned columns: the logical raw fields, chr, pos, variant_id, ref, alt,
    status. Alleles are upper-cased; numeric fields cast to Float64.
    """
    columns = {**RAW_COLUMNS, **(columns or {})}
    require_columns(raw_df, [columns[k] for k in RAW_COLUMNS], "raw summary statistics")
    require_columns(index_df, ["chr", "pos", "variant_id"], "variant index")

    if index_df.select(pl.struct(["chr", "pos"]).is_duplicated().any()).item():
        raise SchemaError("❌ Variant index has duplicated (chr, pos) keys; rebuild it.")

    df = raw_df.select([pl.col(columns[k]).alias(k) for k in RAW_COLUMNS])

    # 1. marker -> (chr, pos); X -> 23
    parts = _split_marker(separator)
    df = df.with_columns([
        parts.struct.field("field_0").alias("chr"),
        parts.struct.field("field_1").alias("pos"),
    ]).with_columns([
        chromosome_code_expr("chr"),
        pl.col("pos").cast(pl.Int64, strict=False),
    ])

    # 2. left join so misses stay countable; input order kept
    df = df.with_row_index("_row").join(
        index_df.select([
            pl.col("chr").cast(pl.Int64),
            pl.col("pos").cast(pl.Int64),
            pl.col("variant_id").cast(pl.Utf8),
        ]),
        on=["chr", "pos"],
        how="left",
    ).sort("_row").drop("_row")

    # 3. canonical allele case; 4. ref/alt from chr:pos:ref:alt
    id_parts = pl.col("variant_id").str.split_exact(":", 3)
    df = df.with_columns([
        pl.col("allele1").cast(pl.Utf8).str.to_uppercase(),
        pl.col("allele2").cast(pl.Utf8).str.to_uppercase(),
        id_parts.struct.field("field_2").str.to_uppercase().alias("ref"),
        id_parts.struct.field("field_3").str.to_uppercase().alias("alt"),
        pl.col("freq1").cast(pl.Float64, strict=False),
        pl.col("effect").cast(pl.Float64, strict=False),
        pl.col("p").cast(pl.Float64, strict=False),
        pl.col("n").cast(pl.Float64, strict=False),
    ])

    malformed = df.filter(
        pl.col("variant_id").is_not_null() & (pl.col("ref").is_null() | pl.col("alt").is_null())
    )
    if malformed.height:
        raise SchemaError(
            f"❌ {malformed.height:,} variant index IDs are not in chr:pos:ref:alt form "
            f"(e.g. '{malformed['variant_id'][0]}')."
        )

    same_order = (pl.col("allele1") == pl.col("alt")) & (pl.col("allele2") == pl.col("ref"))
    swapped = (pl.col("allele1") == pl.col("ref")) & (pl.col("allele2") == pl.col("alt"))

    return df.with_columns(
        pl.when(pl.col("chr").is_null() | pl.col("pos").is_null())
        .then(pl.lit(STATUS_UNPARSEABLE))
        .when(pl.col("variant_id").is_null())
        .then(pl.lit(STATUS_NO_MATCH))
        .when(pl.struct(["chr", "pos"]).is_duplicated())
        .then(pl.lit(STATUS_DUPLICATE))
        .when(~(same_order | swapped).fill_null(False))
        .then(pl.lit(STATUS_ALLELE_MISMATCH))
        .otherwise(pl.lit(STATUS_OK))
        .alias("status")
    )


def _integral_or_float(df: pl.DataFrame, col: str) -> pl.DataFrame:
    """Write sample sizes as integers when every value is a whole number."""
    values = df[col]
    if values.len() and values.is_not_null().all() and (values.round(0) == values).all():
        return df.with_columns(pl.col(col).cast(pl.Int64))
    return df


def make_ma(
    raw_df: pl.DataFrame,
    index_df: pl.DataFrame,
    columns: Optional[Dict[str, str]] = None,
    separator: str = "_",
    placeholder_se: float = 1,
) -> Tuple[pl.DataFrame, Dict[str, int]]:
    """
    Reformat raw meta-analysis rows into the GCTA-COJO .ma layout.

    Frequency and effect are expressed relative to the alternate allele of
    the reference-panel variant ID, which becomes A1:

        raw allele1 == alt  ->  freq, b unchanged
        raw allele1 == ref  ->  freq = 1 - freq1, b = -effect

    Rows without an index match, with an unparseable or repeated marker, or
    whose allele pair is not {ref, alt} are excluded and counted. ``se`` is the constant
    ``placeholder_se`` for every row.

    Raises
    ------
    SchemaError
        Missing raw/index columns or malformed index IDs.
    DataQualityError
        Any of the eight output columns contains a missing value.
    """
    tagged = classify_rows(raw_df, index_df, columns=columns, separator=separator)
    return ma_from_classified(tagged, placeholder_se=placeholder_se)


def ma_from_classified(tagged: pl.DataFrame, placeholder_se: float = 1) -> Tuple[pl.DataFrame, Dict[str, int]]:
    """Second half of make_ma: orient the status==ok rows and emit the .ma table."""
    counts = dict(tagged.group_by("status").len().iter_rows())

    ok = tagged.filter(pl.col("status") == STATUS_OK)
    flip = pl.col("allele1") != pl.col("alt")

    ma = (
        ok.with_columns([
            pl.when(flip).then(1 - pl.col("freq1")).otherwise(pl.col("freq1")).alias("freq"),
            pl.when(flip).then(-pl.col("effect")).otherwise(pl.col("effect")).alias("b"),
        ])
        .sort(["chr", "pos", "variant_id"], maintain_order=True)
        .select([
            pl.col("variant_id").alias("SNP"),
            pl.col("alt").alias("A1"),
            pl.col("ref").alias("A2"),
            pl.col("freq"),
            pl.col("b"),
            pl.lit(placeholder_se).cast(pl.Float64).alias("se"),
            pl.col("p"),
            pl.col("n").alias("N"),
        ])
    )

    assert_no_missing(ma)
    ma = _integral_or_float(ma, "N")

    qc = {
        "input_rows": tagged.height,
        "unparseable_markers": counts.get(STATUS_UNPARSEABLE, 0),
        "unmatched_rows": counts.get(STATUS_NO_MATCH, 0),
        "duplicate_marker_rows": counts.get(STATUS_DUPLICATE, 0),
        "allele_mismatch_rows": counts.get(STATUS_ALLELE_MISMATCH, 0),
        "flipped_rows": ok.filter(flip).height,
        "output_rows": ma.height,
    }
    return ma, qc


def excluded_rows(tagged: pl.DataFrame) -> pl.DataFrame:
    """Rows dropped by make_ma, with the reason, for the audit file."""
    return tagged.filter(pl.col("status") != STATUS_OK).select(
        ["marker", "allele1", "allele2", "chr", "pos", "variant_id", "status"]
    )


def assert_no_missing(ma: pl.DataFrame):
    """Post-condition: no null (or NaN) in any .ma column."""
    problems = {}
    for name in MA_COLUMNS:
        col = pl.col(name)
        missing = col.is_null()
        if ma.schema[name].is_float():
            missing = missing | col.is_nan()
        n = ma.select(missing.sum()).item()
        if n:
            problems[name] = n
    if problems:
        detail = ", ".join(f"{k}={v:,}" for k, v in problems.items())
        raise DataQualityError(
            f"❌ Missing values in .ma output ({detail}). "
            "GCTA-COJO does not accept missing fields; check the raw statistics."
        )


def check_ma_schema(ma: pl.DataFrame, source: str = ".ma table"):
    if ma.columns != MA_COLUMNS:
        raise SchemaError(
            f"❌ {source} columns are {ma.columns}; expected exactly {MA_COLUMNS}."
        )
    for name, dtype in MA_SCHEMA.items():
        actual = ma.schema[name]
        if dtype == pl.Utf8 and actual != pl.Utf8:
            raise SchemaError(f"❌ {source}: column {name} must be text, found {actual}.")
        if dtype != pl.Utf8 and not actual.is_numeric():
            raise SchemaError(f"❌ {source}: column {name} must be numeric, found {actual}.")


def write_ma(ma: pl.DataFrame, path) -> Path:
    """Write a tab-delimited .ma file with the header `SNP A1 A2 freq b se p N`."""
    check_ma_schema(ma)
    assert_no_missing(ma)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    ma.write_csv(path, separator="\t")
    return path


def read_ma(path) -> pl.DataFrame:
    ma = pl.read_csv(path, separator="\t", schema_overrides={"SNP": pl.Utf8, "A1": pl.Utf8, "A2": pl.Utf8})
    check_ma_schema(ma, source=str(path))
    return ma
