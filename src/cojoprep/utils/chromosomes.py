import polars as pl

from cojoprep.utils.main import SchemaError


# PLINK numeric convention for non-autosomal contigs
CHROM_CODES = {"X": 23, "Y": 24, "XY": 25, "MT": 26, "M": 26}
CHROM_LABELS = {23: "X", 24: "Y", 25: "XY", 26: "MT"}


def encode_chromosome(value) -> int:
    """
    Encode a chromosome label as its numeric code.

    'chr1' / '1' / 1 / '1.0' -> 1, 'X' / 'chrX' / '23' -> 23, 'MT' -> 26.
    """
    label = str(value).strip()
    if label.lower().startswith("chr"):
        label = label[3:]
    label = label.upper()
    if label.endswith(".0"):
        label = label[:-2]
    if label in CHROM_CODES:
        return CHROM_CODES[label]
    if label.isdigit() and int(label) > 0:
        return int(label)
    raise SchemaError(f"❌ Unrecognised chromosome label: '{value}'")


def chrom_label(code) -> str:
    """Inverse of encode_chromosome for file names and contigs: 23 -> 'X'."""
    code = encode_chromosome(code)
    return CHROM_LABELS.get(code, str(code))


def chromosome_code_expr(col: str) -> pl.Expr:
    """
    Polars expression that encodes a chromosome column as Int64.
    Unrecognised labels and codes below 1 become null (callers decide
    whether that is fatal).
    """
    label = (
        pl.col(col)
        .cast(pl.Utf8)
        .str.strip_chars()
        .str.replace(r"(?i)^chr", "")
        .str.to_uppercase()
        .str.replace(r"\.0$", "")
    )
    code = (
        pl.when(label.is_in(list(CHROM_CODES)))
        .then(label.replace_strict(CHROM_CODES, default=None, return_dtype=pl.Int64))
        .otherwise(label.cast(pl.Int64, strict=False))
    )
    # same rule as encode_chromosome: codes start at 1
    return pl.when(code > 0).then(code).otherwise(None).alias(col)

