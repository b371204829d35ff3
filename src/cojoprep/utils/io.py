import csv
import gzip
import lzma
from pathlib import Path
from typing import Iterable

import pandas as pd
import polars as pl

from cojoprep.utils.main import SchemaError


# ----------------------------------------------------------------------
# 1. Helper: correct opener
# ----------------------------------------------------------------------
def _opener(path):
    suffix = Path(path).suffix.lower()
    if suffix == ".gz":
        return gzip.open
    if suffix in {".xz", ".lzma"}:
        return lzma.open
    return open


# ----------------------------------------------------------------------
# 2. Delimiter detection – look at the *header* line
# ----------------------------------------------------------------------
def detect_delimiter(path) -> str:
    with _opener(path)(path, "rt", errors="ignore") as f:
        header = next((l for l in f if not l.startswith("##")), "")
    if not header.strip():
        return "\t"
    try:
        # csv.Sniffer works best on a *single* line
        return csv.Sniffer().sniff(header, delimiters="\t,; ").delimiter
    except csv.Error:
        return "\t"


def read_table(path, schema_overrides=None) -> pl.DataFrame:
    """
    Read a delimited text table (optionally gz/xz compressed) with a header.
    Column names and string cells are stripped of surrounding whitespace.
    """
    path = str(path)
    delim = detect_delimiter(path)

    if delim == " ":
        # Space-aligned tables (e.g. METAL with padding) need a regex separator.
        df = pl.from_pandas(
            pd.read_csv(path, sep=r"\s+", dtype=str, keep_default_na=False)
        ).with_columns(pl.all().replace({"": None, "NA": None, "na": None, ".": None}))
        if schema_overrides:
            df = df.with_columns([
                pl.col(c).cast(t, strict=False) for c, t in schema_overrides.items() if c in df.columns
            ])
    else:
        try:
            df = pl.read_csv(
                path,
                separator=delim,
                comment_prefix="##",
                has_header=True,
                null_values=["NA", "na", ".", ""],
                schema_overrides=schema_overrides,
                infer_schema_length=10000,
            )
        except pl.exceptions.ComputeError as e:
            raise SchemaError(f"❌ Failed to parse table {path}: {e}") from e

    df = df.rename({c: c.strip() for c in df.columns})
    return df.with_columns(pl.col(pl.Utf8).str.strip_chars())


def read_headerless_whitespace(path, names: Iterable[str], min_columns: int, max_columns: int = None) -> pl.DataFrame:
    """
    Read a headerless whitespace-delimited table (PLINK .bim, job tables).

    Fails fast with SchemaError when any line carries fewer than
    ``min_columns`` fields, or more than ``max_columns`` when given;
    otherwise extra trailing fields are dropped.
    """
    names = list(names)
    try:
        pdf = pd.read_csv(
            path,
            sep=r"\s+",
            header=None,
            dtype=str,
            keep_default_na=False,
            engine="python",
        )
    except pd.errors.EmptyDataError:
        raise SchemaError(f"❌ File is empty: {path}")
    except pd.errors.ParserError as e:
        raise SchemaError(f"❌ Malformed whitespace-delimited file {path}: {e}") from e

    if pdf.shape[1] < min_columns:
        raise SchemaError(
            f"❌ {path}: expected at least {min_columns} columns, found {pdf.shape[1]}."
        )
    if max_columns is not None and pdf.shape[1] > max_columns:
        raise SchemaError(
            f"❌ {path}: expected at most {max_columns} columns, found {pdf.shape[1]}."
        )
    required = pdf.iloc[:, :min_columns]
    short = (required.isna() | (required == "")).any(axis=1)
    if short.any():
        bad = int(short.to_numpy().argmax()) + 1
        raise SchemaError(
            f"❌ {path}: line {bad} has fewer than {min_columns} columns."
        )

    pdf = pdf.iloc[:, : len(names)]
    pdf.columns = names[: pdf.shape[1]]
    return pl.from_pandas(pdf)


def require_columns(df: pl.DataFrame, columns: Iterable[str], source: str = "input"):
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise SchemaError(
            f"❌ Missing required columns in {source}: {', '.join(missing)}\n"
            f"   Available columns: {', '.join(df.columns)}"
        )
