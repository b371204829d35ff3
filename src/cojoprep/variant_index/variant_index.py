from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import json
import re

import polars as pl

from cojoprep.utils.chromosomes import chromosome_code_expr
from cojoprep.utils.io import read_headerless_whitespace
from cojoprep.utils.main import (
    PanelVersionError,
    SchemaError,
    file_sha256,
    write_json,
)


BIM_COLUMNS = ["chr", "variant_id", "cm", "pos", "a1", "a2"]
INDEX_COLUMNS = ["chr", "pos", "variant_id"]
INDEX_SCHEMA = {"chr": pl.Int64, "pos": pl.Int64, "variant_id": pl.Utf8}

RSID_SUFFIX = r";rs[0-9]*"


def strip_rsid_suffix(variant_id: str) -> str:
    """'1:100:A:G;rs123' -> '1:100:A:G' (same rule as the panel rsID-free copy)."""
    return re.sub(RSID_SUFFIX, "", variant_id)


def read_bim(path, strip_rsid: bool = False) -> pl.DataFrame:
    """
    Read one per-chromosome PLINK .bim file into (chr, pos, variant_id).

    Raises SchemaError naming the file when a line has fewer than the four
    columns the index needs, a position is not a positive integer or a
    chromosome label cannot be encoded.
    """
    raw = read_headerless_whitespace(path, BIM_COLUMNS, min_columns=4)

    df = raw.select([
        chromosome_code_expr("chr"),
        pl.col("pos").cast(pl.Int64, strict=False),
        pl.col("variant_id"),
    ])

    bad_chr = df.filter(pl.col("chr").is_null()).height
    if bad_chr:
        example = raw.filter(df["chr"].is_null())["chr"][0]
        raise SchemaError(
            f"❌ {path}: {bad_chr:,} rows have an unrecognised chromosome (e.g. '{example}')."
        )
    bad_pos = df.filter(pl.col("pos").is_null() | (pl.col("pos") <= 0)).height
    if bad_pos:
        raise SchemaError(
            f"❌ {path}: {bad_pos:,} rows have a non-integer or non-positive position "
            f"in column 4. Is this a PLINK .bim file?"
        )

    if strip_rsid:
        df = df.with_columns(pl.col("variant_id").str.replace_all(RSID_SUFFIX, ""))

    return df.select(INDEX_COLUMNS)


def build_variant_index(frames: Iterable[pl.DataFrame]) -> Tuple[pl.DataFrame, Dict[str, int]]:
    """
    Concatenate per-chromosome tables into one (chr, pos) -> variant_id index.

    Positions carried by more than one variant (multi-allelic sites split
    into biallelic records) cannot be resolved by a position-only join, so
    every row at such a position is removed and counted.
    """
    frames = list(frames)
    if not frames:
        raise ValueError("❌ No variant metadata files were given to build the index.")

    df = pl.concat([f.select(INDEX_COLUMNS).cast(INDEX_SCHEMA) for f in frames], how="vertical")
    input_rows = df.height

    empty_ids = df.filter(pl.col("variant_id").is_null() | (pl.col("variant_id") == "")).height
    if empty_ids:
        raise SchemaError(f"❌ {empty_ids:,} variants have an empty variant identifier.")

    dup_mask = df.select(pl.struct(["chr", "pos"]).is_duplicated()).to_series()
    duplicate_rows = int(dup_mask.sum())
    duplicate_positions = (
        df.filter(dup_mask).select(["chr", "pos"]).unique().height if duplicate_rows else 0
    )
    index = df.filter(~dup_mask)

    qc = {
        "input_rows": input_rows,
        "duplicate_positions": duplicate_positions,
        "duplicate_rows_dropped": duplicate_rows,
        "n_variants": index.height,
    }
    return index, qc


def collect_bim_files(paths: Optional[List] = None, directory=None, pattern: str = "*.bim") -> List[Path]:
    """Explicit files win; otherwise glob the directory (sorted for reproducibility)."""
    files = [Path(p) for p in (paths or [])]
    if directory is not None:
        files.extend(sorted(Path(directory).glob(pattern)))
    if not files:
        raise FileNotFoundError(
            f"❌ No variant metadata files found (directory={directory}, pattern={pattern})."
        )
    return files


# ----------------------------------------------------------------------
# Persistence: TSV + sidecar metadata
# ----------------------------------------------------------------------
def meta_path(index_path) -> Path:
    index_path = Path(index_path)
    return index_path.with_name(index_path.name + ".meta.json")


def write_variant_index(index: pl.DataFrame, path, panel_version: str, source_files=()) -> Dict:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    index.select(INDEX_COLUMNS).write_csv(path, separator="\t")

    meta = {
        "panel_version": panel_version,
        "n_variants": index.height,
        "source_files": [str(p) for p in source_files],
        "sha256": file_sha256(path),
        "created": datetime.now().isoformat(timespec="seconds"),
    }
    write_json(meta, meta_path(path))
    return meta


def read_index_meta(path) -> Dict:
    mp = meta_path(path)
    if not mp.exists():
        raise PanelVersionError(
            f"❌ Variant index {path} has no metadata file ({mp.name}); "
            "rebuild it with `cojoprep variant-index`."
        )
    with open(mp) as fh:
        return json.load(fh)


def load_variant_index(path, expected_panel_version: Optional[str] = None) -> Tuple[pl.DataFrame, Dict]:
    """
    Load a persisted index snapshot.

    The checksum recorded at build time must still match the file, and when
    ``expected_panel_version`` is given it must equal the recorded version.
    """
    meta = read_index_meta(path)

    if file_sha256(path) != meta.get("sha256"):
        raise PanelVersionError(
            f"❌ Variant index {path} was modified after it was built "
            "(checksum mismatch). Rebuild it from the reference panel."
        )
    if expected_panel_version is not None and meta.get("panel_version") != expected_panel_version:
        raise PanelVersionError(
            f"❌ Variant index {path} was built from panel "
            f"'{meta.get('panel_version')}', expected '{expected_panel_version}'."
        )

    index = pl.read_csv(path, separator="\t", schema_overrides=INDEX_SCHEMA)
    missing = [c for c in INDEX_COLUMNS if c not in index.columns]
    if missing:
        raise SchemaError(f"❌ Variant index {path} is missing columns: {', '.join(missing)}")
    return index.select(INDEX_COLUMNS), meta
