from pathlib import Path
from typing import Dict, Iterable, List

import polars as pl

from cojoprep.utils.chromosomes import chromosome_code_expr
from cojoprep.utils.io import require_columns
from cojoprep.utils.main import SchemaError


def snplist_filename(chromosome: int, position: int) -> str:
    return f"chr{int(chromosome)}_{int(position)}.snplist"


def make_snplists(
    top_hits: pl.DataFrame,
    chr_col: str = "CHR",
    pos_col: str = "POS",
    ref_col: str = "REF",
    alt_col: str = "ALT",
    sep: str = ":",
) -> Dict[str, List[str]]:
    """
    Turn a top-hits table into conditioning lists, one per row.

    Each row yields the ID ``chr:pos:ref:alt`` (X written as 23, alleles
    upper-cased) in a list named ``chr<N>_<pos>.snplist``. Rows mapping to the
    same file name are merged in input order without duplicates.
    """
    require_columns(top_hits, [chr_col, pos_col, ref_col, alt_col], "top-hits table")

    df = top_hits.select([
        chromosome_code_expr(chr_col).alias("chr"),
        pl.col(pos_col).cast(pl.Int64, strict=False).alias("pos"),
        pl.col(ref_col).cast(pl.Utf8).str.to_uppercase().alias("ref"),
        pl.col(alt_col).cast(pl.Utf8).str.to_uppercase().alias("alt"),
    ])

    bad = df.filter(pl.any_horizontal(pl.all().is_null()))
    if bad.height:
        raise SchemaError(
            f"❌ {bad.height:,} top-hit rows have a missing or unparseable chromosome, "
            "position or allele."
        )

    lists: Dict[str, List[str]] = {}
    for chrom, pos, ref, alt in df.iter_rows():
        variant_id = sep.join([str(chrom), str(pos), ref, alt])
        ids = lists.setdefault(snplist_filename(chrom, pos), [])
        if variant_id not in ids:
            ids.append(variant_id)
    return lists


def write_snplist(ids: Iterable[str], path) -> Path:
    """One identifier per line, no header. Empty lists are refused."""
    ids = [i.strip() for i in ids if i and i.strip()]
    if not ids:
        raise ValueError(f"❌ Conditioning list {path} would be empty; at least one SNP is required.")
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(ids) + "\n")
    return path


def read_snplist(path) -> List[str]:
    ids = [line.strip() for line in Path(path).read_text().splitlines() if line.strip()]
    if not ids:
        raise ValueError(f"❌ Conditioning list is empty: {path}")
    return ids


def check_snplist_against_ma(ids: Iterable[str], ma: pl.DataFrame) -> List[str]:
    """IDs absent from the .ma file (GCTA drops them silently)."""
    known = set(ma["SNP"].to_list())
    return [i for i in ids if i not in known]
