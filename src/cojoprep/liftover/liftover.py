import re
from typing import Dict, Iterable, Optional, Tuple

import polars as pl

from cojoprep.utils.chromosomes import chrom_label, chromosome_code_expr
from cojoprep.utils.io import require_columns
from cojoprep.utils.main import SchemaError


# Alleles without a usable sequence length: I/D codes, <DEL>-style, *, -
SYMBOLIC_ALLELE = re.compile(r"^(<.*>|\*|-|I|D)$", re.IGNORECASE)
RESERVED_COLUMNS = ("chr", "pos", "end", "strand", "ref", "alt", "source_chr", "source_pos", "approx_interval")


def interval_end(start: int, ref: Optional[str]) -> Tuple[int, bool]:
    """
    Half-open end of the interval covered by ``ref`` starting at ``start``.

    Sequence alleles give ``start + len(ref)``. Null or symbolic alleles have
    no reliable length, so the interval shrinks to the anchor base
    (``start + 1``) and the second value flags it as approximate.
    """
    if ref is None:
        return start + 1, True
    ref = str(ref).strip()
    if not ref or SYMBOLIC_ALLELE.match(ref):
        return start + 1, True
    return start + len(ref), False


def attach_alleles(
    user_df: pl.DataFrame,
    master_df: pl.DataFrame,
    chr_col: str = "chr",
    pos_col: str = "pos",
    master_chr_col: str = "CHR",
    master_pos_col: str = "POS",
    master_ref_col: str = "REF",
    master_alt_col: str = "ALT",
) -> Tuple[pl.DataFrame, Dict[str, int]]:
    """
    Left-join the user table to the variant master list on (chr, pos).

    Returns ``chr, pos, ref, alt`` followed by the user's other columns
    (passengers). Rows without a match keep null alleles.
    """
    require_columns(user_df, [chr_col, pos_col], "liftover input")
    require_columns(master_df, [master_chr_col, master_pos_col, master_ref_col, master_alt_col], "variant master list")

    passengers = [c for c in user_df.columns if c not in (chr_col, pos_col)]
    clash = [c for c in passengers if c in RESERVED_COLUMNS]
    if clash:
        raise SchemaError(
            f"❌ Liftover input columns {clash} clash with output columns; rename them first."
        )

    user = user_df.select([
        chromosome_code_expr(chr_col).alias("chr"),
        pl.col(pos_col).cast(pl.Int64, strict=False).alias("pos"),
        *passengers,
    ])
    bad = user.filter(pl.col("chr").is_null() | pl.col("pos").is_null())
    if bad.height:
        raise SchemaError(
            f"❌ {bad.height:,} liftover input rows have an unrecognised chromosome or position."
        )

    master = master_df.select([
        chromosome_code_expr(master_chr_col).alias("chr"),
        pl.col(master_pos_col).cast(pl.Int64, strict=False).alias("pos"),
        pl.col(master_ref_col).cast(pl.Utf8).str.to_uppercase().alias("ref"),
        pl.col(master_alt_col).cast(pl.Utf8).str.to_uppercase().alias("alt"),
    ]).drop_nulls(["chr", "pos"]).unique(maintain_order=True)

    joined = user.with_row_index("_row").join(master, on=["chr", "pos"], how="left")
    joined = joined.sort("_row", maintain_order=True).drop("_row")

    qc = {
        "input_rows": user.height,
        "rows_without_alleles": joined.filter(pl.col("ref").is_null()).height,
        "joined_rows": joined.height,
    }
    return joined.select(["chr", "pos", "ref", "alt", *passengers]), qc


# UCSC chain files name the mitochondrial contig chrM
UCSC_LABELS = {"MT": "M"}


def _source_contig(code: int) -> str:
    label = chrom_label(code)
    return f"chr{UCSC_LABELS.get(label, label)}"


def _target_chromosome(contig: str) -> str:
    label = contig[3:] if contig.lower().startswith("chr") else contig
    return "23" if label.upper() == "X" else label


def lift_intervals(
    df: pl.DataFrame,
    projector,
    disallowed_contigs: Iterable[str] = ("chrY",),
) -> Tuple[pl.DataFrame, Dict[str, int]]:
    """
    Project every (chr, pos, ref) interval through ``projector``.

    Each input row yields zero or more output rows (one per projected
    interval), all passenger columns carried unchanged. Hits on
    ``disallowed_contigs`` are dropped, ``chrX`` is written back as 23 and the
    ``chr`` prefix is removed.

    Output columns: chr, pos, end, strand, ref, alt, approx_interval,
    <passengers...>, source_chr, source_pos.
    """
    require_columns(df, ["chr", "pos", "ref", "alt"], "liftover intervals")
    passengers = [c for c in df.columns if c not in ("chr", "pos", "ref", "alt")]
    disallowed = {c.lower() for c in disallowed_contigs}
    inconsistent_before = getattr(projector, "inconsistent", 0)

    qc = {
        "input_intervals": df.height,
        "output_intervals": 0,
        "unmapped": 0,
        "inconsistent": 0,
        "disallowed_contig": 0,
        "split_extra": 0,
        "approx_intervals": 0,
    }

    records = []
    for row in df.iter_rows(named=True):
        start = int(row["pos"])
        end, approx = interval_end(start, row["ref"])
        qc["approx_intervals"] += approx

        hits = projector.project(_source_contig(int(row["chr"])), start, end)
        if not hits:
            qc["unmapped"] += 1
            continue

        kept = [h for h in hits if h[0].lower() not in disallowed]
        qc["disallowed_contig"] += len(hits) - len(kept)
        qc["split_extra"] += max(0, len(kept) - 1)

        for contig, new_start, new_end, strand in kept:
            records.append({
                "chr": _target_chromosome(contig),
                "pos": new_start,
                "end": new_end,
                "strand": strand,
                "ref": row["ref"],
                "alt": row["alt"],
                "approx_interval": approx,
                **{c: row[c] for c in passengers},
                "source_chr": int(row["chr"]),
                "source_pos": start,
            })

    qc["inconsistent"] = getattr(projector, "inconsistent", 0) - inconsistent_before
    qc["output_intervals"] = len(records)
    qc["dropped"] = qc["input_intervals"] - qc["output_intervals"]

    schema = {
        "chr": pl.Utf8,
        "pos": pl.Int64,
        "end": pl.Int64,
        "strand": pl.Utf8,
        "ref": pl.Utf8,
        "alt": pl.Utf8,
        "approx_interval": pl.Boolean,
        **{c: df.schema[c] for c in passengers},
        "source_chr": pl.Int64,
        "source_pos": pl.Int64,
    }
    out = pl.DataFrame(records, schema=schema) if records else pl.DataFrame(schema=schema)
    return out, qc
