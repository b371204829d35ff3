from pathlib import Path
from typing import List, Protocol, Tuple


# (contig, start, end, strand); 1-based, end exclusive
Interval = Tuple[str, int, int, str]


class ChainProjector(Protocol):
    def project(self, chrom: str, start: int, end: int) -> List[Interval]:
        ...


def resolve_chain_file(resource_folder, source_build: str, target_build: str) -> Path:
    """
    ``<resource>/chain_files/<src>_to_<tgt>.chain`` (or ``.chain.gz``).
    Build names are used as given; nothing checks them against the data.
    """
    folder = Path(resource_folder) / "chain_files"
    for suffix in (".chain", ".chain.gz"):
        candidate = folder / f"{source_build}_to_{target_build}{suffix}"
        if candidate.is_file():
            return candidate
    raise FileNotFoundError(
        f"❌ No chain file for {source_build} → {target_build} in {folder}\n"
        f"   Expected {source_build}_to_{target_build}.chain[.gz]"
    )


class PyLiftoverProjector:
    """
    ChainProjector backed by ``pyliftover.LiftOver``.

    The first and the last base of an interval are converted separately. A
    start hit is kept only when an end hit lies on the same contig and strand
    at the distance the interval length predicts; other start hits are
    counted in ``inconsistent``.
    """

    def __init__(self, chain_file):
        from pyliftover import LiftOver

        self.chain_file = str(chain_file)
        self._lifter = LiftOver(self.chain_file)
        self.inconsistent = 0

    def _convert(self, chrom, pos0):
        # None means the contig is absent from the chain
        return self._lifter.convert_coordinate(chrom, pos0) or []

    def project(self, chrom: str, start: int, end: int) -> List[Interval]:
        length = end - start
        if length < 1:
            raise ValueError(f"❌ Empty interval {chrom}:{start}-{end}")

        first_hits = self._convert(chrom, start - 1)
        if length == 1:
            return [(c, p0 + 1, p0 + 2, strand) for c, p0, strand, _ in first_hits]

        last_hits = {(c, p0, strand) for c, p0, strand, _ in self._convert(chrom, end - 2)}
        out = []
        for c, p0, strand, _ in first_hits:
            if strand == "+":
                expected = p0 + length - 1
                if (c, expected, strand) in last_hits:
                    out.append((c, p0 + 1, p0 + 1 + length, strand))
                    continue
            else:
                expected = p0 - length + 1
                if (c, expected, strand) in last_hits:
                    out.append((c, expected + 1, expected + 1 + length, strand))
                    continue
            self.inconsistent += 1
        return out
