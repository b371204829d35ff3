"""PyLiftoverProjector against a tiny hand-written chain file."""

import pytest

pytest.importorskip("pyliftover")

from cojoprep.liftover.liftover import lift_intervals  # noqa: E402
from cojoprep.liftover.projector import PyLiftoverProjector  # noqa: E402

import polars as pl  # noqa: E402


# chr1:[0, 1000) -> chr1:[100, 1100) on the + strand
CHAIN = (
    "chain 1000 chr1 2000 + 0 1000 chr1 2000 + 100 1100 1\n"
    "1000\n"
    "\n"
)


@pytest.fixture
def projector(tmp_path):
    path = tmp_path / "hg38_to_hg19.chain"
    path.write_text(CHAIN)
    return PyLiftoverProjector(path)


class TestPyLiftoverProjector:
    def test_single_base(self, projector):
        assert projector.project("chr1", 11, 12) == [("chr1", 111, 112, "+")]

    def test_multi_base_interval(self, projector):
        assert projector.project("chr1", 11, 14) == [("chr1", 111, 114, "+")]
        assert projector.inconsistent == 0

    def test_interval_leaving_the_chain_is_inconsistent(self, projector):
        assert projector.project("chr1", 999, 1003) == []
        assert projector.inconsistent == 1

    def test_unknown_contig(self, projector):
        assert projector.project("chr5", 11, 12) == []

    def test_outside_chain(self, projector):
        assert projector.project("chr1", 1500, 1501) == []

    def test_lift_intervals_reports_inconsistent(self, projector):
        df = pl.DataFrame({
            "chr": [1, 1],
            "pos": [11, 999],
            "ref": ["A", "ACGT"],
            "alt": ["G", "A"],
        })
        out, qc = lift_intervals(df, projector)
        assert out["pos"].to_list() == [111]
        assert qc["inconsistent"] == 1
        assert qc["unmapped"] == 1
        assert qc["dropped"] == 1
