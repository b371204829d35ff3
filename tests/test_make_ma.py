"""Tests for the raw statistics -> GCTA-COJO .ma reformatter."""

import polars as pl
import pytest

from cojoprep.formatter.to_ma import (
    MA_COLUMNS,
    STATUS_ALLELE_MISMATCH,
    STATUS_DUPLICATE,
    STATUS_NO_MATCH,
    STATUS_OK,
    STATUS_UNPARSEABLE,
    classify_rows,
    excluded_rows,
    make_ma,
    read_ma,
    write_ma,
)
from cojoprep.utils.main import DataQualityError, SchemaError


def raw_frame(rows):
    """rows: (marker, allele1, allele2, freq1, weight, zscore, pvalue)."""
    cols = ["MarkerName", "Allele1", "Allele2", "Freq1", "Weight", "Zscore", "P-value"]
    return pl.DataFrame(
        [dict(zip(cols, r)) for r in rows],
        schema={
            "MarkerName": pl.Utf8,
            "Allele1": pl.Utf8,
            "Allele2": pl.Utf8,
            "Freq1": pl.Float64,
            "Weight": pl.Float64,
            "Zscore": pl.Float64,
            "P-value": pl.Float64,
        },
    )


class TestOrientation:
    def test_allele1_is_alt_passes_through(self, index_df):
        raw = raw_frame([("1_12345", "A", "G", 0.3, 5000, 2.1, 0.03)])
        ma, qc = make_ma(raw, index_df)

        assert ma.columns == MA_COLUMNS
        row = ma.row(0, named=True)
        assert row["SNP"] == "1:12345:G:A"
        assert row["A1"] == "A"
        assert row["A2"] == "G"
        assert row["freq"] == pytest.approx(0.3)
        assert row["b"] == pytest.approx(2.1)
        assert row["se"] == 1
        assert row["p"] == pytest.approx(0.03)
        assert row["N"] == 5000
        assert qc["flipped_rows"] == 0

    def test_allele1_is_ref_flips_freq_and_effect(self, index_df):
        raw = raw_frame([("1_12345", "G", "A", 0.3, 5000, 2.1, 0.03)])
        ma, qc = make_ma(raw, index_df)

        row = ma.row(0, named=True)
        assert row["A1"] == "A"
        assert row["A2"] == "G"
        assert row["freq"] == pytest.approx(0.7)
        assert row["b"] == pytest.approx(-2.1)
        assert row["p"] == pytest.approx(0.03)
        assert qc["flipped_rows"] == 1

    def test_lowercase_alleles_are_normalised(self, index_df):
        raw = raw_frame([("1_12345", "a", "g", 0.3, 5000, 2.1, 0.03)])
        ma, _ = make_ma(raw, index_df)
        assert ma["freq"][0] == pytest.approx(0.3)
        assert ma["A1"][0] == "A"

    def test_output_frame_consistency(self, index_df):
        raw = raw_frame([
            ("1_12345", "G", "A", 0.1, 100, 1.0, 0.5),
            ("1_20000", "T", "C", 0.4, 100, -0.5, 0.2),
            ("X_5000", "A", "C", 0.9, 100, 3.0, 0.01),
        ])
        ma, _ = make_ma(raw, index_df)
        by_snp = {r["SNP"]: r for r in ma.iter_rows(named=True)}

        assert by_snp["1:20000:C:T"]["freq"] == pytest.approx(0.4)
        assert by_snp["1:20000:C:T"]["b"] == pytest.approx(-0.5)
        assert by_snp["23:5000:A:C"]["freq"] == pytest.approx(0.1)
        assert by_snp["23:5000:A:C"]["b"] == pytest.approx(-3.0)


class TestExclusions:
    def test_unmatched_position_is_excluded_and_counted(self, index_df):
        matched = raw_frame([("1_12345", "A", "G", 0.3, 5000, 2.1, 0.03)])
        with_miss = raw_frame([
            ("1_12345", "A", "G", 0.3, 5000, 2.1, 0.03),
            ("2_777", "A", "C", 0.5, 4500, 0.4, 0.7),
        ])
        _, qc_before = make_ma(matched, index_df)
        ma, qc_after = make_ma(with_miss, index_df)

        assert ma.height == 1
        assert "2_777" not in ma["SNP"].to_list()
        assert qc_after["unmatched_rows"] == qc_before["unmatched_rows"] + 1

    def test_allele_mismatch_is_excluded(self, index_df):
        raw = raw_frame([("1_12345", "C", "T", 0.3, 5000, 2.1, 0.03)])
        ma, qc = make_ma(raw, index_df)
        assert ma.height == 0
        assert qc["allele_mismatch_rows"] == 1

    def test_unparseable_marker_is_excluded(self, index_df):
        raw = raw_frame([
            ("rs123", "A", "G", 0.3, 5000, 2.1, 0.03),
            ("1:12345", "A", "G", 0.3, 5000, 2.1, 0.03),
        ])
        ma, qc = make_ma(raw, index_df)
        assert qc["unparseable_markers"] == 1
        assert ma["SNP"].to_list() == ["1:12345:G:A"]

    def test_excluded_rows_carry_reason(self, index_df):
        raw = raw_frame([
            ("1_12345", "A", "G", 0.3, 5000, 2.1, 0.03),
            ("2_777", "A", "C", 0.5, 4500, 0.4, 0.7),
            ("1_20000", "A", "G", 0.5, 4500, 0.4, 0.7),
            ("junk", "A", "G", 0.5, 4500, 0.4, 0.7),
        ])
        tagged = classify_rows(raw, index_df)
        assert tagged["status"].to_list() == [
            STATUS_OK, STATUS_NO_MATCH, STATUS_ALLELE_MISMATCH, STATUS_UNPARSEABLE,
        ]
        assert excluded_rows(tagged).height == 3

    def test_repeated_marker_is_excluded(self, index_df):
        raw = raw_frame([
            ("1_12345", "A", "G", 0.3, 5000, 2.1, 0.03),
            ("1:12345", "G", "A", 0.6, 5200, -1.9, 0.05),
            ("1_20000", "T", "C", 0.2, 4000, 1.5, 0.1),
        ])
        tagged = classify_rows(raw, index_df)
        assert tagged["status"].to_list() == [STATUS_DUPLICATE, STATUS_DUPLICATE, STATUS_OK]

        ma, qc = make_ma(raw, index_df)
        assert ma["SNP"].to_list() == ["1:20000:C:T"]
        assert ma["SNP"].n_unique() == ma.height
        assert qc["duplicate_marker_rows"] == 2
        assert qc["output_rows"] == 1


class TestFailures:
    def test_missing_column_raises_schema_error(self, index_df):
        raw = raw_frame([("1_12345", "A", "G", 0.3, 5000, 2.1, 0.03)]).drop("Weight")
        with pytest.raises(SchemaError, match="Weight"):
            make_ma(raw, index_df)

    def test_custom_column_names(self, index_df):
        raw = raw_frame([("1_12345", "A", "G", 0.3, 5000, 2.1, 0.03)]).rename({"Weight": "N_total"})
        ma, _ = make_ma(raw, index_df, columns={"n": "N_total"})
        assert ma["N"][0] == 5000

    def test_missing_value_raises_data_quality_error(self, index_df):
        raw = raw_frame([("1_12345", "A", "G", 0.3, 5000, None, 0.03)])
        with pytest.raises(DataQualityError, match="b=1"):
            make_ma(raw, index_df)

    def test_duplicated_index_key_is_rejected(self, index_df):
        dup = pl.concat([index_df, index_df.head(1)])
        raw = raw_frame([("1_12345", "A", "G", 0.3, 5000, 2.1, 0.03)])
        with pytest.raises(SchemaError, match="duplicated"):
            make_ma(raw, dup)

    def test_malformed_variant_id_is_rejected(self, index_df):
        bad = index_df.with_columns(pl.lit("1_12345").alias("variant_id"))
        raw = raw_frame([("1_12345", "A", "G", 0.3, 5000, 2.1, 0.03)])
        with pytest.raises(SchemaError, match="chr:pos:ref:alt"):
            make_ma(raw, bad)


class TestMaFile:
    def test_header_and_determinism(self, tmp_path, index_df):
        raw = raw_frame([
            ("1_20000", "T", "C", 0.4, 100, -0.5, 0.2),
            ("1_12345", "G", "A", 0.1, 100, 1.0, 0.5),
        ])
        first = write_ma(make_ma(raw, index_df)[0], tmp_path / "a.ma")
        second = write_ma(make_ma(raw, index_df)[0], tmp_path / "b.ma")

        lines = first.read_text().splitlines()
        assert lines[0] == "SNP\tA1\tA2\tfreq\tb\tse\tp\tN"
        assert lines[1].startswith("1:12345:G:A\t")
        assert first.read_bytes() == second.read_bytes()

    def test_read_ma_checks_columns(self, tmp_path):
        path = tmp_path / "bad.ma"
        path.write_text("SNP\tA1\tA2\tfreq\tb\tp\tN\nx\tA\tG\t0.1\t1\t0.5\t10\n")
        with pytest.raises(SchemaError):
            read_ma(path)
