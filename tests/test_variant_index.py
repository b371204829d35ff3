"""Tests for the (chr, pos) -> variant_id index."""

import json

import polars as pl
import pytest

from cojoprep.utils.main import PanelVersionError, SchemaError
from cojoprep.variant_index.variant_index import (
    build_variant_index,
    collect_bim_files,
    load_variant_index,
    meta_path,
    read_bim,
    strip_rsid_suffix,
    write_variant_index,
)


def write_bim(path, lines):
    path.write_text("".join(line + "\n" for line in lines))
    return path


class TestReadBim:
    def test_reads_chr_pos_id(self, tmp_path):
        bim = write_bim(tmp_path / "chr1.bim", [
            "1\t1:100:A:G\t0\t100\tG\tA",
            "1\t1:200:C:T;rs55\t0\t200\tT\tC",
        ])
        df = read_bim(bim)
        assert df.columns == ["chr", "pos", "variant_id"]
        assert df["pos"].to_list() == [100, 200]
        assert df["variant_id"][1] == "1:200:C:T;rs55"

    def test_strip_rsid(self, tmp_path):
        bim = write_bim(tmp_path / "chr1.bim", ["1 1:200:C:T;rs55 0 200 T C"])
        assert read_bim(bim, strip_rsid=True)["variant_id"][0] == "1:200:C:T"

    def test_x_is_encoded_as_23(self, tmp_path):
        bim = write_bim(tmp_path / "chrX.bim", ["X\tX:5:A:C\t0\t5\tC\tA"])
        assert read_bim(bim)["chr"][0] == 23

    def test_short_line_names_file(self, tmp_path):
        bim = write_bim(tmp_path / "broken.bim", ["1\t1:100:A:G\t0\t100\tG\tA", "1\t1:200:C:T\t0"])
        with pytest.raises(SchemaError, match="broken.bim"):
            read_bim(bim)

    def test_non_integer_position(self, tmp_path):
        bim = write_bim(tmp_path / "chr1.bim", ["1\tid\t0\tabc\tG\tA"])
        with pytest.raises(SchemaError, match="position"):
            read_bim(bim)


class TestBuildIndex:
    def test_duplicate_positions_are_dropped_and_counted(self):
        frame = pl.DataFrame({
            "chr": [1, 1, 1, 2],
            "pos": [100, 100, 200, 100],
            "variant_id": ["1:100:A:G", "1:100:A:T", "1:200:C:T", "2:100:G:A"],
        })
        index, qc = build_variant_index([frame])

        assert index["variant_id"].to_list() == ["1:200:C:T", "2:100:G:A"]
        assert qc == {
            "input_rows": 4,
            "duplicate_positions": 1,
            "duplicate_rows_dropped": 2,
            "n_variants": 2,
        }
        assert not index.select(pl.struct(["chr", "pos"]).is_duplicated().any()).item()

    def test_no_frames(self):
        with pytest.raises(ValueError):
            build_variant_index([])

    def test_strip_rsid_suffix(self):
        assert strip_rsid_suffix("1:100:A:G;rs123") == "1:100:A:G"
        assert strip_rsid_suffix("1:100:A:G") == "1:100:A:G"


class TestPersistence:
    def test_round_trip_with_version(self, tmp_path, index_df):
        path = tmp_path / "idx.tsv"
        meta = write_variant_index(index_df, path, "v1", source_files=["chr1.bim"])

        assert meta["n_variants"] == 3
        assert json.loads(meta_path(path).read_text())["panel_version"] == "v1"

        index, loaded = load_variant_index(path, expected_panel_version="v1")
        assert index.equals(index_df)
        assert loaded["source_files"] == ["chr1.bim"]

    def test_version_mismatch_is_rejected(self, tmp_path, index_df):
        path = tmp_path / "idx.tsv"
        write_variant_index(index_df, path, "v1")
        with pytest.raises(PanelVersionError, match="expected 'v2'"):
            load_variant_index(path, expected_panel_version="v2")

    def test_modified_index_is_rejected(self, tmp_path, index_df):
        path = tmp_path / "idx.tsv"
        write_variant_index(index_df, path, "v1")
        with open(path, "a") as fh:
            fh.write("2\t1\t2:1:A:C\n")
        with pytest.raises(PanelVersionError, match="checksum"):
            load_variant_index(path)

    def test_missing_sidecar(self, tmp_path, index_df):
        path = tmp_path / "idx.tsv"
        index_df.write_csv(path, separator="\t")
        with pytest.raises(PanelVersionError):
            load_variant_index(path)


class TestCollectFiles:
    def test_directory_glob_is_sorted(self, tmp_path):
        for name in ["chr2.bim", "chr1.bim", "notes.txt"]:
            (tmp_path / name).write_text("x\n")
        files = collect_bim_files(directory=tmp_path)
        assert [f.name for f in files] == ["chr1.bim", "chr2.bim"]

    def test_nothing_found(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            collect_bim_files(directory=tmp_path)
