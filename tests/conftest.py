"""Shared fixtures for cojoprep tests."""

import os
import stat
from pathlib import Path

import polars as pl
import pytest

from cojoprep.variant_index.variant_index import write_variant_index


PANEL_VERSION = "freeze9b_hg38"


@pytest.fixture
def index_df():
    return pl.DataFrame(
        {
            "chr": [1, 1, 23],
            "pos": [12345, 20000, 5000],
            "variant_id": ["1:12345:G:A", "1:20000:C:T", "23:5000:A:C"],
        },
        schema={"chr": pl.Int64, "pos": pl.Int64, "variant_id": pl.Utf8},
    )


@pytest.fixture
def index_file(tmp_path, index_df):
    path = tmp_path / "variant_index.tsv"
    write_variant_index(index_df, path, PANEL_VERSION)
    return path


@pytest.fixture
def raw_sumstats_file(tmp_path):
    path = tmp_path / "meta.tbl"
    path.write_text(
        "MarkerName\tAllele1\tAllele2\tFreq1\tWeight\tZscore\tP-value\n"
        "1_12345\ta\tg\t0.3\t5000\t2.1\t0.03\n"
        "1_20000\tc\tt\t0.2\t4000\t-1.5\t0.1\n"
        "2_777\ta\tc\t0.5\t4500\t0.4\t0.7\n"
    )
    return path


@pytest.fixture
def make_executable(tmp_path):
    """Write a small shell script standing in for an external tool."""

    def _make(name: str, body: str) -> Path:
        path = tmp_path / "bin" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("#!/bin/sh\n" + body)
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make


@pytest.fixture
def clean_array_env(monkeypatch):
    for var in ("SGE_TASK_ID", "SLURM_ARRAY_TASK_ID", "PBS_ARRAY_INDEX"):
        monkeypatch.delenv(var, raising=False)
    return os.environ
