"""End-to-end runs through the command-line entry points."""

import polars as pl
import pytest

from cojoprep.__main__ import MODULES, main as cojoprep_main
from cojoprep.cojo.cli import main as cojo_main
from cojoprep.formatter.cli import main as make_ma_main, snplist_main
from cojoprep.variant_index.cli import main as variant_index_main


@pytest.fixture
def bim_dir(tmp_path):
    folder = tmp_path / "panel"
    folder.mkdir()
    (folder / "chr1.bim").write_text(
        "1\t1:12345:G:A;rs1\t0\t12345\tA\tG\n"
        "1\t1:20000:C:T\t0\t20000\tT\tC\n"
    )
    (folder / "chrX.bim").write_text("X\tX:5000:A:C\t0\t5000\tC\tA\n")
    return folder


class TestDispatcher:
    def test_global_help(self):
        with pytest.raises(SystemExit) as exc:
            cojoprep_main(["--help"])
        assert exc.value.code == 0

    def test_unknown_module(self):
        with pytest.raises(SystemExit) as exc:
            cojoprep_main(["finemap"])
        assert exc.value.code == 1

    def test_registry(self):
        assert set(MODULES) == {"panel", "variant-index", "make-ma", "snplist", "cojo", "liftover"}


class TestPipeline:
    def test_index_then_ma_then_jobs(self, tmp_path, bim_dir, raw_sumstats_file, clean_array_env):
        out = tmp_path / "out"
        index = variant_index_main([
            "--bim-dir", str(bim_dir), "--strip-rsid", "--panel-version", "v1", "--outdir", str(out),
        ])
        assert index["qc"]["n_variants"] == 3

        result = make_ma_main([
            "--sumstats", str(raw_sumstats_file),
            "--variant-index", index["variant_index"],
            "--panel-version", "v1",
            "--sample_id", "HOMA_IR",
            "--outdir", str(out),
        ])
        ma = pl.read_csv(result["ma_file"], separator="\t")
        assert ma["SNP"].to_list() == ["1:12345:G:A", "1:20000:C:T"]
        assert ma["b"].to_list() == pytest.approx([2.1, 1.5])
        assert ma["freq"].to_list() == pytest.approx([0.3, 0.8])
        assert result["qc"]["unmatched_rows"] == 1
        assert result["excluded_file"] is not None

        hits = tmp_path / "top_hits.tsv"
        hits.write_text("CHR\tPOS\tREF\tALT\n1\t12345\tG\tA\n")
        lists = snplist_main([
            "--top-hits", str(hits), "--ma", result["ma_file"], "--outdir", str(out),
        ])
        assert lists["missing_from_ma"] == {}

        table = cojo_main(["make-table", "--directory", str(out)])
        assert table["n_tasks"] == 1

        code = cojo_main(["run-task", "--job-table", table["job_table"], "--task-id", "1", "--dry-run"])
        assert code == 0

    def test_clean_rerun_removes_excluded_file(self, tmp_path, bim_dir, raw_sumstats_file):
        out = tmp_path / "out"
        index = variant_index_main([
            "--bim-dir", str(bim_dir), "--strip-rsid", "--panel-version", "v1", "--outdir", str(out),
        ])
        args = ["--variant-index", index["variant_index"], "--sample_id", "HOMA_IR", "--outdir", str(out)]

        first = make_ma_main(["--sumstats", str(raw_sumstats_file)] + args)
        assert (out / "HOMA_IR_ma_excluded.tsv").exists()

        clean = tmp_path / "clean.tbl"
        clean.write_text("\n".join(raw_sumstats_file.read_text().splitlines()[:3]) + "\n")
        second = make_ma_main(["--sumstats", str(clean)] + args)

        assert first["excluded_file"] is not None
        assert second["excluded_file"] is None
        assert not (out / "HOMA_IR_ma_excluded.tsv").exists()

    def test_panel_version_mismatch_exits(self, tmp_path, bim_dir, raw_sumstats_file):
        out = tmp_path / "out"
        index = variant_index_main(["--bim-dir", str(bim_dir), "--panel-version", "v1", "--outdir", str(out)])
        with pytest.raises(SystemExit) as exc:
            make_ma_main([
                "--sumstats", str(raw_sumstats_file),
                "--variant-index", index["variant_index"],
                "--panel-version", "v2",
                "--outdir", str(out),
            ])
        assert exc.value.code == 1


class TestCojoCli:
    def test_run_task_exits_with_tool_code(self, tmp_path, make_executable, monkeypatch):
        gcta = make_executable("gcta", "exit 4\n")
        jobs = tmp_path / "jobs.txt"
        jobs.write_text(f"1 {tmp_path}/a.ma {tmp_path}/chr1_1.snplist {tmp_path}/chr1_1\n")
        monkeypatch.setenv("SGE_TASK_ID", "1")

        with pytest.raises(SystemExit) as exc:
            cojo_main(["run-task", "--job-table", str(jobs), "--gcta", str(gcta)])
        assert exc.value.code == 4

    def test_array_script(self, tmp_path):
        jobs = tmp_path / "jobs.txt"
        jobs.write_text("1 a.ma chr1_1.snplist chr1_1\n3 a.ma chr3_1.snplist chr3_1\n")
        result = cojo_main([
            "array-script", "--job-table", str(jobs), "--output", str(tmp_path / "run.sh"),
            "--scheduler", "slurm", "--maf", "0.05",
        ])
        text = (tmp_path / "run.sh").read_text()
        assert result["n_tasks"] == 2
        assert "#SBATCH --array=1-2" in text
        assert "--maf 0.05" in text
