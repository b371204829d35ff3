"""Tests for the per-chromosome reference panel builder."""

import gzip

import pytest

from cojoprep.panel.plink_panel import (
    build_bcftools_command,
    build_panel,
    build_plink_command,
    gzip_file,
    panel_paths,
    write_no_rsid_copy,
)


FAKE_BCFTOOLS = """
while [ $# -gt 0 ]; do
  if [ "$1" = "-o" ]; then out="$2"; fi
  shift
done
echo vcf > "$out"
"""

FAKE_PLINK = """
while [ $# -gt 0 ]; do
  if [ "$1" = "--out" ]; then out="$2"; fi
  shift
done
printf '1\\t1:100:A:G;rs12\\t0\\t100\\tG\\tA\\n1\\t1:200:C:T\\t0\\t200\\tT\\tC\\n' > "$out.bim"
echo bed > "$out.bed"
echo fam > "$out.fam"
echo ld > "$out.ld"
"""


class TestCommands:
    def test_bcftools(self):
        assert build_bcftools_command("in.vcf.gz", "ids.txt", "out.vcf.gz") == [
            "bcftools", "view", "-i", "INFO/R2>0.3", "-S", "ids.txt", "in.vcf.gz", "-Oz", "-o", "out.vcf.gz",
        ]

    def test_plink(self):
        cmd = build_plink_command("t.vcf.gz", "out/panel_chr1", update_sex="sex.txt")
        assert cmd == [
            "plink", "--vcf", "t.vcf.gz", "--maf", "0.0001", "--update-sex", "sex.txt",
            "--r2", "--ld-window", "99999", "--ld-window-r2", "0.05", "--make-bed",
            "--out", "out/panel_chr1",
        ]

    def test_plink_without_sex(self):
        assert "--update-sex" not in build_plink_command("t.vcf.gz", "o")

    def test_x_in_file_names(self, tmp_path):
        paths = panel_paths(tmp_path, "discovery_hg38", 23)
        assert paths["plink_prefix"].name == "discovery_hg38_chrX"
        assert paths["no_rsid_prefix"] == tmp_path / "plink_no_rsID" / "discovery_hg38_no_rsID_chrX"


class TestFiles:
    def test_no_rsid_copy(self, tmp_path):
        prefix = tmp_path / "p_chr1"
        (tmp_path / "p_chr1.bim").write_text("1\t1:100:A:G;rs12\t0\t100\tG\tA\n")
        (tmp_path / "p_chr1.bed").write_bytes(b"\x6c\x1b\x01")
        (tmp_path / "p_chr1.fam").write_text("f i 0 0 1 -9\n")

        out = write_no_rsid_copy(prefix, tmp_path / "plink_no_rsID" / "p_no_rsID_chr1")
        assert (tmp_path / "plink_no_rsID" / "p_no_rsID_chr1.bim").read_text() == "1\t1:100:A:G\t0\t100\tG\tA\n"
        assert out.with_name(out.name + ".bed").read_bytes() == b"\x6c\x1b\x01"

    def test_no_rsid_copy_needs_triplet(self, tmp_path):
        (tmp_path / "p.bim").write_text("x\n")
        with pytest.raises(FileNotFoundError, match=".bed"):
            write_no_rsid_copy(tmp_path / "p", tmp_path / "q")

    def test_gzip_file(self, tmp_path):
        path = tmp_path / "a.ld"
        path.write_text("ld\n")
        target = gzip_file(path)
        assert not path.exists()
        with gzip.open(target, "rt") as fh:
            assert fh.read() == "ld\n"


class TestBuildPanel:
    def test_end_to_end_with_fake_tools(self, tmp_path, make_executable):
        bcftools = make_executable("bcftools", FAKE_BCFTOOLS)
        plink = make_executable("plink", FAKE_PLINK)
        (tmp_path / "dose_chrX.vcf.gz").write_text("vcf\n")
        (tmp_path / "ids.txt").write_text("s1\n")
        outdir = tmp_path / "panel"

        result = build_panel(
            23,
            vcf_template=str(tmp_path / "dose_chr{chr}.vcf.gz"),
            samples=tmp_path / "ids.txt",
            outdir=outdir,
            prefix="disc",
            bcftools=str(bcftools),
            plink=str(plink),
        )

        assert result["chromosome"] == "X"
        assert (outdir / "disc_chrX.ld.gz").exists()
        assert not (outdir / "disc_chrX.ld").exists()
        assert not (outdir / "disc_chrX.vcf.gz").exists()
        bim = (outdir / "plink_no_rsID" / "disc_no_rsID_chrX.bim").read_text()
        assert ";rs" not in bim
        assert "1:200:C:T" in bim

    def test_tool_failure_raises(self, tmp_path, make_executable):
        bcftools = make_executable("bcftools", "echo boom >&2\nexit 2\n")
        (tmp_path / "in_chr1.vcf.gz").write_text("vcf\n")
        with pytest.raises(RuntimeError, match="exit code 2"):
            build_panel(
                1,
                vcf_template=str(tmp_path / "in_chr{chr}.vcf.gz"),
                samples=tmp_path / "ids.txt",
                outdir=tmp_path / "panel",
                bcftools=str(bcftools),
            )

    def test_missing_vcf(self, tmp_path):
        with pytest.raises(ValueError, match="does not exist"):
            build_panel(5, vcf_template=str(tmp_path / "none_{chr}.vcf.gz"), samples="x", outdir=tmp_path)
