import gzip
import shlex
import shutil
from pathlib import Path
from typing import Dict, List, Optional

from cojoprep.utils.chromosomes import chrom_label
from cojoprep.utils.main import apply_validator, run_cmd, validate_path
from cojoprep.variant_index.variant_index import strip_rsid_suffix


PLINK_SUFFIXES = (".bed", ".bim", ".fam")
NO_RSID_DIR = "plink_no_rsID"


def panel_paths(outdir, prefix: str, chromosome) -> Dict[str, Path]:
    """File layout for one chromosome; 23 is written as X."""
    label = chrom_label(chromosome)
    outdir = Path(outdir)
    return {
        "tmp_vcf": outdir / f"{prefix}_chr{label}.vcf.gz",
        "plink_prefix": outdir / f"{prefix}_chr{label}",
        "no_rsid_prefix": outdir / NO_RSID_DIR / f"{prefix}_no_rsID_chr{label}",
        "ld": outdir / f"{prefix}_chr{label}.ld",
    }


def build_bcftools_command(
    vcf,
    samples,
    out_vcf,
    r2_threshold: float = 0.3,
    bcftools: str = "bcftools",
) -> List[str]:
    """Keep well-imputed variants (INFO/R2 above threshold) for the listed samples."""
    return [
        bcftools, "view",
        "-i", f"INFO/R2>{r2_threshold}",
        "-S", str(samples),
        str(vcf),
        "-Oz", "-o", str(out_vcf),
    ]


def build_plink_command(
    vcf,
    out_prefix,
    maf: float = 0.0001,
    update_sex=None,
    ld_window: int = 99999,
    ld_window_r2: float = 0.05,
    plink: str = "plink",
) -> List[str]:
    cmd = [plink, "--vcf", str(vcf), "--maf", str(maf)]
    if update_sex:
        cmd += ["--update-sex", str(update_sex)]
    cmd += [
        "--r2",
        "--ld-window", str(ld_window),
        "--ld-window-r2", str(ld_window_r2),
        "--make-bed",
        "--out", str(out_prefix),
    ]
    return cmd


def write_no_rsid_copy(plink_prefix, no_rsid_prefix) -> Path:
    """
    Copy a .bed/.bim/.fam triplet, removing every ';rs<N>' from the .bim
    variant IDs so they match the chr:pos:ref:alt IDs of the .ma files.
    """
    plink_prefix, no_rsid_prefix = Path(plink_prefix), Path(no_rsid_prefix)
    missing = [s for s in PLINK_SUFFIXES if not Path(f"{plink_prefix}{s}").is_file()]
    if missing:
        raise FileNotFoundError(f"❌ PLINK output incomplete for {plink_prefix}: missing {', '.join(missing)}")

    no_rsid_prefix.parent.mkdir(parents=True, exist_ok=True)
    with open(f"{plink_prefix}.bim") as src, open(f"{no_rsid_prefix}.bim", "w") as dst:
        for line in src:
            dst.write(strip_rsid_suffix(line))
    for suffix in (".bed", ".fam"):
        shutil.copyfile(f"{plink_prefix}{suffix}", f"{no_rsid_prefix}{suffix}")
    return no_rsid_prefix


def gzip_file(path) -> Path:
    """gzip in place (``x`` -> ``x.gz``), removing the original."""
    path = Path(path)
    target = path.with_name(path.name + ".gz")
    with open(path, "rb") as src, gzip.open(target, "wb") as dst:
        shutil.copyfileobj(src, dst)
    path.unlink()
    return target


def build_panel(
    chromosome,
    vcf_template: str,
    samples,
    outdir,
    prefix: str = "discovery_hg38",
    update_sex=None,
    r2_threshold: float = 0.3,
    maf: float = 0.0001,
    ld_window: int = 99999,
    ld_window_r2: float = 0.05,
    bcftools: str = "bcftools",
    plink: str = "plink",
    keep_vcf: bool = False,
    logger=None,
) -> Dict[str, Optional[str]]:
    """
    Filtered VCF -> PLINK triplet (+ pairwise LD) -> rsID-free copy for one
    chromosome. ``vcf_template`` holds a ``{chr}`` placeholder (X for 23).

    A missing or empty VCF raises ValueError; external-tool failures raise
    RuntimeError from ``run_cmd``.
    """
    label = chrom_label(chromosome)
    paths = panel_paths(outdir, prefix, chromosome)
    Path(outdir).mkdir(parents=True, exist_ok=True)

    vcf = apply_validator(
        validate_path(must_exist=True, must_be_file=True, must_not_be_empty=True),
        vcf_template.format(chr=label),
    )

    steps = [
        ("bcftools", build_bcftools_command(vcf, samples, paths["tmp_vcf"], r2_threshold, bcftools)),
        ("plink", build_plink_command(
            paths["tmp_vcf"], paths["plink_prefix"], maf, update_sex, ld_window, ld_window_r2, plink
        )),
    ]
    for name, cmd in steps:
        if logger:
            logger.info(f"[chr{label}] {name}: {shlex.join(cmd)}")
        result = run_cmd(cmd)
        if logger and result.stderr:
            logger.info(f"[chr{label}] {name} stderr:\n{result.stderr}")

    no_rsid = write_no_rsid_copy(paths["plink_prefix"], paths["no_rsid_prefix"])
    if logger:
        logger.info(f"[chr{label}] rsID-free copy: {no_rsid}")

    ld_gz = None
    if paths["ld"].is_file():
        ld_gz = gzip_file(paths["ld"])

    if not keep_vcf:
        paths["tmp_vcf"].unlink(missing_ok=True)

    return {
        "chromosome": label,
        "plink_prefix": str(paths["plink_prefix"]),
        "no_rsid_prefix": str(no_rsid),
        "ld": str(ld_gz) if ld_gz else None,
        "filtered_vcf": str(paths["tmp_vcf"]) if keep_vcf else None,
    }
