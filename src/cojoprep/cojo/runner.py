import os
import shlex
import subprocess
from concurrent.futures import ProcessPoolExecutor, as_completed
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from cojoprep.cojo.job_table import JobRow
from cojoprep.utils.chromosomes import chrom_label


# GCTA-COJO parameters of the original analysis
DEFAULT_COJO_PARAMS = {
    "maf": 0.01,
    "cojo_wind": 10000,
    "cojo_collinear": 0.9,
    "diff_freq": 0.5,
    "cojo_gc": True,
}

SCHEDULERS = ("sge", "slurm")


def cojo_params(config: dict, overrides: Optional[dict] = None) -> dict:
    """COJO parameters: built-in defaults < config ``cojo`` section < CLI flags (non-None)."""
    params = dict(DEFAULT_COJO_PARAMS)
    section = config.get("cojo", {})
    params.update({k: section[k] for k in DEFAULT_COJO_PARAMS if k in section})
    params.update({k: v for k, v in (overrides or {}).items() if v is not None and k in params})
    return params


def build_gcta_command(row: JobRow, bfile_template: str, params: Optional[dict] = None, gcta: str = "gcta64") -> List[str]:
    """
    Argument list for one conditional analysis. ``bfile_template`` holds a
    ``{chr}`` placeholder for the per-chromosome PLINK prefix. Chromosome 23 fills
    it as X, matching the panel file names; ``--chr`` stays numeric.
    """
    p = {**DEFAULT_COJO_PARAMS, **(params or {})}
    cmd = [
        gcta,
        "--bfile", bfile_template.format(chr=chrom_label(row.chromosome)),
        "--chr", str(row.chromosome),
        "--maf", str(p["maf"]),
        "--cojo-file", str(row.ma_file),
        "--cojo-cond", str(row.cond_file),
        "--cojo-wind", str(p["cojo_wind"]),
        "--cojo-collinear", str(p["cojo_collinear"]),
        "--diff-freq", str(p["diff_freq"]),
    ]
    if p["cojo_gc"]:
        cmd.append("--cojo-gc")
    cmd += ["--out", str(row.output_prefix)]
    return cmd


def task_log_file(row: JobRow) -> Path:
    return Path(f"{row.output_prefix}.cojoprep.log")


# ============================================================
# 1. WORKER FUNCTION
# ============================================================
def run_cojo_task(row: JobRow, bfile_template: str, params: Optional[dict] = None, gcta: str = "gcta64") -> int:
    """
    Run GCTA-COJO for one job-table row and return its exit code.
    The command line, stdout and stderr go to ``<output_prefix>.cojoprep.log``.
    """
    cmd = build_gcta_command(row, bfile_template, params, gcta)
    log_file = task_log_file(row)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    with log_file.open("w") as f:
        f.write(f"# Timestamp: {datetime.now()}\n")
        f.write(f"# Chromosome: {row.chromosome}\n")
        f.write("# Executed Command:\n")
        f.write(shlex.join(cmd) + "\n")

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, env=os.environ.copy())
    except FileNotFoundError:
        with log_file.open("a") as f:
            f.write(f"\n# EXECUTION FAILED: executable not found: {gcta}\n")
        return 127

    with log_file.open("a") as f:
        f.write("\n# stdout:\n")
        f.write(result.stdout or "")
        f.write("\n# stderr:\n")
        f.write(result.stderr or "")
        f.write(f"\n# Exit code: {result.returncode}\n")
    return result.returncode


def _run_row(task):
    row, bfile_template, params, gcta = task
    code = run_cojo_task(row, bfile_template, params, gcta)
    return {
        "chromosome": row.chromosome,
        "cond_file": row.cond_file,
        "output_prefix": row.output_prefix,
        "exit_code": code,
        "log_file": str(task_log_file(row)),
    }


# ============================================================
# 2. MANAGER FUNCTION
# ============================================================
def run_cojo_local(
    rows: List[JobRow],
    bfile_template: str,
    params: Optional[dict] = None,
    gcta: str = "gcta64",
    workers: int = 1,
) -> List[Dict]:
    """
    Run every row in a local process pool. Rows share no output, and a
    failing row does not cancel the others. Results follow job-table order.
    """
    tasks = [(row, bfile_template, params, gcta) for row in rows]
    results = {}
    with ProcessPoolExecutor(max_workers=max(1, workers)) as executor:
        futures = {executor.submit(_run_row, task): i for i, task in enumerate(tasks)}
        for future in as_completed(futures):
            i = futures[future]
            try:
                results[i] = future.result()
            except Exception as e:
                row = rows[i]
                results[i] = {
                    "chromosome": row.chromosome,
                    "cond_file": row.cond_file,
                    "output_prefix": row.output_prefix,
                    "exit_code": 1,
                    "log_file": str(task_log_file(row)),
                    "error": str(e),
                }
    return [results[i] for i in range(len(tasks))]


# ============================================================
# 3. JOB-ARRAY SCRIPT
# ============================================================
def write_array_script(
    path,
    n_tasks: int,
    job_table,
    scheduler: str = "sge",
    runtime: str = "00:30:00",
    memory: str = "16G",
    extra_args: Optional[List[str]] = None,
    workdir=None,
) -> Path:
    """
    Write a job-array submission script with one task per job-table row;
    each task calls ``cojoprep cojo run-task`` on its own row.
    """
    if n_tasks < 1:
        raise ValueError("❌ A job array needs at least one task.")
    if scheduler not in SCHEDULERS:
        raise ValueError(f"❌ Unknown scheduler '{scheduler}'. Choose from: {', '.join(SCHEDULERS)}")

    run_line = shlex.join(
        ["cojoprep", "cojo", "run-task", "--job-table", str(job_table)] + list(extra_args or [])
    )

    if scheduler == "sge":
        header = [
            "#!/bin/bash",
            "#$ -S /bin/bash",
            f"#$ -l h_rt={runtime}",
            f"#$ -l h_vmem={memory}",
            f"#$ -t 1-{n_tasks}",
            "#$ -cwd",
            "#$ -j yes",
        ]
    else:
        header = [
            "#!/bin/bash",
            f"#SBATCH --time={runtime}",
            f"#SBATCH --mem={memory}",
            f"#SBATCH --array=1-{n_tasks}",
        ]

    body = ["", "set -euo pipefail", ""]
    if workdir is not None:
        body += [f"cd {shlex.quote(str(workdir))}", ""]
    body.append(run_line)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(header + body) + "\n")
    path.chmod(0o755)
    return path
