import re
from pathlib import Path
from typing import List, NamedTuple, Optional

from cojoprep.utils.chromosomes import encode_chromosome
from cojoprep.utils.io import read_headerless_whitespace


LIST_CHROMOSOME = re.compile(r"^chr(?P<chr>[0-9]+|[XxYy]|MT|mt)_")
JOB_COLUMNS = ["chromosome", "ma_file", "cond_file", "output_prefix"]


class JobRow(NamedTuple):
    chromosome: int
    ma_file: str
    cond_file: str
    output_prefix: str


def chromosome_from_list_name(name: str) -> int:
    """'chr7_1234.snplist' -> 7, 'chrX_99.snplist' -> 23."""
    m = LIST_CHROMOSOME.match(Path(name).name)
    if m is None:
        raise ValueError(
            f"❌ Cannot read a chromosome from list file '{name}'; "
            "expected a name like chr<N>_<pos>.snplist."
        )
    return encode_chromosome(m.group("chr"))


def make_job_table(
    directory,
    stats_glob: str = "*.ma",
    list_glob: str = "chr*_*.snplist",
    outdir=None,
) -> List[JobRow]:
    """
    Pair the directory's single .ma file with each conditioning list.

    One row per list, lists in lexicographic file-name order; the output
    prefix is the list's stem inside ``outdir`` (default: ``directory``).
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"❌ Directory not found: {directory}")

    stats = sorted(p for p in directory.glob(stats_glob) if p.is_file())
    if len(stats) != 1:
        found = ", ".join(p.name for p in stats) or "none"
        raise ValueError(
            f"❌ Expected exactly one statistics file matching '{stats_glob}' in {directory}; "
            f"found {len(stats)} ({found})."
        )

    lists = sorted((p for p in directory.glob(list_glob) if p.is_file()), key=lambda p: p.name)
    if not lists:
        raise ValueError(f"❌ No conditioning lists matching '{list_glob}' in {directory}.")

    target = Path(outdir) if outdir is not None else directory
    return [
        JobRow(
            chromosome=chromosome_from_list_name(p.name),
            ma_file=str(stats[0]),
            cond_file=str(p),
            output_prefix=str(target / p.stem),
        )
        for p in lists
    ]


def write_job_table(rows: List[JobRow], path) -> Path:
    """Whitespace-delimited, no header: chromosome ma_file cond_file output_prefix."""
    for row in rows:
        if any(re.search(r"\s", str(v)) for v in row):
            raise ValueError(f"❌ Job table fields cannot contain whitespace: {row}")
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(" ".join(str(v) for v in row) + "\n" for row in rows))
    return path


def read_job_table(path) -> List[JobRow]:
    df = read_headerless_whitespace(
        path, JOB_COLUMNS, min_columns=len(JOB_COLUMNS), max_columns=len(JOB_COLUMNS)
    )
    return [
        JobRow(encode_chromosome(c), m, s, o)
        for c, m, s, o in df.iter_rows()
    ]


def select_job(rows: List[JobRow], task_id: Optional[int]) -> JobRow:
    """Row for a 1-based job-array index."""
    if task_id is None:
        raise ValueError(
            "❌ No task id: pass --task-id or run inside a job array "
            "(SGE_TASK_ID / SLURM_ARRAY_TASK_ID / PBS_ARRAY_INDEX)."
        )
    if not 1 <= task_id <= len(rows):
        raise ValueError(f"❌ Task id {task_id} is outside the job table (1-{len(rows)}).")
    return rows[task_id - 1]
