import os
import re
import json
import logging
import argparse
import hashlib
import multiprocessing
import subprocess
import shutil
from datetime import datetime
from importlib import resources
from pathlib import Path

import yaml


## validate_alphanumeric
## require_executable(name)
## run_cmd(cmd)
## auto_detect_workers()
## safe_thread_count(requested_threads, gb_per_thread=16)
## create_default_log(prefix="log", sample_id=None, outdir=None)
## get_logger(name, log_file)
## validate_path(...) / apply_validator(validator, path_str)
## file_sha256(path) / write_json(obj, path)
## load_default_config(filename) / merge_config(defaults, overrides) / resolve_config(path)
## array_task_id()


# ------------------------------------------------------------
# Error taxonomy
# ------------------------------------------------------------
class SchemaError(ValueError):
    """Input table is missing, or has malformed, required columns."""


class DataQualityError(ValueError):
    """A transformed table violates an output post-condition."""


class PanelVersionError(ValueError):
    """A variant index does not belong to the expected reference panel."""


def validate_alphanumeric(value: str) -> str:
    if value is None:
        raise argparse.ArgumentTypeError("Value cannot be empty.")
    v = value.strip()
    if not re.match(r'^[A-Za-z0-9_.-]+$', v):
        raise argparse.ArgumentTypeError(
            f"Invalid value '{value}': must contain only letters, digits, '.', '-' and '_'."
        )
    return v


def require_executable(name: str):
    """
    Ensure an external executable exists in PATH.
    """
    if shutil.which(name) is None:
        raise EnvironmentError(
            f"❌ Required executable not found in PATH: '{name}'\n"
            f"👉 Please install it or activate the correct environment."
        )


# ------------------------------------------------------------
# Reusable command runner with clean failure messages
# ------------------------------------------------------------
def run_cmd(cmd, check=True, shell=None, capture_output=True, text=True):
    """
    Simple, generalised subprocess runner.
    - If shell is not provided:
        * list command  -> shell=False
        * string command -> shell=True
    """
    if shell is None:
        shell = isinstance(cmd, str)

    try:
        result = subprocess.run(
            cmd,
            check=check,
            shell=shell,
            capture_output=capture_output,
            text=text
        )
        return result

    except FileNotFoundError:
        raise FileNotFoundError(
            f"❌ Executable not found: {cmd}\n"
            "Ensure it is installed and available in your PATH."
        )

    except subprocess.CalledProcessError as e:
        raise RuntimeError(
            f"❌ Command failed with exit code {e.returncode}:\n"
            f"   {cmd}\n"
            "--------------- stderr ---------------\n"
            f"{e.stderr}"
        ) from e


def auto_detect_workers():
    """
    CPU auto-detection.
    - Respects SLURM limits
    - Respects cgroup v2 CPU quotas
    - Leaves 1 CPU free for system stability
    """
    for var in ("SLURM_CPUS_PER_TASK", "SLURM_CPUS_ON_NODE", "NSLOTS"):
        val = os.environ.get(var)
        if val:
            # Handle formats like "16", "16(x2)"
            try:
                cpus = int(val.split("(")[0])
                return max(1, cpus - 1)
            except ValueError:
                pass

    cpu_max_path = "/sys/fs/cgroup/cpu.max"
    if os.path.exists(cpu_max_path):
        try:
            with open(cpu_max_path) as fh:
                quota, period = fh.read().strip().split()
            if quota != "max":
                cpus = int(quota) // int(period)
                if cpus > 0:
                    return max(1, cpus - 1)
        except (OSError, ValueError):
            pass

    return max(1, multiprocessing.cpu_count() - 1)


def safe_thread_count(requested_threads, gb_per_thread=16, console=None):
    """
    Ensure the number of parallel tasks does not exceed available memory.

    Parameters
    ----------
    requested_threads : int
        Number of tasks requested by user.
    gb_per_thread : int
        Minimum GB of RAM required per task.

    Returns
    -------
    int
        Safe number of tasks based on system memory.
    """
    import psutil

    say = console.print if console is not None else print

    total_ram_gb = psutil.virtual_memory().total / (1024**3)
    max_threads = int(total_ram_gb // gb_per_thread)
    if max_threads < 1:
        say(f"⚠️ Only {total_ram_gb:.1f} GB RAM available "
            f"(≥ {gb_per_thread} GB per task recommended) → running 1 task at a time.")
        return 1
    if requested_threads > max_threads:
        say(f"⚠️ Reducing parallel tasks from {requested_threads} → {max_threads} "
            f"(RAM available: {total_ram_gb:.1f} GB; {gb_per_thread} GB/task)")
        return max_threads
    return requested_threads


def create_default_log(prefix="log", sample_id=None, outdir=None):
    """
    Create a unified default log filename for any module.

    Parameters
    ----------
    prefix : str
        Module name prefix (e.g., 'make_ma', 'liftover').
    sample_id : str or None
        Optional trait name (e.g., 'HOMA_IR').
    outdir : str or Path or None
        Output directory where log should be placed. Default: current working directory.

    Returns
    -------
    str : Full path to log file.
    """
    if outdir is None:
        outdir = Path.cwd()
    else:
        outdir = Path(outdir).expanduser().resolve()

    outdir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    if sample_id:
        filename = f"{prefix}_{sample_id}_{timestamp}.log"
    else:
        filename = f"{prefix}_{timestamp}.log"

    return str(outdir / filename)


def get_logger(name: str, log_file=None) -> logging.Logger:
    """
    Create / fetch a dedicated file logger.
    Without a log file the logger only carries a NullHandler.
    """
    logger = logging.getLogger(f"cojoprep.{name}")

    # Avoid attaching multiple handlers if called multiple times
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        if log_file is not None:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(log_file, mode="w")
            handler.setFormatter(
                logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
            )
        else:
            handler = logging.NullHandler()
        logger.addHandler(handler)
        logger.propagate = False  # no duplicate logs to root

    return logger


def close_logger(logger: logging.Logger):
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def validate_path(
    must_exist=False,
    must_be_file=False,
    must_be_dir=False,
    create_if_missing=False,
    must_not_be_empty=False,
    allowed_suffixes=None,
    dir_must_have_files=False,
):
    """
    Generalized path validator usable as an argparse ``type=``.
    """

    def _validator(path_str):
        p = Path(path_str)

        if create_if_missing:
            if p.exists() and not p.is_dir():
                raise argparse.ArgumentTypeError(f"❌ Expected a directory but got file: {p}")
            if not p.exists():
                try:
                    p.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise argparse.ArgumentTypeError(f"❌ Cannot create directory {p}: {e}")
            return p

        if must_exist and not p.exists():
            raise argparse.ArgumentTypeError(f"❌ Path does not exist: {p}")

        if must_be_file and not p.is_file():
            raise argparse.ArgumentTypeError(f"❌ Expected a file but got: {p}")

        if must_be_dir and not p.is_dir():
            raise argparse.ArgumentTypeError(f"❌ Expected a directory but got: {p}")

        if p.is_file():
            if must_not_be_empty and p.stat().st_size == 0:
                raise argparse.ArgumentTypeError(f"❌ File is empty: {p}")

            if allowed_suffixes:
                suffix = "".join(p.suffixes)
                allowed = {s if s.startswith(".") else f".{s}" for s in allowed_suffixes}
                if not any(suffix.endswith(a) for a in allowed):
                    raise argparse.ArgumentTypeError(
                        f"❌ Invalid suffix '{suffix}' for {p}. Allowed: {sorted(allowed)}"
                    )
            return p

        if p.is_dir():
            files = [f for f in p.iterdir() if f.is_file()]
            if dir_must_have_files and len(files) == 0:
                raise argparse.ArgumentTypeError(f"❌ Directory contains no files: {p}")
            return p

        return p

    return _validator


def apply_validator(validator, path_str):
    """
    Apply an argparse-style validator outside argparse, e.g. to a path built
    from a template or read from config. Failures become ValueError.
    """
    try:
        return validator(path_str)
    except argparse.ArgumentTypeError as e:
        raise ValueError(str(e)) from e


def file_sha256(path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(1 << 20), b""):
            h.update(chunk)
    return h.hexdigest()


def write_json(obj, path):
    with open(path, "w") as fh:
        json.dump(obj, fh, indent=4, sort_keys=True)
        fh.write("\n")


# ------------------------------------------------------------
# Configuration
# ------------------------------------------------------------
def load_default_config(filename: str = "defaults.yaml"):
    """
    Load a YAML config file.

        • If `filename` is a valid filesystem path → load directly.
        • Else → try loading from the cojoprep.config package resource.
    """
    if os.path.isfile(filename):
        try:
            with open(filename, "r") as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise RuntimeError(
                f"❌ ERROR: Failed to load config from path:\n  {filename}\nReason: {e}"
            )

    resource = resources.files("cojoprep.config").joinpath(filename)
    if not resource.is_file():
        raise FileNotFoundError(
            f"❌ Config file '{filename}' not found.\n"
            f"Tried filesystem path AND cojoprep.config resource."
        )
    return yaml.safe_load(resource.read_text()) or {}


def merge_config(defaults: dict, overrides: dict) -> dict:
    """
    Shallow merge per top-level section: keys of a user section replace the
    matching default keys, untouched keys keep their defaults.
    """
    merged = {k: (dict(v) if isinstance(v, dict) else v) for k, v in defaults.items()}
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


def resolve_config(config_path=None) -> dict:
    """Packaged defaults, optionally overridden by a user YAML file."""
    config = load_default_config("defaults.yaml")
    if config_path:
        config = merge_config(config, load_default_config(str(config_path)))
    return config


ARRAY_TASK_VARS = ("SGE_TASK_ID", "SLURM_ARRAY_TASK_ID", "PBS_ARRAY_INDEX")


def array_task_id(environ=None):
    """
    Return the scheduler job-array index (int) or None when not running
    inside an array task. SGE reports 'undefined' outside arrays.
    """
    environ = os.environ if environ is None else environ
    for var in ARRAY_TASK_VARS:
        val = environ.get(var)
        if val and val.strip().isdigit():
            return int(val)
    return None
