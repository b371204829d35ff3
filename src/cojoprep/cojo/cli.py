#!/usr/bin/env python3
"""
cojoprep — GCTA-COJO jobs

Sub-commands:
  • make-table   – pair the .ma file with each conditioning list
  • run-task     – run one job-table row (inside a scheduler job array)
  • run-local    – run every row in a local process pool
  • array-script – write an SGE / SLURM job-array script for the table
"""
import argparse
import sys
from rich_argparse import RichHelpFormatter

from cojoprep.clis.common_cli import (
    get_config_parser,
    get_common_out_parser,
    get_cojo_params_parser,
    get_gcta_binary_parser,
    get_job_table_parser,
    get_workers_parser,
)
from cojoprep.cojo.runner import SCHEDULERS
from cojoprep.cojo.workflows import (
    run_array_script_direct,
    run_cojo_local_direct,
    run_cojo_task_direct,
    run_make_table_direct,
)
from cojoprep.utils.main import validate_path


def get_make_table_parser(add_help=False):
    parser = argparse.ArgumentParser(add_help=add_help)
    group = parser.add_argument_group("JOB TABLE Inputs")
    group.add_argument(
        "--directory",
        metavar="",
        required=True,
        type=validate_path(must_exist=True, must_be_dir=True, dir_must_have_files=True),
        help=(
            "[bold bright_red]Required[/bold bright_red]: Folder holding exactly one .ma file "
            "and the chr<N>_<pos>.snplist conditioning lists."
        ),
    )
    group.add_argument("--stats-glob", metavar="", default=None,
                       help="Statistics file pattern. [bold green]Default:[/bold green] [cyan]*.ma[/cyan]")
    group.add_argument("--list-glob", metavar="", default=None,
                       help="Conditioning list pattern. [bold green]Default:[/bold green] [cyan]chr*_*.snplist[/cyan]")
    group.add_argument(
        "--outdir",
        metavar="",
        default=None,
        help="Folder for GCTA outputs (prefix of each row). [bold green]Default:[/bold green] --directory",
    )
    group.add_argument(
        "--output",
        metavar="",
        default=None,
        help="Job table path. [bold green]Default:[/bold green] <directory>/cojo_jobs.txt",
    )
    return parser


def get_task_parser(add_help=False):
    parser = argparse.ArgumentParser(add_help=add_help)
    group = parser.add_argument_group("TASK Arguments")
    group.add_argument(
        "--task-id",
        type=int,
        metavar="",
        default=None,
        help=(
            "1-based job-table row. "
            "[bold green]Default:[/bold green] SGE_TASK_ID / SLURM_ARRAY_TASK_ID / PBS_ARRAY_INDEX"
        ),
    )
    group.add_argument("--dry-run", action="store_true",
                       help="Print the GCTA command instead of running it.")
    return parser


def get_array_script_parser(add_help=False):
    parser = argparse.ArgumentParser(add_help=add_help)
    group = parser.add_argument_group("ARRAY SCRIPT Arguments")
    group.add_argument("--output", metavar="", required=True,
                       help="[bold bright_red]Required[/bold bright_red]: Path of the submission script.")
    group.add_argument("--scheduler", choices=SCHEDULERS, default="sge", metavar="",
                       help="[cyan]sge[/cyan] or [cyan]slurm[/cyan]. [bold green]Default:[/bold green] [cyan]sge[/cyan]")
    group.add_argument("--runtime", metavar="", default=None,
                       help="Wall time per task. [bold green]Default:[/bold green] [cyan]00:30:00[/cyan]")
    group.add_argument("--memory", metavar="", default=None,
                       help="Memory per task. [bold green]Default:[/bold green] [cyan]16G[/cyan]")
    group.add_argument("--workdir", metavar="", default=None,
                       help="Directory the tasks cd into before running.")
    return parser


def get_parser():
    top_parser = argparse.ArgumentParser(
        prog="cojo",
        description=(
            "GCTA-COJO job module\n\n"
            "  • make-table   — one row per conditioning list\n"
            "  • run-task     — one row, exit code of GCTA\n"
            "  • run-local    — all rows in a process pool\n"
            "  • array-script — SGE / SLURM job-array script"
        ),
        formatter_class=RichHelpFormatter,
    )
    subparsers = top_parser.add_subparsers(dest="mode")

    make_table = subparsers.add_parser(
        "make-table",
        help="Build the job table from a folder of .ma + .snplist files.",
        parents=[get_config_parser(), get_make_table_parser()],
        formatter_class=RichHelpFormatter,
    )
    make_table.set_defaults(func=run_make_table_direct)

    run_task = subparsers.add_parser(
        "run-task",
        help="Run one job-table row (job-array task).",
        parents=[
            get_config_parser(),
            get_job_table_parser(),
            get_task_parser(),
            get_cojo_params_parser(),
            get_gcta_binary_parser(),
        ],
        formatter_class=RichHelpFormatter,
    )
    run_task.set_defaults(func=run_cojo_task_direct)

    run_local = subparsers.add_parser(
        "run-local",
        help="Run every job-table row on this machine.",
        parents=[
            get_config_parser(),
            get_job_table_parser(),
            get_cojo_params_parser(),
            get_gcta_binary_parser(),
            get_workers_parser(),
            get_common_out_parser(),
        ],
        formatter_class=RichHelpFormatter,
    )
    run_local.set_defaults(func=run_cojo_local_direct)

    array_script = subparsers.add_parser(
        "array-script",
        help="Write a job-array submission script for the table.",
        parents=[
            get_config_parser(),
            get_job_table_parser(),
            get_array_script_parser(),
            get_cojo_params_parser(),
            get_gcta_binary_parser(),
        ],
        formatter_class=RichHelpFormatter,
    )
    array_script.set_defaults(func=run_array_script_direct)

    return top_parser


def main(argv=None):
    parser = get_parser()
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        parser.print_help()
        sys.exit(0)

    args = parser.parse_args(argv)
    if hasattr(args, "func"):
        return args.func(args)
    parser.print_help()


if __name__ == "__main__":
    main()
