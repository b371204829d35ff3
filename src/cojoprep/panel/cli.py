#!/usr/bin/env python3
"""
cojoprep — Reference panel

Per chromosome: imputation-quality filter (bcftools) → PLINK bfiles + LD
(plink) → rsID-free copy under plink_no_rsID/ for GCTA-COJO.
"""

import argparse
from rich_argparse import RichHelpFormatter

from cojoprep.clis.common_cli import (
    get_bcftools_binary_parser,
    get_config_parser,
    get_common_out_parser,
    get_plink_binary_parser,
)
from cojoprep.panel.workflows import run_panel_direct
from cojoprep.utils.chromosomes import encode_chromosome
from cojoprep.utils.main import validate_path


def chromosome_arg(value):
    try:
        return encode_chromosome(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def get_panel_parser(add_help=False):
    parser = argparse.ArgumentParser(add_help=add_help)
    group = parser.add_argument_group("PANEL Arguments")
    group.add_argument(
        "--vcf-template",
        metavar="",
        required=True,
        help=(
            "[bold bright_red]Required[/bold bright_red]: Imputed VCF path with a "
            "[cyan]{chr}[/cyan] placeholder, e.g. [cyan]dose/chr{chr}.dose.vcf.gz[/cyan] (X for 23)."
        ),
    )
    group.add_argument(
        "--samples",
        metavar="",
        required=True,
        type=validate_path(must_exist=True, must_be_file=True, must_not_be_empty=True),
        help="[bold bright_red]Required[/bold bright_red]: Sample IDs to keep (bcftools -S).",
    )
    group.add_argument(
        "--chromosome",
        metavar="",
        type=chromosome_arg,
        default=None,
        help="1-22 or X/23. [bold green]Default:[/bold green] job-array index (SGE_TASK_ID, ...)",
    )
    group.add_argument(
        "--update-sex",
        metavar="",
        default=None,
        type=validate_path(must_exist=True, must_be_file=True),
        help="Sex information file passed to plink --update-sex.",
    )
    group.add_argument("--prefix", metavar="", default=None,
                       help="Output file prefix. [bold green]Default:[/bold green] [cyan]discovery_hg38[/cyan]")
    group.add_argument("--r2-threshold", type=float, metavar="", default=None,
                       help="Minimum INFO/R2. [bold green]Default:[/bold green] [cyan]0.3[/cyan]")
    group.add_argument("--maf", type=float, metavar="", default=None,
                       help="plink --maf. [bold green]Default:[/bold green] [cyan]0.0001[/cyan]")
    group.add_argument("--keep-vcf", action="store_true",
                       help="Keep the intermediate filtered VCF.")
    return parser


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="panel",
        description="Build one chromosome of the PLINK reference panel used by GCTA-COJO.",
        formatter_class=RichHelpFormatter,
        parents=[
            get_config_parser(),
            get_panel_parser(),
            get_bcftools_binary_parser(),
            get_plink_binary_parser(),
            get_common_out_parser(),
        ],
    )
    parser.set_defaults(func=run_panel_direct)
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    main()
