#!/usr/bin/env python3
"""
cojoprep — Formatter

Convert raw meta-analysis output into GCTA-COJO inputs:
    - make-ma : raw summary statistics -> .ma
    - snplist : top-hits table -> per-locus conditioning lists
"""

import argparse
from rich_argparse import RichHelpFormatter

from cojoprep.clis.common_cli import (
    get_config_parser,
    get_common_out_parser,
    get_raw_sumstat_parser,
    get_variant_index_parser,
)
from cojoprep.utils.main import validate_path
from cojoprep.formatter.workflows import run_make_ma_direct, run_snplist_direct


# ------------------------------------------------------------
# make-ma
# ------------------------------------------------------------
def get_make_ma_parser():
    parser = argparse.ArgumentParser(
        prog="make-ma",
        description="Reformat raw meta-analysis statistics → GCTA-COJO .ma file.",
        formatter_class=RichHelpFormatter,
        parents=[
            get_config_parser(),
            get_raw_sumstat_parser(),
            get_variant_index_parser(),
            get_common_out_parser(),
        ],
    )
    parser.set_defaults(func=run_make_ma_direct)
    return parser


def main(argv=None):
    parser = get_make_ma_parser()
    args = parser.parse_args(argv)
    return args.func(args)


# ------------------------------------------------------------
# snplist
# ------------------------------------------------------------
def get_snplist_parser():
    parser = argparse.ArgumentParser(
        prog="snplist",
        description="Write one conditioning list (chr<N>_<pos>.snplist) per top hit.",
        formatter_class=RichHelpFormatter,
        parents=[get_config_parser(), get_common_out_parser()],
    )
    group = parser.add_argument_group("INPUT Arguments")
    group.add_argument(
        "--top-hits",
        metavar="",
        required=True,
        type=validate_path(must_exist=True, must_be_file=True, must_not_be_empty=True),
        help="[bold bright_red]Required[/bold bright_red]: Table of lead variants (one row per locus).",
    )
    group.add_argument("--chr-col", metavar="", default="CHR",
                       help="Chromosome column. [bold green]Default:[/bold green] [cyan]CHR[/cyan]")
    group.add_argument("--pos-col", metavar="", default="POS",
                       help="Position column. [bold green]Default:[/bold green] [cyan]POS[/cyan]")
    group.add_argument("--ref-col", metavar="", default="REF",
                       help="Reference allele column. [bold green]Default:[/bold green] [cyan]REF[/cyan]")
    group.add_argument("--alt-col", metavar="", default="ALT",
                       help="Alternate allele column. [bold green]Default:[/bold green] [cyan]ALT[/cyan]")
    group.add_argument(
        "--ma",
        metavar="",
        default=None,
        type=validate_path(must_exist=True, must_be_file=True, must_not_be_empty=True),
        help="Optional .ma file; list IDs it does not contain are reported.",
    )
    parser.set_defaults(func=run_snplist_direct)
    return parser


def snplist_main(argv=None):
    parser = get_snplist_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    main()
