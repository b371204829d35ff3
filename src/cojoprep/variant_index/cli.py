#!/usr/bin/env python3
"""
cojoprep — Variant Index Builder

Scan per-chromosome PLINK .bim files and persist one lookup table
(chr, pos) -> variant_id, versioned with the reference panel it came from.
"""

import argparse
from rich_argparse import RichHelpFormatter

from cojoprep.clis.common_cli import get_config_parser, get_common_out_parser
from cojoprep.utils.main import validate_path
from cojoprep.variant_index.workflows import run_variant_index_direct


def get_parser():
    parser = argparse.ArgumentParser(
        prog="variant-index",
        description="Build the (chr, pos) → variant_id index from a reference panel's .bim files.",
        formatter_class=RichHelpFormatter,
        parents=[get_config_parser(), get_common_out_parser()],
    )

    group = parser.add_argument_group("INPUT Arguments")
    group.add_argument(
        "--bim",
        nargs="+",
        metavar="",
        type=validate_path(must_exist=True, must_be_file=True, must_not_be_empty=True),
        help="One or more per-chromosome .bim files.",
    )
    group.add_argument(
        "--bim-dir",
        metavar="",
        type=validate_path(must_exist=True, must_be_dir=True, dir_must_have_files=True),
        help="Directory holding the per-chromosome .bim files.",
    )
    group.add_argument(
        "--bim-glob",
        metavar="",
        default=None,
        help="File pattern inside --bim-dir. [bold green]Default:[/bold green] [cyan]*.bim[/cyan]",
    )
    group.add_argument(
        "--strip-rsid",
        action="store_true",
        help="Remove ';rs<N>' suffixes from variant IDs while indexing.",
    )
    group.add_argument(
        "--panel-version",
        metavar="",
        required=True,
        help=(
            "[bold bright_red]Required[/bold bright_red]: Version label of the reference panel "
            "(e.g. [cyan]freeze9b_hg38[/cyan]). Stored next to the index."
        ),
    )
    group.add_argument(
        "--output",
        metavar="",
        default=None,
        help="Index TSV path. [bold green]Default:[/bold green] <outdir>/variant_index_<panel-version>.tsv",
    )
    return parser


def main(argv=None):
    parser = get_parser()
    args = parser.parse_args(argv)
    if not args.bim and not args.bim_dir:
        parser.error("one of --bim or --bim-dir is required")
    return run_variant_index_direct(args)


if __name__ == "__main__":
    main()
