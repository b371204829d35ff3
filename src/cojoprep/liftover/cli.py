#!/usr/bin/env python3
"""
cojoprep — Liftover

Attach reference/alternate alleles to a (chr, pos) table and remap the
resulting intervals to another genome build through a chain file.
"""

import argparse
from rich_argparse import RichHelpFormatter

from cojoprep.clis.common_cli import get_config_parser, get_common_out_parser
from cojoprep.liftover.workflows import run_liftover_direct
from cojoprep.utils.main import validate_path


def get_liftover_parser(add_help=False):
    parser = argparse.ArgumentParser(add_help=add_help)

    inputs = parser.add_argument_group("INPUT Arguments")
    inputs.add_argument(
        "--input",
        metavar="",
        required=True,
        type=validate_path(must_exist=True, must_be_file=True, must_not_be_empty=True),
        help="[bold bright_red]Required[/bold bright_red]: Table keyed by chromosome and position.",
    )
    inputs.add_argument(
        "--master",
        metavar="",
        required=True,
        type=validate_path(must_exist=True, must_be_file=True, must_not_be_empty=True),
        help="[bold bright_red]Required[/bold bright_red]: Variant master list with REF/ALT alleles.",
    )
    inputs.add_argument("--chr-col", dest="chr_col", metavar="", default=None,
                        help="Chromosome column of --input. [bold green]Default:[/bold green] [cyan]chr[/cyan]")
    inputs.add_argument("--pos-col", dest="pos_col", metavar="", default=None,
                        help="Position column of --input. [bold green]Default:[/bold green] [cyan]pos[/cyan]")
    for key, default in [("chr", "CHR"), ("pos", "POS"), ("ref", "REF"), ("alt", "ALT")]:
        inputs.add_argument(
            f"--master-{key}-col",
            dest=f"master_{key}_col",
            metavar="",
            default=None,
            help=f"{key} column of --master. [bold green]Default:[/bold green] [cyan]{default}[/cyan]",
        )

    chain = parser.add_argument_group("CHAIN Arguments")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--chain",
        metavar="",
        type=validate_path(must_exist=True, must_be_file=True, must_not_be_empty=True),
        help="Chain file to use directly.",
    )
    source.add_argument(
        "--resource-folder",
        metavar="",
        type=validate_path(must_exist=True, must_be_dir=True),
        help="Folder holding chain_files/<source>_to_<target>.chain[.gz].",
    )
    chain.add_argument("--source-build", dest="source_build", metavar="", default=None,
                       help="Build of the input. [bold green]Default:[/bold green] [cyan]hg38[/cyan]")
    chain.add_argument("--target-build", dest="target_build", metavar="", default=None,
                       help="Build to lift to. [bold green]Default:[/bold green] [cyan]hg19[/cyan]")
    chain.add_argument(
        "--disallowed-contigs",
        nargs="*",
        metavar="",
        default=None,
        help="Target contigs whose hits are dropped. [bold green]Default:[/bold green] [cyan]chrY[/cyan]",
    )
    chain.add_argument("--output", metavar="", default=None,
                       help="Output TSV. [bold green]Default:[/bold green] <outdir>/<sample>_<target>.tsv")
    return parser


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="liftover",
        description="Remap (chr, pos) intervals to another genome build.",
        formatter_class=RichHelpFormatter,
        parents=[get_config_parser(), get_liftover_parser(), get_common_out_parser()],
    )
    parser.set_defaults(func=run_liftover_direct)
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    main()
