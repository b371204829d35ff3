import argparse
from rich_argparse import RichHelpFormatter

from cojoprep.utils.main import validate_path, validate_alphanumeric, auto_detect_workers


# get_config_parser()
# get_common_out_parser()
# get_bcftools_binary_parser(add_help=False)
# get_plink_binary_parser(add_help=False)
# get_gcta_binary_parser(add_help=False)
# get_variant_index_parser(add_help=False)
# get_raw_sumstat_parser(add_help=False)
# get_job_table_parser(add_help=False)
# get_cojo_params_parser(add_help=False)


AUTO_WORKERS = auto_detect_workers()


def get_config_parser():
    """
    Parent parser holding --config.
    Values from the YAML file override the packaged defaults.
    """
    parser = argparse.ArgumentParser(add_help=False, formatter_class=RichHelpFormatter)
    group = parser.add_argument_group("CONFIGURATION")
    group.add_argument(
        "--config",
        metavar="",
        default=None,
        type=validate_path(must_exist=True, must_be_file=True, allowed_suffixes=[".yaml", ".yml"]),
        help=(
            "YAML file overriding the packaged defaults "
            "(column names, COJO parameters, liftover contigs).\n"
            "[bold green]Default:[/bold green] [cyan]cojoprep/config/defaults.yaml[/cyan]"
        ),
    )
    return parser


def get_common_out_parser():
    """
    Common parser for shared OUTPUT arguments across cojoprep modules.
    Defaults are resolved AFTER parsing.
    """
    parser = argparse.ArgumentParser(add_help=False, formatter_class=RichHelpFormatter)
    group = parser.add_argument_group("OUTPUT Arguments")

    group.add_argument(
        "--sample_id",
        metavar="",
        type=validate_alphanumeric,
        help=(
            "Identifier for this trait (e.g., [cyan]HOMA_IR[/cyan]).\n"
            "Used as the prefix for generated output and log files."
        ),
    )
    group.add_argument(
        "--outdir",
        metavar="",
        default=None,
        type=validate_path(must_exist=False, must_be_dir=True, create_if_missing=True),
        help=(
            "Output directory.\n"
            "[bold green]Default:[/bold green] current working directory"
        ),
    )
    return parser


def get_bcftools_binary_parser(add_help=False):
    parser = argparse.ArgumentParser(add_help=add_help)
    group = parser.add_argument_group("BCFTOOLS binary")
    group.add_argument(
        "--bcftools",
        default=None,
        metavar="",
        help=(
            "Path to the bcftools binary. "
            "[bold green]Default:[/bold green] [cyan]bcftools[/cyan] from config / PATH"
        ),
    )
    return parser


def get_plink_binary_parser(add_help=False):
    parser = argparse.ArgumentParser(add_help=add_help)
    group = parser.add_argument_group("PLINK binary")
    group.add_argument(
        "--plink",
        default=None,
        metavar="",
        help=(
            "Path to the PLINK 1.9 executable. "
            "[bold green]Default:[/bold green] [cyan]plink[/cyan] from config / PATH"
        ),
    )
    return parser


def get_gcta_binary_parser(add_help=False):
    parser = argparse.ArgumentParser(add_help=add_help)
    group = parser.add_argument_group("GCTA binary")
    group.add_argument(
        "--gcta",
        default=None,
        metavar="",
        help=(
            "Path to the GCTA executable used for COJO. "
            "[bold green]Default:[/bold green] [cyan]gcta64[/cyan] from config / PATH"
        ),
    )
    return parser


def get_variant_index_parser(add_help=False):
    parser = argparse.ArgumentParser(add_help=add_help)
    group = parser.add_argument_group("VARIANT INDEX Arguments")
    group.add_argument(
        "--variant-index",
        metavar="",
        required=True,
        type=validate_path(must_exist=True, must_be_file=True, must_not_be_empty=True),
        help=(
            "[bold bright_red]Required[/bold bright_red]: Variant index TSV built by "
            "[cyan]cojoprep variant-index[/cyan] (needs its .meta.json sidecar)."
        ),
    )
    group.add_argument(
        "--panel-version",
        metavar="",
        default=None,
        help=(
            "Expected reference-panel version. The run is rejected when the index "
            "was built from a different panel version."
        ),
    )
    return parser


def get_raw_sumstat_parser(add_help=False):
    parser = argparse.ArgumentParser(add_help=add_help)
    group = parser.add_argument_group("INPUT sumstat Arguments")
    group.add_argument(
        "--sumstats",
        metavar="",
        required=True,
        type=validate_path(must_exist=True, must_be_file=True, must_not_be_empty=True),
        help=(
            "[bold bright_red]Required[/bold bright_red]: Raw meta-analysis output "
            "(tab / comma / space delimited, optionally gzipped)."
        ),
    )
    for key, default in [
        ("marker", "MarkerName"), ("allele1", "Allele1"), ("allele2", "Allele2"),
        ("freq1", "Freq1"), ("n", "Weight"), ("effect", "Zscore"), ("p", "P-value"),
    ]:
        group.add_argument(
            f"--{key}-col",
            dest=f"{key}_col",
            metavar="",
            default=None,
            help=f"Raw column for '{key}'. [bold green]Default:[/bold green] [cyan]{default}[/cyan]",
        )
    return parser


def get_job_table_parser(add_help=False, required=True):
    parser = argparse.ArgumentParser(add_help=add_help)
    group = parser.add_argument_group("JOB TABLE Arguments")
    group.add_argument(
        "--job-table",
        metavar="",
        required=required,
        type=validate_path(must_exist=True, must_be_file=True, must_not_be_empty=True),
        help="[bold bright_red]Required[/bold bright_red]: Job table written by [cyan]cojoprep cojo make-table[/cyan].",
    )
    return parser


def get_cojo_params_parser(add_help=False):
    """
    GCTA-COJO analysis parameters. Unset flags fall back to the config file.
    """
    parser = argparse.ArgumentParser(add_help=add_help)
    group = parser.add_argument_group("COJO Arguments")
    group.add_argument(
        "--bfile-template",
        metavar="",
        default=None,
        help=(
            "PLINK prefix of the reference panel with a [cyan]{chr}[/cyan] placeholder, e.g. "
            "[cyan]plink_no_rsID/discovery_hg38_no_rsID_chr{chr}[/cyan]."
        ),
    )
    group.add_argument("--maf", type=float, metavar="", default=None,
                       help="--maf passed to GCTA. [bold green]Default:[/bold green] [cyan]0.01[/cyan]")
    group.add_argument("--cojo-wind", type=int, metavar="", default=None,
                       help="--cojo-wind (kb). [bold green]Default:[/bold green] [cyan]10000[/cyan]")
    group.add_argument("--cojo-collinear", type=float, metavar="", default=None,
                       help="--cojo-collinear. [bold green]Default:[/bold green] [cyan]0.9[/cyan]")
    group.add_argument("--diff-freq", type=float, metavar="", default=None,
                       help="--diff-freq. [bold green]Default:[/bold green] [cyan]0.5[/cyan]")
    group.add_argument(
        "--no-cojo-gc",
        dest="cojo_gc",
        action="store_false",
        default=None,
        help="Do not pass --cojo-gc (genomic-control adjustment) to GCTA.",
    )
    return parser


def get_workers_parser(add_help=False):
    parser = argparse.ArgumentParser(add_help=add_help)
    group = parser.add_argument_group("SYSTEM RESOURCES")
    group.add_argument(
        "--workers",
        type=int,
        metavar="",
        default=AUTO_WORKERS,
        help=f"Parallel tasks. [bold green]Default:[/bold green] [cyan]{AUTO_WORKERS}[/cyan]",
    )
    return parser
