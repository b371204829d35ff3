#!/usr/bin/env python3
"""
cojoprep — unified top-level CLI for all cojoprep modules.

Example usage:
  cojoprep variant-index --help
  cojoprep make-ma --sumstats meta.tbl --variant-index index.tsv ...
  cojoprep cojo run-task --job-table cojo_jobs.txt
"""
import sys
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.text import Text

from cojoprep.cojo.cli import main as cojo_main
from cojoprep.formatter.cli import main as make_ma_main, snplist_main
from cojoprep.liftover.cli import main as liftover_main
from cojoprep.panel.cli import main as panel_main
from cojoprep.variant_index.cli import main as variant_index_main

# -------------------------------------------------------------------
# MODULE REGISTRY (pipeline order)
# -------------------------------------------------------------------
MODULES = {
    "panel":         (panel_main,         "Build one chromosome of the PLINK reference panel"),
    "variant-index": (variant_index_main, "Index (chr, pos) → variant ID from the panel .bim files"),
    "make-ma":       (make_ma_main,       "Reformat raw meta-analysis output → GCTA-COJO .ma"),
    "snplist":       (snplist_main,       "Write per-locus conditioning SNP lists"),
    "cojo":          (cojo_main,          "Build / run the GCTA-COJO job table"),
    "liftover":      (liftover_main,      "Remap (chr, pos) intervals to another genome build"),
}

console = Console()


# -------------------------------------------------------------------
# Rich Global Help
# -------------------------------------------------------------------
def print_global_help(prog: str = "cojoprep") -> None:
    header = Text("cojoprep — GCTA-COJO conditional analysis preparation", style="bold cyan")
    console.print(Panel(header, expand=False))

    table = Table(title="Available Modules", title_style="bold magenta", padding=(0, 1))
    table.add_column("Command", style="cyan", no_wrap=True)
    table.add_column("Description", style="green")
    for name, (_, desc) in MODULES.items():
        table.add_row(name, desc)
    console.print(table)

    console.print("\n[bold yellow]Usage:[/bold yellow]  cojoprep <module> --help")
    console.print("Example: [green]cojoprep make-ma --help[/green]\n")


# -------------------------------------------------------------------
# Dispatcher
# -------------------------------------------------------------------
def main(argv=None):
    argv = sys.argv[1:] if argv is None else list(argv)
    prog = "cojoprep"

    if not argv or argv[0] in ("-h", "--help"):
        print_global_help(prog)
        sys.exit(0)

    cmd = argv[0]
    if cmd not in MODULES:
        console.print(f"[red]{prog}: error: unknown module '{cmd}'[/red]\n")
        print_global_help(prog)
        sys.exit(1)

    module_main, _ = MODULES[cmd]
    sys.argv = [f"{prog}-{cmd}"] + argv[1:]
    return module_main(argv[1:])


if __name__ == "__main__":
    main()
