from rich.console import Console
from rich.table import Table


console = Console()


def print_qc_table(title: str, qc: dict, labels: dict = None, out: Console = None):
    """Render a stage's QC counters as a two-column rich table."""
    out = out or console
    labels = labels or {}

    table = Table(title=title, title_style="bold magenta", padding=(0, 1))
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", style="green", justify="right")

    for key, value in qc.items():
        if isinstance(value, int):
            value = f"{value:,}"
        table.add_row(labels.get(key, key), str(value))

    out.print(table)


def fail(message: str, out: Console = None):
    """Print a red error line; callers exit afterwards."""
    (out or console).print(f"[bold red]{message}[/bold red]")
