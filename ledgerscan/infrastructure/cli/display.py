import logging
from typing import Any, Dict, Optional

from eth_utils import from_wei
from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ledgerscan.domain.events.scan_events import BatchCompleted
from ledgerscan.domain.interfaces.user_interface import UserInterface
from ledgerscan.domain.models.scan import HolderResolution, RunStats, ScanReport

logger = logging.getLogger(__name__)

CURRENCY_SYMBOL = "ETH"


def format_balance(wei: int) -> str:
    """Renders a smallest-unit balance as an exact decimal amount of ETH."""
    amount = from_wei(wei, "ether")
    text = format(amount, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {CURRENCY_SYMBOL}"


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style."""
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message."""
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message."""
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_progress(self, event: BatchCompleted) -> None:
        label = "Progress" if event.stage == "holders" else f"{event.stage.capitalize()} progress"
        self.console.print(
            f"[cyan]{label}:[/cyan] {event.progress_pct:.1f}% "
            f"[dim]({event.valid} valid/{event.processed} processed/{event.total} total)[/dim]"
        )

    @staticmethod
    def _stats_row(table: Table, stats: RunStats) -> None:
        failed = f"[bold red]{stats.failed}[/bold red]" if stats.failed else "0"
        table.add_row(stats.stage, str(stats.total), str(stats.resolved), str(stats.skipped), failed)

    def _stats_table(self, *stages: RunStats) -> Table:
        table = Table(title="Lookup Statistics", box=SIMPLE, border_style="cyan")
        table.add_column("Stage", style="cyan")
        for column in ("Total", "Resolved", "Skipped", "Failed"):
            table.add_column(column, justify="right")
        for stats in stages:
            self._stats_row(table, stats)
        return table

    def display_scan_report(self, report: ScanReport) -> None:
        """Displays the aggregate total and the per-stage statistics."""
        logger.debug(f"Displaying scan report: {report}")
        summary = Table(show_header=False, box=ROUNDED, border_style="green", padding=(0, 1))
        summary.add_column("Field", style="bold")
        summary.add_column("Value")
        summary.add_row("Collection size", str(report.collection_size))
        summary.add_row("Unique holders", str(report.holder_count))
        summary.add_row("Total balance", format_balance(report.total_balance))
        summary.add_row("Total balance (wei)", str(report.total_balance))
        summary.add_row("Retries", str(report.retries_scheduled))
        summary.add_row("Complete", "[yellow]no (partial)[/yellow]" if report.is_partial else "[green]yes[/green]")

        self.console.print("")
        self.console.print(Panel(summary, title="[bold green]Results[/bold green]", border_style="green", box=SIMPLE))
        self.console.print(self._stats_table(report.holder_stats, report.balance_stats))

    def display_holders(self, resolution: HolderResolution) -> None:
        self.console.print("")
        self.console.print(
            f"[bold green]{len(resolution.owners)}[/bold green] unique holders "
            f"across {resolution.collection_size} items"
        )
        self.console.print(self._stats_table(resolution.stats))

    def display_performance_summary(self, checkpoints: Dict[str, float], total_seconds: float) -> None:
        table = Table(title="Performance Summary", box=SIMPLE, border_style="cyan")
        table.add_column("Checkpoint", style="cyan")
        table.add_column("Seconds", justify="right")
        for name, seconds in checkpoints.items():
            table.add_row(name, f"{seconds:.2f}s")
        table.add_row("[bold]Total Time[/bold]", f"[bold]{total_seconds:.2f}s[/bold]")
        self.console.print(table)
