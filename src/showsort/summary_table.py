from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .models import BatchReport, Classified, Conflict, Unclassified

SUCCESS_COLOR = "green"
WARNING_COLOR = "yellow"
ERROR_COLOR = "red"
DIM_COLOR = "dim"

SUCCESS_SYMBOL = "✓"
WARNING_SYMBOL = "⚠"
ERROR_SYMBOL = "✗"
SKIP_SYMBOL = "⊘"


class SummaryTableRenderer:
    """Renders a batch report as Rich tables."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    @staticmethod
    def _colorize_count(value: int, *, color: str, symbol: str) -> str:
        if value == 0:
            return f"[{DIM_COLOR}]{value}[/{DIM_COLOR}]"
        return f"[{color}]{symbol} {value}[/{color}]"

    def render_summary_table(self, report: BatchReport) -> Table:
        table = Table(title="Classification Summary", show_header=True, header_style="bold")
        table.add_column("Metric", style="cyan", no_wrap=True)
        table.add_column("Count", justify="right")

        table.add_row("Classified", self._colorize_count(report.classified, color=SUCCESS_COLOR, symbol=SUCCESS_SYMBOL))
        table.add_row(
            "Unclassified",
            self._colorize_count(report.unclassified, color=WARNING_COLOR, symbol=WARNING_SYMBOL),
        )
        table.add_row("Skipped", self._colorize_count(report.skipped, color=DIM_COLOR, symbol=SKIP_SYMBOL))
        table.add_row(
            "Conflicts",
            self._colorize_count(1 if report.aborted else 0, color=ERROR_COLOR, symbol=ERROR_SYMBOL),
        )
        return table

    def render_entries_table(self, report: BatchReport) -> Table:
        """One row per processed entry, in listing order."""
        table = Table(title="Entries", show_header=True, header_style="bold")
        table.add_column("Entry", overflow="fold")
        table.add_column("Show", style="cyan")
        table.add_column("Season", justify="right")
        table.add_column("Episode", justify="right")
        table.add_column("Status")

        for outcome in report.outcomes:
            result = outcome.result
            name = Text(outcome.entry.name + ("/" if outcome.entry.is_dir else ""))
            if isinstance(result, Classified):
                episode = "" if result.episode is None else str(result.episode)
                table.add_row(
                    name,
                    Text(result.show),
                    str(result.season),
                    episode,
                    f"[{SUCCESS_COLOR}]{SUCCESS_SYMBOL}[/{SUCCESS_COLOR}]",
                )
            elif isinstance(result, Conflict):
                table.add_row(name, "", "", "", Text(f"{ERROR_SYMBOL} {result.describe()}", style=ERROR_COLOR))
            elif isinstance(result, Unclassified) and result.skipped:
                table.add_row(name, "", "", "", f"[{DIM_COLOR}]{SKIP_SYMBOL} skipped[/{DIM_COLOR}]")
            else:
                table.add_row(name, "", "", "", Text(f"{WARNING_SYMBOL} {result.reason}", style=WARNING_COLOR))
        return table

    def print_report(self, report: BatchReport, *, include_entries: bool = True) -> None:
        if include_entries and report.outcomes:
            self.console.print(self.render_entries_table(report))
        self.console.print(self.render_summary_table(report))
