from __future__ import annotations

from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .models import RunSummary
from .utils import format_relative

# Color constants for status indicators
SUCCESS_COLOR = "green"
WARNING_COLOR = "yellow"
ERROR_COLOR = "red"
DIM_COLOR = "dim"

# Symbol indicators for quick scanning
SUCCESS_SYMBOL = "✓"
WARNING_SYMBOL = "⚠"
ERROR_SYMBOL = "✗"
SKIP_SYMBOL = "⊘"

MAX_DETAIL_ROWS = 20


class SummaryTableRenderer:
    """Renders a run summary as Rich tables with color-coded counts."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    @staticmethod
    def _colorize(value: int, *, is_error: bool = False, is_warning: bool = False, is_skip: bool = False) -> str:
        if value == 0:
            return f"[{DIM_COLOR}]{value}[/{DIM_COLOR}]"
        if is_error:
            color, symbol = ERROR_COLOR, ERROR_SYMBOL
        elif is_warning:
            color, symbol = WARNING_COLOR, WARNING_SYMBOL
        elif is_skip:
            color, symbol = WARNING_COLOR, SKIP_SYMBOL
        else:
            color, symbol = SUCCESS_COLOR, SUCCESS_SYMBOL
        return f"[{color}]{symbol} {value}[/{color}]"

    def render_summary_table(self, summary: RunSummary) -> Table:
        title = "Run Summary (dry run)" if summary.dry_run else "Run Summary"
        table = Table(title=title, show_header=True, header_style="bold")
        table.add_column("Metric", style="cyan", no_wrap=True)
        table.add_column("Count", justify="right")

        table.add_row("Discovered", str(summary.discovered))
        table.add_row("Sessions", str(summary.sessions))
        table.add_row("Planned", str(summary.planned))
        if not summary.dry_run:
            table.add_row("Moved", self._colorize(summary.moved))
            table.add_row("Skipped", self._colorize(summary.skipped, is_skip=True))
            table.add_row("Failed", self._colorize(summary.failed, is_error=True))
        if summary.pairing_enabled:
            table.add_row("Paired", self._colorize(summary.paired or 0))
            table.add_row("Unpaired", self._colorize(summary.unpaired, is_warning=True))
        table.add_row("Parse Errors", self._colorize(len(summary.parse_errors), is_warning=True))
        return table

    def render_station_table(self, summary: RunSummary) -> Optional[Table]:
        """Per-camera totals for paired runs, or None when pairing is off."""
        if not summary.pairing_enabled or not summary.station_counts:
            return None
        table = Table(title="Cameras", show_header=True, header_style="bold")
        table.add_column("Station", style="cyan", no_wrap=True)
        table.add_column("Files", justify="right")
        table.add_column("Empty", justify="right")
        table.add_column("Unpaired", justify="right")
        for station, count in sorted(summary.station_counts.items()):
            table.add_row(
                escape(station),
                str(count),
                self._colorize(summary.empty_counts.get(station, 0), is_warning=True),
                self._colorize(summary.unpaired_counts.get(station, 0), is_warning=True),
            )
        return table

    def render_problem_table(self, summary: RunSummary) -> Optional[Table]:
        """Table of per-file problems, or None when there are none."""
        rows: list[tuple[str, str, str]] = []
        for error in summary.parse_errors:
            rows.append(("parse", str(error.source_path), error.reason))
        for outcome in summary.failures:
            rows.append(("failed", str(outcome.plan.source_path), outcome.reason or ""))
        if not rows:
            return None

        table = Table(title="Problems", show_header=True, header_style="bold")
        table.add_column("Kind", no_wrap=True)
        table.add_column("File")
        table.add_column("Reason")
        for kind, path, reason in rows[:MAX_DETAIL_ROWS]:
            color = ERROR_COLOR if kind == "failed" else WARNING_COLOR
            table.add_row(f"[{color}]{kind}[/{color}]", escape(path), escape(reason))
        if len(rows) > MAX_DETAIL_ROWS:
            table.add_row("", f"[{DIM_COLOR}]... {len(rows) - MAX_DETAIL_ROWS} more[/{DIM_COLOR}]", "")
        return table

    def render_plan_table(self, summary: RunSummary, destination_dir: Path) -> Table:
        table = Table(title="Planned Destinations", show_header=True, header_style="bold")
        table.add_column("Source")
        table.add_column("Destination")
        for plan in summary.plans[:MAX_DETAIL_ROWS]:
            table.add_row(escape(plan.source_path.name), escape(format_relative(plan.destination_path, destination_dir)))
        if len(summary.plans) > MAX_DETAIL_ROWS:
            table.add_row(f"[{DIM_COLOR}]... {len(summary.plans) - MAX_DETAIL_ROWS} more[/{DIM_COLOR}]", "")
        return table

    def print_summary(self, summary: RunSummary, *, destination_dir: Optional[Path] = None) -> None:
        if summary.dry_run and destination_dir is not None and summary.plans:
            self.console.print(self.render_plan_table(summary, destination_dir))
        self.console.print(self.render_summary_table(summary))
        stations = self.render_station_table(summary)
        if stations is not None:
            self.console.print(stations)
        problems = self.render_problem_table(summary)
        if problems is not None:
            self.console.print(problems)
