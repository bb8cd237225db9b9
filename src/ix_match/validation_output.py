from __future__ import annotations

from collections import OrderedDict
from typing import Dict, List, Optional

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .validation import ValidationIssue, ValidationReport

SECTION_TITLES = {
    "settings": "Settings",
    "grammars": "Grammars",
    "<root>": "Document",
    "<file>": "Config File",
}


def group_issues_by_section(issues: List[ValidationIssue]) -> Dict[str, List[ValidationIssue]]:
    """Group issues by the first component of their dotted path, keeping order."""
    grouped: Dict[str, List[ValidationIssue]] = OrderedDict()
    for issue in issues:
        root = issue.path.split(".", 1)[0].split("[", 1)[0] or "<root>"
        grouped.setdefault(root, []).append(issue)
    return grouped


class ValidationFormatter:
    """Formats validation reports as grouped Rich panels.

    Each top-level configuration section gets its own panel; fix suggestions
    are shown beneath the issue they belong to unless disabled.
    """

    def __init__(self, console: Optional[Console] = None, show_suggestions: bool = True) -> None:
        self.console = console or Console()
        self.show_suggestions = show_suggestions

    def format_report(self, report: ValidationReport) -> None:
        if report.errors:
            self._format_issues(report.errors, "error", "Validation Errors", "bold red")
        if report.warnings:
            self._format_issues(report.warnings, "warning", "Validation Warnings", "bold yellow")

        if not report.errors and not report.warnings:
            self.console.print("[bold green]✓ Configuration passed validation.[/bold green]")
        elif not report.errors:
            self.console.print("[bold green]✓ Configuration passed validation (with warnings).[/bold green]")

    def _format_issues(self, issues: List[ValidationIssue], severity: str, header_text: str, header_style: str) -> None:
        self.console.print(f"\n[{header_style}]{header_text}: {len(issues)} {severity}(s) detected[/{header_style}]")
        for section, section_issues in group_issues_by_section(issues).items():
            panel = Panel(
                Group(self._create_issues_table(section_issues)),
                title=f"[bold]{SECTION_TITLES.get(section, section)}[/bold]",
                border_style="red" if severity == "error" else "yellow",
                padding=(1, 2),
            )
            self.console.print(panel)

    def _create_issues_table(self, issues: List[ValidationIssue]) -> Table:
        table = Table(show_header=False, show_edge=False, pad_edge=False, box=None, padding=(0, 1))
        table.add_column("Path", style="cyan", overflow="fold")
        table.add_column("Message", overflow="fold")

        for issue in issues:
            message_text = escape(issue.message)
            if issue.code:
                message_text += f" [dim]({issue.code})[/dim]"
            table.add_row(escape(issue.path), message_text)

            if self.show_suggestions and issue.fix_suggestion:
                suggestion_text = Text()
                suggestion_text.append("💡 ", style="yellow")
                suggestion_text.append(issue.fix_suggestion, style="italic dim")
                table.add_row("", suggestion_text)
        return table


__all__ = [
    "ValidationFormatter",
    "group_issues_by_section",
]
