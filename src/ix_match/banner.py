from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import Settings
from .version import __version__


@dataclass
class BannerInfo:
    version: str
    dry_run: bool
    verbose: bool
    transfer_mode: str
    overwrite: bool
    source_dir: str
    destination_dir: str
    grammar: str
    tolerance_seconds: float
    camera_dirs: list[str]
    passthrough_unmatched: bool
    sample_name: str = ""
    pair_threshold_seconds: Optional[float] = None


def build_banner_info(settings: Settings, verbose: bool = False) -> BannerInfo:
    """Build a BannerInfo instance from Settings and runtime flags."""
    return BannerInfo(
        version=__version__,
        dry_run=settings.dry_run,
        verbose=verbose,
        transfer_mode=settings.transfer_mode,
        overwrite=settings.overwrite,
        source_dir=str(settings.source_dir),
        destination_dir=str(settings.destination_dir),
        grammar=settings.grammar.name,
        tolerance_seconds=settings.tolerance.total_seconds(),
        camera_dirs=list(settings.camera_dirs),
        passthrough_unmatched=settings.unmatched_policy == "passthrough",
        sample_name=settings.grammar.sample_name(),
        pair_threshold_seconds=(
            settings.pair_threshold.total_seconds() if settings.pair_threshold is not None else None
        ),
    )


def print_startup_banner(info: BannerInfo, console: Console) -> None:
    """Print a styled startup banner showing version and run configuration."""
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Key", style="cyan bold", no_wrap=True)
    table.add_column("Value", style="white")

    table.add_row("Version", f"[bold]{escape(info.version)}[/bold]")

    mode_parts = []
    if info.dry_run:
        mode_parts.append("[yellow]DRY-RUN[/yellow]")
    if info.transfer_mode == "copy":
        mode_parts.append("[cyan]COPY[/cyan]")
    if info.overwrite:
        mode_parts.append("[red]OVERWRITE[/red]")
    if info.verbose:
        mode_parts.append("[cyan]VERBOSE[/cyan]")
    if mode_parts:
        table.add_row("Mode", " ".join(mode_parts))

    table.add_row("Source", escape(info.source_dir))
    if info.camera_dirs:
        table.add_row("Cameras", escape(", ".join(info.camera_dirs)))
    table.add_row("Destination", escape(info.destination_dir))
    table.add_row("Grammar", escape(info.grammar))
    if info.sample_name:
        table.add_row("Filenames", f"[dim]e.g.[/dim] {escape(info.sample_name)}")
    table.add_row("Tolerance", f"[bold]{info.tolerance_seconds:g}s[/bold]")
    if info.pair_threshold_seconds is not None:
        table.add_row("Pairing", f"[bold]{info.pair_threshold_seconds:g}s[/bold]")
    if info.passthrough_unmatched:
        table.add_row("Unmatched", "[green]passthrough[/green]")

    panel = Panel(
        table,
        title="[bold white]IX-MATCH[/bold white]",
        border_style="blue",
        padding=(1, 2),
    )

    console.print()
    console.print(panel)
    console.print()
