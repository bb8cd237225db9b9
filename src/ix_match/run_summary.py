"""Logging of run summaries and recaps.

Counts are always logged; per-file parse failures and execution failures are
grouped so that a flight with hundreds of identical problems stays readable
at INFO level, with the full list available at DEBUG.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import List

from .logging_utils import LogBlockBuilder, render_fields_block
from .models import RunSummary

LOGGER = logging.getLogger(__name__)


def has_activity(summary: RunSummary) -> bool:
    """True when the run discovered, planned or reported anything."""
    return bool(summary.discovered or summary.plans or summary.parse_errors or summary.outcomes)


def summarize_messages(entries: List[str], *, limit: int = 5) -> List[str]:
    """Group duplicate messages and keep the ``limit`` most frequent.

    Args:
        entries: Message strings to summarize.
        limit: Maximum number of distinct messages to show.

    Returns:
        Summary lines with duplicate counts and a pointer to verbose output.
    """
    if not entries:
        return []
    counter = Counter(entries)
    ordered = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
    lines: List[str] = []
    for text, count in ordered[:limit]:
        prefix = f"{count}× " if count > 1 else ""
        lines.append(f"{prefix}{text}")
    remaining = len(ordered) - limit
    if remaining > 0:
        lines.append(f"... {remaining} more (use --verbose for full list)")
    return lines


def summary_fields(summary: RunSummary) -> dict[str, object]:
    fields: dict[str, object] = {
        "Discovered": summary.discovered,
        "Sessions": summary.sessions,
        "Planned": summary.planned,
    }
    if summary.dry_run:
        fields["Mode"] = "dry-run (nothing moved)"
    else:
        fields["Moved"] = summary.moved
        fields["Skipped"] = summary.skipped
        fields["Failed"] = summary.failed
    fields["Parse Errors"] = len(summary.parse_errors)
    if summary.pairing_enabled:
        fields["Paired"] = summary.paired
        fields["Unpaired"] = summary.unpaired
    return fields


def log_detailed_summary(summary: RunSummary, *, level: int = logging.INFO) -> None:
    """Log parse failures, execution failures and warnings as one block."""
    verbose = LOGGER.isEnabledFor(logging.DEBUG)
    parse_lines = [error.describe() for error in summary.parse_errors]
    failure_lines = [outcome.describe() for outcome in summary.failures]
    # Reasons are what repeat across a batch; group on them at INFO.
    if not verbose:
        parse_lines = summarize_messages([error.reason for error in summary.parse_errors])
        failure_lines = summarize_messages([outcome.reason or "unknown error" for outcome in summary.failures])

    builder = LogBlockBuilder("Detailed Summary")
    builder.add_fields(summary_fields(summary))
    if summary.parse_errors:
        builder.add_section("Parse Errors", parse_lines)
    if summary.failures:
        builder.add_section("Failures", failure_lines)
    if summary.warnings:
        builder.add_section("Warnings", summary.warnings)
    LOGGER.log(level, builder.render())


def log_run_recap(summary: RunSummary, duration: float) -> None:
    fields = summary_fields(summary)
    fields["Duration"] = f"{duration:.2f}s"
    LOGGER.info(render_fields_block("Run Recap", fields))
