"""Plan execution: move or copy each planned file, one outcome per plan.

Each plan goes ``Planned -> Moved | Skipped | Failed`` exactly once. An
existing destination is never replaced unless overwriting was requested, and
a failure on one file never stops the rest of the batch. Re-running the whole
tool is the retry mechanism.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rich.progress import Progress

from .logging_utils import render_fields_block
from .models import MovePlan, Outcome, OutcomeStatus
from .utils import ensure_directory

LOGGER = logging.getLogger(__name__)

DESTINATION_EXISTS = "destination exists"
ALREADY_IN_PLACE = "already in place"


@dataclass
class TransferResult:
    created: bool
    reason: Optional[str] = None


Mover = Callable[[Path, Path, str], TransferResult]
ExistsPredicate = Callable[[Path], bool]


def transfer_file(source: Path, destination: Path, mode: str = "move") -> TransferResult:
    """Move or copy ``source`` to ``destination``, creating parent directories.

    The source is only removed once the data is safely at the destination
    (``shutil.move`` copies then unlinks across devices).
    """
    try:
        ensure_directory(destination.parent)
        if mode == "move":
            shutil.move(str(source), str(destination))
        elif mode == "copy":
            shutil.copy2(source, destination)
        else:
            raise ValueError(f"Unsupported transfer mode: {mode}")
    except OSError as exc:
        return TransferResult(created=False, reason=str(exc))
    return TransferResult(created=True)


def _same_file(source: Path, destination: Path) -> bool:
    try:
        return os.path.samefile(source, destination)
    except OSError:
        return False


def execute_plan(
    plan: MovePlan,
    *,
    mode: str = "move",
    overwrite: bool = False,
    mover: Mover = transfer_file,
    exists: ExistsPredicate = os.path.lexists,
) -> Outcome:
    """Carry out a single plan and report its terminal state."""
    source = plan.source_path
    destination = plan.destination_path

    if exists(destination):
        if _same_file(source, destination):
            return Outcome(plan=plan, status=OutcomeStatus.SKIPPED, reason=ALREADY_IN_PLACE)
        if not overwrite:
            LOGGER.debug(
                render_fields_block("Skipping Existing Destination", {"Destination": destination, "Source": source})
            )
            return Outcome(plan=plan, status=OutcomeStatus.SKIPPED, reason=DESTINATION_EXISTS)

    if not exists(source):
        return Outcome(plan=plan, status=OutcomeStatus.FAILED, reason="source no longer exists")

    try:
        result = mover(source, destination, mode)
    except OSError as exc:
        result = TransferResult(created=False, reason=str(exc))

    if not result.created:
        LOGGER.error(
            render_fields_block(
                "Transfer Failed",
                {"Source": source, "Destination": destination, "Reason": result.reason},
            )
        )
        return Outcome(plan=plan, status=OutcomeStatus.FAILED, reason=result.reason or "unknown error")

    LOGGER.debug(render_fields_block("Transferred", {"Source": source, "Destination": destination, "Mode": mode}))
    return Outcome(plan=plan, status=OutcomeStatus.MOVED)


def execute_plans(
    plans: Iterable[MovePlan],
    *,
    mode: str = "move",
    overwrite: bool = False,
    mover: Mover = transfer_file,
    exists: ExistsPredicate = os.path.lexists,
    show_progress: bool = True,
) -> list[Outcome]:
    """Execute every plan, continuing past failures.

    Args:
        plans: Planned transfers; destinations must be unique
        mode: ``"move"`` or ``"copy"``
        overwrite: Replace destinations that already exist on disk
        mover: Filesystem collaborator performing one transfer
        exists: Path-existence predicate, injectable for tests
        show_progress: Render a progress bar when INFO logging is enabled

    Returns:
        One outcome per plan, in plan order.
    """
    materialized = list(plans)
    outcomes: list[Outcome] = []
    progress_enabled = show_progress and LOGGER.isEnabledFor(logging.INFO)
    with Progress(disable=not progress_enabled) as progress:
        task_id = progress.add_task("Transferring" if mode == "move" else "Copying", total=len(materialized))
        for plan in materialized:
            outcomes.append(execute_plan(plan, mode=mode, overwrite=overwrite, mover=mover, exists=exists))
            progress.advance(task_id, 1)
    return outcomes
