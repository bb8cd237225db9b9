from __future__ import annotations

import logging
import os
import time
from collections import Counter
from collections.abc import Iterator, Mapping
from pathlib import Path

from .config import Settings, validate_settings
from .enumerator import enumerate_records, split_results, stat_size
from .errors import ConfigError
from .executor import DESTINATION_EXISTS, ExistsPredicate, Mover, execute_plans, transfer_file
from .file_discovery import find_dir_by_pattern, gather_from_roots
from .grouper import group_sessions
from .logging_utils import render_fields_block
from .models import FileRecord, OutcomeStatus, RunSummary
from .pairing import pair_records
from .planner import plan_destinations
from .run_summary import has_activity, log_detailed_summary, log_run_recap
from .utils import format_relative

LOGGER = logging.getLogger(__name__)


class Processor:
    """Runs the enumerate, group, plan, execute pipeline for one batch."""

    def __init__(
        self,
        settings: Settings,
        *,
        mover: Mover = transfer_file,
        exists: ExistsPredicate = os.path.lexists,
        show_progress: bool = True,
    ) -> None:
        self.settings = settings
        self.mover = mover
        self.exists = exists
        self.show_progress = show_progress

    @staticmethod
    def _format_log(event: str, fields: Mapping[str, object] | None = None) -> str:
        return render_fields_block(event, fields or {}, pad_top=True)

    def source_roots(self) -> list[Path]:
        """Directories to walk: the configured camera directories, or the source root."""
        settings = self.settings
        if not settings.camera_dirs:
            return [settings.source_dir]

        roots: list[Path] = []
        for pattern in settings.camera_dirs:
            found = find_dir_by_pattern(settings.source_dir, pattern)
            if found is None:
                raise ConfigError(
                    f"Camera directory pattern '{pattern}' must match exactly one directory in {settings.source_dir}"
                )
            roots.append(found)
        return roots

    def _gather_source_files(self, roots: list[Path]) -> Iterator[Path]:
        return gather_from_roots(roots, self.settings.source_globs, exclude=[self.settings.destination_dir])

    def _pair(
        self, records: list[FileRecord], roots: list[Path], summary: RunSummary
    ) -> tuple[list[FileRecord], list[FileRecord]]:
        """Split ``records`` into paired captures and captures without a partner camera frame."""
        left_root, right_root = roots
        left = [record for record in records if left_root in record.source_path.parents]
        right = [record for record in records if right_root in record.source_path.parents]
        result = pair_records(left, right, self.settings.pair_threshold)
        summary.paired = len(result.pairs)
        summary.unpaired_counts = dict(Counter(record.station for record in result.unpaired))
        if result.unpaired:
            summary.register_warning(
                f"{len(result.unpaired)} capture(s) without a partner frame set aside into "
                f"'{self.settings.destination.unmatched_dir}'"
            )
        unpaired = set(result.unpaired)
        return [record for record in records if record not in unpaired], list(result.unpaired)

    def _warn_stranded(self, summary: RunSummary) -> None:
        stranded = [
            outcome
            for outcome in summary.outcomes
            if outcome.status is OutcomeStatus.SKIPPED and outcome.reason == DESTINATION_EXISTS
        ]
        if stranded:
            summary.register_warning(
                f"{len(stranded)} file(s) left in the source because their destination already exists; "
                "check them against the destination, then remove them or re-run with --overwrite"
            )

    def run(self) -> RunSummary:
        """Process one batch and return its summary.

        Raises:
            ConfigError: Before any file is touched, if the settings are unusable
            ConflictError: If planning produced duplicate destinations
        """
        settings = self.settings
        validate_settings(settings)
        roots = self.source_roots()

        summary = RunSummary(dry_run=settings.dry_run)
        run_started = time.perf_counter()

        size_of = None if settings.keep_empty_files else stat_size
        records, parse_errors = split_results(
            enumerate_records(self._gather_source_files(roots), settings.grammar, size_of=size_of)
        )
        for error in parse_errors:
            summary.register_parse_error(error)
        summary.discovered = len(records) + len(parse_errors)

        if LOGGER.isEnabledFor(logging.DEBUG):
            LOGGER.debug(
                self._format_log(
                    "Discovered Candidate Files",
                    {
                        "Roots": [str(root) for root in roots],
                        "Parsed": len(records),
                        "Unparsed": len(parse_errors),
                        "Grammar": settings.grammar.name,
                    },
                )
            )

        summary.station_counts = dict(Counter(record.station for record in records))
        empty = [record for record in records if record.is_empty]
        if empty:
            records = [record for record in records if not record.is_empty]
            summary.register_warning(f"{len(empty)} empty file(s) set aside into '{settings.destination.empty_dir}'")
            summary.empty_counts = dict(Counter(record.station for record in empty))

        unpaired: list[FileRecord] = []
        if settings.pair_threshold is not None:
            records, unpaired = self._pair(records, roots, summary)

        sessions = group_sessions(records, settings.tolerance)
        summary.sessions = len(sessions)
        for session in sessions:
            LOGGER.debug(
                self._format_log(
                    "Session",
                    {
                        "Station": session.station,
                        "Start": session.start.isoformat(),
                        "End": session.end.isoformat(),
                        "Files": len(session),
                    },
                )
            )

        unmatched = parse_errors if settings.unmatched_policy == "passthrough" else []
        summary.plans = plan_destinations(
            sessions,
            settings.destination_dir,
            settings.destination,
            suffix=settings.suffix,
            unmatched=unmatched,
            empty=empty,
            unpaired=unpaired,
        )

        if settings.dry_run:
            for plan in summary.plans:
                LOGGER.debug(
                    self._format_log(
                        "Dry-Run: Planned Transfer",
                        {
                            "Source": plan.source_path,
                            "Destination": format_relative(plan.destination_path, settings.destination_dir),
                        },
                    )
                )
        else:
            for outcome in execute_plans(
                summary.plans,
                mode=settings.transfer_mode,
                overwrite=settings.overwrite,
                mover=self.mover,
                exists=self.exists,
                show_progress=self.show_progress,
            ):
                summary.register_outcome(outcome)
            if settings.transfer_mode == "move":
                self._warn_stranded(summary)

        if summary.parse_errors or summary.failures or summary.warnings:
            log_detailed_summary(summary)
        elif not has_activity(summary):
            LOGGER.info(self._format_log("No Capture Files Found", {"Source": settings.source_dir}))
        log_run_recap(summary, time.perf_counter() - run_started)
        return summary
