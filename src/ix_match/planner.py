"""Destination planning: where every file goes, without touching the disk.

Each session gets a directory rendered from its grouping key, and each file a
name rendered from its record. When two files would land on the same path the
first one in the stable per-session order (sorted by original filename) keeps
the plain name and the others get ``_1``, ``_2``, ... suffixes. Two sessions
whose directory templates render alike get the same treatment at directory
level, so every session keeps a directory of its own. Collisions are detected
case-insensitively across the whole run because the destination tree is often
on a case-insensitive volume.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from pathlib import Path, PurePath
from typing import Any

from .config import DestinationTemplates, SuffixPolicy
from .errors import ConfigError, ConflictError
from .logging_utils import render_fields_block
from .models import FileRecord, MovePlan, ParseError, PlanCategory, Session
from .templating import check_template, render_template
from .utils import sanitize_component, split_components

LOGGER = logging.getLogger(__name__)

_SAMPLE_START = dt.datetime(2024, 1, 1, 12, 0, 0)


def session_stamp(start: dt.datetime) -> str:
    """``YYYYMMDD_HHMMSS`` plus milliseconds when the start is not on a whole second."""
    stamp = start.strftime("%Y%m%d_%H%M%S")
    if start.microsecond:
        stamp = f"{stamp}{start.microsecond // 1000:03d}"
    return stamp


def build_session_context(session: Session, index: int) -> dict[str, Any]:
    """Template variables describing a session's grouping key."""
    return {
        "station": session.station,
        "session_start": session.start,
        "session_end": session.end,
        "session_date": session.start.strftime("%Y-%m-%d"),
        "session_time": session.start.strftime("%H%M%S"),
        "session_stamp": session_stamp(session.start),
        "session_index": index,
        "file_count": len(session.records),
    }


def build_file_context(record: FileRecord, sequence: int, session_context: dict[str, Any]) -> dict[str, Any]:
    """Template variables for one file, layered over its session's variables."""
    context = dict(session_context)
    context.update(
        {
            "filename": record.filename,
            "stem": record.stem,
            "extension": record.extension.lstrip("."),
            "suffix": record.extension,
            "timestamp": record.timestamp,
            "sequence": sequence,
        }
    )
    return context


def _sample_contexts() -> tuple[dict[str, Any], dict[str, Any]]:
    record = FileRecord(
        source_path=Path("STA1_20240101_120000.iiq"),
        filename="STA1_20240101_120000.iiq",
        timestamp=_SAMPLE_START,
        station="STA1",
        extension=".iiq",
    )
    session_context = build_session_context(Session(station="STA1", start=_SAMPLE_START, records=(record,)), 1)
    return session_context, build_file_context(record, 1, session_context)


def validate_templates(templates: DestinationTemplates) -> None:
    """Raise :class:`ConfigError` if a destination template cannot render."""
    session_context, file_context = _sample_contexts()
    checks = (
        ("destination.session_dir_template", templates.session_dir_template, session_context),
        ("destination.filename_template", templates.filename_template, file_context),
    )
    for field_name, template, context in checks:
        problem = check_template(template, context)
        if problem:
            raise ConfigError(f"'{field_name}' is invalid: {problem}")
    for field_name, value in (
        ("destination.unmatched_dir", templates.unmatched_dir),
        ("destination.empty_dir", templates.empty_dir),
    ):
        if not split_components(value):
            raise ConfigError(f"'{field_name}' must name a directory")


def _sanitized_parts(rendered: str) -> list[str]:
    return [sanitize_component(part) for part in split_components(rendered)] or ["untitled"]


def _collision_key(relative: PurePath) -> str:
    return relative.as_posix().casefold()


class _NameClaims:
    """Tracks claimed relative destinations and hands out suffixed names."""

    def __init__(self, suffix: SuffixPolicy) -> None:
        self.suffix = suffix
        self._claimed: set[str] = set()
        self._directories: dict[str, object] = {}

    def claim(self, directory: PurePath, filename: str) -> tuple[PurePath, int | None]:
        candidate = directory / filename
        if _collision_key(candidate) not in self._claimed:
            self._claimed.add(_collision_key(candidate))
            return candidate, None

        name = PurePath(filename)
        stem, extension = name.stem, name.suffix
        counter = self.suffix.start
        while True:
            candidate = directory / f"{self.suffix.apply(stem, counter)}{extension}"
            key = _collision_key(candidate)
            if key not in self._claimed:
                self._claimed.add(key)
                return candidate, counter
            counter += 1

    def claim_directory(self, directory: PurePath, owner: object) -> PurePath:
        """Reserve ``directory`` for ``owner``; another owner gets a suffixed directory."""
        candidate = directory
        counter = self.suffix.start
        while True:
            key = _collision_key(candidate)
            holder = self._directories.setdefault(key, owner)
            if holder == owner:
                return candidate
            candidate = directory.with_name(self.suffix.apply(directory.name, counter))
            counter += 1


def plan_destinations(
    sessions: Sequence[Session],
    destination_dir: Path,
    templates: DestinationTemplates | None = None,
    *,
    suffix: SuffixPolicy | None = None,
    unmatched: Iterable[ParseError] = (),
    empty: Iterable[FileRecord] = (),
    unpaired: Iterable[FileRecord] = (),
) -> list[MovePlan]:
    """Compute one :class:`MovePlan` per file.

    Args:
        sessions: Sessions from the grouper, in grouper order
        destination_dir: Output root; plans hold absolute paths below it
        templates: Destination naming templates
        suffix: Numbering policy for colliding names
        unmatched: Parse failures to pass through into the unmatched directory
        empty: Zero-byte records set aside into the empty directory
        unpaired: Records left without a partner by camera pairing; they go to a
            per-station directory below the unmatched directory

    Returns:
        Plans for session files first, then unpaired, empty, and unmatched files.

    Raises:
        ConflictError: If two plans still share a destination after suffixing
    """
    templates = templates or DestinationTemplates()
    claims = _NameClaims(suffix or SuffixPolicy())
    plans: list[MovePlan] = []

    for index, session in enumerate(sessions, start=1):
        session_context = build_session_context(session, index)
        rendered = PurePath(*_sanitized_parts(render_template(templates.session_dir_template, session_context)))
        directory = claims.claim_directory(rendered, session.key)
        by_name = sorted(session.records, key=lambda rec: (rec.filename, str(rec.source_path)))
        for sequence, record in enumerate(by_name, start=1):
            file_context = build_file_context(record, sequence, session_context)
            name_parts = _sanitized_parts(render_template(templates.filename_template, file_context))
            relative, counter = claims.claim(directory.joinpath(*name_parts[:-1]), name_parts[-1])
            plans.append(
                MovePlan(
                    source_path=record.source_path,
                    destination_path=destination_dir / relative,
                    relative_destination=Path(relative),
                    category=PlanCategory.SESSION,
                    session_key=session.key,
                    suffix=counter,
                )
            )

    unmatched_root = PurePath(*_sanitized_parts(templates.unmatched_dir))
    for record in sorted(unpaired, key=lambda rec: (rec.station, rec.filename, str(rec.source_path))):
        station_dir = unmatched_root / sanitize_component(record.station)
        relative, counter = claims.claim(station_dir, sanitize_component(record.filename))
        plans.append(
            MovePlan(
                source_path=record.source_path,
                destination_path=destination_dir / relative,
                relative_destination=Path(relative),
                category=PlanCategory.UNPAIRED,
                suffix=counter,
            )
        )

    for category, directory_name, items in (
        (PlanCategory.EMPTY, templates.empty_dir, sorted(empty, key=lambda rec: (rec.filename, str(rec.source_path)))),
        (
            PlanCategory.UNMATCHED,
            templates.unmatched_dir,
            sorted(unmatched, key=lambda err: (err.filename, str(err.source_path))),
        ),
    ):
        directory = PurePath(*_sanitized_parts(directory_name))
        for item in items:
            relative, counter = claims.claim(directory, sanitize_component(item.filename))
            plans.append(
                MovePlan(
                    source_path=item.source_path,
                    destination_path=destination_dir / relative,
                    relative_destination=Path(relative),
                    category=category,
                    suffix=counter,
                )
            )

    ensure_unique_destinations(plans)
    return plans


def ensure_unique_destinations(plans: Iterable[MovePlan]) -> None:
    """Raise :class:`ConflictError` if two plans share a destination."""
    by_destination: dict[str, list[str]] = defaultdict(list)
    for plan in plans:
        by_destination[_collision_key(PurePath(plan.relative_destination))].append(str(plan.source_path))
    for destination, sources in by_destination.items():
        if len(sources) > 1:
            LOGGER.error(render_fields_block("Destination Conflict", {"Destination": destination, "Sources": sources}))
            raise ConflictError(destination, sources)
