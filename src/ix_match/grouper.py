"""Cluster file records into capture sessions.

Records are sorted by ``(station, timestamp, filename)`` and scanned once. A
session ends when the station changes or when the gap to the previous record
of the same station is strictly larger than the tolerance, so two files
exactly ``tolerance`` apart share a session.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Iterable

from .errors import ConfigError
from .models import FileRecord, Session

LOGGER = logging.getLogger(__name__)


def record_sort_key(record: FileRecord) -> tuple[str, dt.datetime, str, str]:
    return (record.station, record.timestamp, record.filename, str(record.source_path))


def group_sessions(records: Iterable[FileRecord], tolerance: dt.timedelta) -> list[Session]:
    """Partition ``records`` into sessions.

    Args:
        records: Valid file records, in any order
        tolerance: Largest gap between consecutive captures of one session

    Returns:
        Sessions ordered by station then start time; records inside a session
        are ordered by timestamp then filename.

    Raises:
        ConfigError: If ``tolerance`` is negative
    """
    if tolerance < dt.timedelta(0):
        raise ConfigError("Session tolerance must be greater than or equal to 0")

    ordered = sorted(records, key=record_sort_key)
    sessions: list[Session] = []
    current: list[FileRecord] = []

    for record in ordered:
        if current:
            previous = current[-1]
            if record.station != previous.station or record.timestamp - previous.timestamp > tolerance:
                sessions.append(_close_session(current))
                current = []
        current.append(record)

    if current:
        sessions.append(_close_session(current))

    LOGGER.debug("Grouped %d records into %d sessions", len(ordered), len(sessions))
    return sessions


def _close_session(records: list[FileRecord]) -> Session:
    return Session(station=records[0].station, start=records[0].timestamp, records=tuple(records))
