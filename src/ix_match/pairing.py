"""Pairing of captures from two cameras that fire together (RGB and NIR).

Every record is matched to the record of the other camera nearest to it in
time, in both directions. A candidate pair is kept when the two timestamps are
at most ``threshold`` apart. Records that end up in no kept pair are unpaired.
"""

from __future__ import annotations

import bisect
import datetime as dt
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .errors import ConfigError
from .logging_utils import render_fields_block
from .models import FileRecord

LOGGER = logging.getLogger(__name__)


def _time_key(record: FileRecord) -> tuple[dt.datetime, str, str]:
    return (record.timestamp, record.filename, str(record.source_path))


@dataclass(frozen=True, slots=True)
class PairingResult:
    pairs: tuple[tuple[FileRecord, FileRecord], ...]
    unpaired_left: tuple[FileRecord, ...]
    unpaired_right: tuple[FileRecord, ...]

    @property
    def unpaired(self) -> tuple[FileRecord, ...]:
        return self.unpaired_left + self.unpaired_right


def _nearest(records: Sequence[FileRecord], stamps: Sequence[dt.datetime], when: dt.datetime) -> int | None:
    """Index of the record closest to ``when``; ties go to the earlier record."""
    if not records:
        return None
    position = bisect.bisect_left(stamps, when)
    if position == 0:
        return 0
    if position == len(stamps):
        return position - 1
    before, after = position - 1, position
    if when - stamps[before] <= stamps[after] - when:
        return before
    return after


def _candidates(
    records: Sequence[FileRecord], others: Sequence[FileRecord]
) -> Iterable[tuple[int, int]]:
    stamps = [record.timestamp for record in others]
    for index, record in enumerate(records):
        match = _nearest(others, stamps, record.timestamp)
        if match is not None:
            yield index, match


def pair_records(
    left: Iterable[FileRecord], right: Iterable[FileRecord], threshold: dt.timedelta
) -> PairingResult:
    """Pair ``left`` records with ``right`` records captured within ``threshold``.

    Args:
        left: Records of the first camera
        right: Records of the second camera
        threshold: Largest time difference inside a pair; the boundary is closed

    Returns:
        Pairs in left-timestamp order plus the records of each side left over.

    Raises:
        ConfigError: If ``threshold`` is negative
    """
    if threshold < dt.timedelta(0):
        raise ConfigError("'pair_threshold_seconds' must be greater than or equal to 0")

    left_sorted = sorted(left, key=_time_key)
    right_sorted = sorted(right, key=_time_key)

    candidates = set(_candidates(left_sorted, right_sorted))
    candidates.update((li, ri) for ri, li in _candidates(right_sorted, left_sorted))

    kept = sorted(
        (li, ri)
        for li, ri in candidates
        if abs(left_sorted[li].timestamp - right_sorted[ri].timestamp) <= threshold
    )
    paired_left = {li for li, _ in kept}
    paired_right = {ri for _, ri in kept}

    result = PairingResult(
        pairs=tuple((left_sorted[li], right_sorted[ri]) for li, ri in kept),
        unpaired_left=tuple(rec for index, rec in enumerate(left_sorted) if index not in paired_left),
        unpaired_right=tuple(rec for index, rec in enumerate(right_sorted) if index not in paired_right),
    )
    LOGGER.debug(
        render_fields_block(
            "Pairing",
            {
                "Left": len(left_sorted),
                "Right": len(right_sorted),
                "Paired": len(result.pairs),
                "Unpaired": len(result.unpaired),
                "Threshold": f"{threshold.total_seconds():g}s",
            },
        )
    )
    return result
