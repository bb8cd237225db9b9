from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True, slots=True)
class FileRecord:
    source_path: Path
    filename: str
    timestamp: dt.datetime
    station: str
    extension: str
    size: Optional[int] = None

    @property
    def stem(self) -> str:
        return self.source_path.stem

    @property
    def is_empty(self) -> bool:
        return self.size == 0


@dataclass(frozen=True, slots=True)
class ParseError:
    source_path: Path
    filename: str
    reason: str

    def describe(self) -> str:
        return f"{self.filename}: {self.reason}"


@dataclass(frozen=True, slots=True)
class Session:
    station: str
    start: dt.datetime
    records: Tuple[FileRecord, ...]

    @property
    def key(self) -> Tuple[str, dt.datetime]:
        return (self.station, self.start)

    @property
    def end(self) -> dt.datetime:
        return self.records[-1].timestamp

    @property
    def duration(self) -> dt.timedelta:
        return self.end - self.start

    def __len__(self) -> int:
        return len(self.records)


class PlanCategory(str, Enum):
    SESSION = "session"
    UNMATCHED = "unmatched"
    EMPTY = "empty"
    UNPAIRED = "unpaired"


@dataclass(frozen=True, slots=True)
class MovePlan:
    source_path: Path
    destination_path: Path
    relative_destination: Path
    category: PlanCategory = PlanCategory.SESSION
    session_key: Optional[Tuple[str, dt.datetime]] = None
    suffix: Optional[int] = None


class OutcomeStatus(str, Enum):
    MOVED = "moved"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Outcome:
    plan: MovePlan
    status: OutcomeStatus
    reason: Optional[str] = None

    def describe(self) -> str:
        text = f"{self.plan.source_path} -> {self.plan.relative_destination}"
        if self.reason:
            text = f"{text} ({self.reason})"
        return text


@dataclass(slots=True)
class RunSummary:
    dry_run: bool = False
    discovered: int = 0
    sessions: int = 0
    plans: List[MovePlan] = field(default_factory=list)
    parse_errors: List[ParseError] = field(default_factory=list)
    outcomes: List[Outcome] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    paired: Optional[int] = None
    station_counts: Dict[str, int] = field(default_factory=dict)
    empty_counts: Dict[str, int] = field(default_factory=dict)
    unpaired_counts: Dict[str, int] = field(default_factory=dict)

    def register_outcome(self, outcome: Outcome) -> None:
        self.outcomes.append(outcome)

    def register_parse_error(self, error: ParseError) -> None:
        self.parse_errors.append(error)

    def register_warning(self, message: str) -> None:
        if message not in self.warnings:
            self.warnings.append(message)

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def planned(self) -> int:
        return len(self.plans)

    @property
    def moved(self) -> int:
        return self._count(OutcomeStatus.MOVED)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def failures(self) -> List[Outcome]:
        return [outcome for outcome in self.outcomes if outcome.status is OutcomeStatus.FAILED]

    @property
    def pairing_enabled(self) -> bool:
        return self.paired is not None

    @property
    def unpaired(self) -> int:
        return sum(self.unpaired_counts.values())

    @property
    def succeeded(self) -> bool:
        return not self.failures

    def as_dict(self) -> Dict[str, Any]:
        """Plain-data view of the summary for machine-readable output."""
        counts = {
            "discovered": self.discovered,
            "sessions": self.sessions,
            "planned": self.planned,
            "moved": self.moved,
            "skipped": self.skipped,
            "failed": self.failed,
            "parse_errors": len(self.parse_errors),
        }
        if self.pairing_enabled:
            counts["paired"] = self.paired
            counts["unpaired"] = self.unpaired
        return {
            "dry_run": self.dry_run,
            "counts": counts,
            "stations": {
                station: {
                    "files": count,
                    "empty": self.empty_counts.get(station, 0),
                    "unpaired": self.unpaired_counts.get(station, 0),
                }
                for station, count in sorted(self.station_counts.items())
            },
            "parse_errors": [
                {"path": str(error.source_path), "reason": error.reason} for error in self.parse_errors
            ],
            "failures": [
                {
                    "source": str(outcome.plan.source_path),
                    "destination": str(outcome.plan.destination_path),
                    "reason": outcome.reason,
                }
                for outcome in self.failures
            ],
            "plans": [
                {
                    "source": str(plan.source_path),
                    "destination": str(plan.destination_path),
                    "category": plan.category.value,
                }
                for plan in self.plans
            ],
            "warnings": list(self.warnings),
        }
