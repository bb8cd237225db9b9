"""Exception types raised by ix-match.

Per-file problems (unparseable filenames, I/O failures) are normally turned
into values and aggregated into the run summary; only configuration errors and
planner invariant violations propagate to the caller.
"""

from __future__ import annotations


class IxMatchError(Exception):
    """Base class for all ix-match errors."""


class ConfigError(IxMatchError, ValueError):
    """Invalid configuration detected before any processing starts."""


class ConflictError(IxMatchError):
    """Two planned destinations collide after disambiguation."""

    def __init__(self, destination: str, sources: list[str]) -> None:
        self.destination = destination
        self.sources = list(sources)
        joined = ", ".join(self.sources)
        super().__init__(f"Destination {destination} planned for more than one source: {joined}")


class FilenameParseError(IxMatchError, ValueError):
    """A filename does not match the configured grammar."""

    def __init__(self, filename: str, reason: str) -> None:
        self.filename = filename
        self.reason = reason
        super().__init__(f"{filename}: {reason}")
