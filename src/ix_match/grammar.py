"""Filename grammars: how capture filenames encode station and timestamp.

A grammar is a plain configuration value. Parsing never opens the file; it
only looks at the name and, for ``station_from: parent``, the name of the
containing directory (the per-camera folders written by the capture software).
"""

from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Optional

from .errors import ConfigError, FilenameParseError
from .models import FileRecord
from .utils import load_yaml_file

STATION_SOURCES = ("group", "parent", "fixed")
MILLISECOND_DIRECTIVE = "%3f"
_SAMPLE_TIMESTAMP = dt.datetime(2024, 1, 2, 3, 4, 5, 678000)


def parse_timestamp(text: str, fmt: str) -> dt.datetime:
    """Parse ``text`` with a strptime format that may contain ``%3f``."""
    return dt.datetime.strptime(text, fmt.replace(MILLISECOND_DIRECTIVE, "%f"))


def format_timestamp(value: dt.datetime, fmt: str) -> str:
    """Inverse of :func:`parse_timestamp`."""
    if MILLISECOND_DIRECTIVE in fmt:
        fmt = fmt.replace(MILLISECOND_DIRECTIVE, f"{value.microsecond // 1000:03d}")
    return value.strftime(fmt)


@lru_cache(maxsize=64)
def _compile(regex: str) -> re.Pattern[str]:
    return re.compile(regex)


@dataclass(frozen=True)
class FilenameGrammar:
    name: str
    regex: str
    timestamp_format: str
    station_from: str = "group"
    default_station: Optional[str] = None
    format_template: Optional[str] = None
    extensions: tuple[str, ...] = (".iiq",)
    description: Optional[str] = None

    @property
    def pattern(self) -> re.Pattern[str]:
        return _compile(self.regex)

    def accepts_extension(self, extension: str) -> bool:
        if not self.extensions:
            return True
        return extension.lower() in self.extensions

    def parse(self, path: Path, *, size: Optional[int] = None) -> FileRecord:
        """Build a :class:`FileRecord` from ``path`` or raise :class:`FilenameParseError`."""
        filename = path.name
        extension = path.suffix
        if not extension:
            raise FilenameParseError(filename, "unrecognized extension: none present")
        if not self.accepts_extension(extension):
            raise FilenameParseError(filename, f"unrecognized extension '{extension}'")

        match = self.pattern.match(path.stem)
        if match is None:
            raise FilenameParseError(filename, f"missing field: name does not follow the '{self.name}' grammar")
        groups = match.groupdict()

        raw_timestamp = groups.get("timestamp")
        if not raw_timestamp:
            raise FilenameParseError(filename, "missing field: timestamp")
        try:
            timestamp = parse_timestamp(raw_timestamp, self.timestamp_format)
        except ValueError as exc:
            raise FilenameParseError(filename, f"malformed timestamp '{raw_timestamp}': {exc}") from exc

        station = self._station_for(path, groups)
        if not station:
            raise FilenameParseError(filename, "missing field: station")

        return FileRecord(
            source_path=path,
            filename=filename,
            timestamp=timestamp,
            station=station,
            extension=extension,
            size=size,
        )

    def _station_for(self, path: Path, groups: dict[str, Any]) -> Optional[str]:
        if self.station_from == "group":
            return groups.get("station") or self.default_station
        if self.station_from == "parent":
            return path.parent.name or self.default_station
        return self.default_station

    def format_name(self, station: str, timestamp: dt.datetime, extension: str) -> str:
        """Render a filename carrying ``station`` and ``timestamp`` in this grammar's layout."""
        template = self.format_template or "{station}_{timestamp}{extension}"
        return template.format(
            station=station,
            timestamp=format_timestamp(timestamp, self.timestamp_format),
            extension=extension,
        )

    def sample_name(self, station: str = "STA1") -> str:
        """An example filename in this grammar, shown to users before a run."""
        extension = self.extensions[0] if self.extensions else ".iiq"
        return self.format_name(self.default_station or station, _SAMPLE_TIMESTAMP, extension)


def build_grammar(name: str, data: dict[str, Any], *, field_name: str = "grammar") -> FilenameGrammar:
    """Validate a raw grammar mapping and build a :class:`FilenameGrammar`."""
    if not isinstance(data, dict):
        raise ConfigError(f"'{field_name}' must be provided as a mapping")

    regex = data.get("regex")
    if not isinstance(regex, str) or not regex:
        raise ConfigError(f"'{field_name}.regex' must be a non-empty string")
    try:
        compiled = _compile(regex)
    except re.error as exc:
        raise ConfigError(f"'{field_name}.regex' does not compile: {exc}") from exc

    station_from = str(data.get("station_from", "group")).strip().lower()
    if station_from not in STATION_SOURCES:
        raise ConfigError(f"'{field_name}.station_from' must be one of {', '.join(STATION_SOURCES)}")

    if "timestamp" not in compiled.groupindex:
        raise ConfigError(f"'{field_name}.regex' must define a named group 'timestamp'")
    if station_from == "group" and "station" not in compiled.groupindex:
        raise ConfigError(f"'{field_name}.regex' must define a named group 'station' when station_from is 'group'")

    default_station = data.get("default_station")
    if default_station is not None:
        default_station = str(default_station).strip() or None
    if station_from == "fixed" and not default_station:
        raise ConfigError(f"'{field_name}.default_station' is required when station_from is 'fixed'")

    timestamp_format = data.get("timestamp_format")
    if not isinstance(timestamp_format, str) or not timestamp_format:
        raise ConfigError(f"'{field_name}.timestamp_format' must be a non-empty string")
    try:
        parse_timestamp(format_timestamp(_SAMPLE_TIMESTAMP, timestamp_format), timestamp_format)
    except ValueError as exc:
        raise ConfigError(f"'{field_name}.timestamp_format' is not a usable timestamp format: {exc}") from exc

    raw_extensions = data.get("extensions", [".iiq"])
    if isinstance(raw_extensions, str):
        raw_extensions = [raw_extensions]
    if not isinstance(raw_extensions, list):
        raise ConfigError(f"'{field_name}.extensions' must be a list of strings")
    extensions = tuple(_normalize_extension(str(ext)) for ext in raw_extensions if str(ext).strip())

    format_template = data.get("format_template")
    grammar = FilenameGrammar(
        name=name,
        regex=regex,
        timestamp_format=timestamp_format,
        station_from=station_from,
        default_station=default_station,
        format_template=str(format_template) if format_template else None,
        extensions=extensions,
        description=data.get("description"),
    )
    if grammar.format_template:
        try:
            grammar.sample_name()
        except (KeyError, IndexError, ValueError) as exc:
            raise ConfigError(f"'{field_name}.format_template' cannot be rendered: {exc}") from exc
    return grammar


def _normalize_extension(value: str) -> str:
    value = value.strip().lower()
    return value if value.startswith(".") else f".{value}"


@dataclass
class GrammarCatalog:
    default: str
    grammars: dict[str, FilenameGrammar] = field(default_factory=dict)


@lru_cache
def load_builtin_grammars() -> GrammarCatalog:
    """Load the grammars shipped in ``grammars.yaml``."""
    with resources.as_file(resources.files(__package__) / "grammars.yaml") as path:
        data = load_yaml_file(path)

    raw = data.get("grammars") or {}
    if not isinstance(raw, dict):
        raise ConfigError("Builtin grammars must be a mapping of name -> grammar definition")
    grammars = {
        str(name): build_grammar(str(name), definition, field_name=f"grammars.{name}")
        for name, definition in raw.items()
    }
    default = str(data.get("default_grammar") or next(iter(grammars)))
    return GrammarCatalog(default=default, grammars=grammars)


def get_grammar(name: str | None = None) -> FilenameGrammar:
    catalog = load_builtin_grammars()
    key = name or catalog.default
    try:
        return catalog.grammars[key]
    except KeyError:
        known = ", ".join(sorted(catalog.grammars))
        raise ConfigError(f"Unknown grammar '{key}' (available: {known})") from None
