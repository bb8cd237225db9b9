from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from jsonschema import Draft7Validator

from .config import TRANSFER_MODES, UNMATCHED_POLICIES, load_config_data, settings_from_data
from .errors import ConfigError
from .grammar import STATION_SOURCES, build_grammar
from .planner import validate_templates


@dataclass(slots=True)
class ValidationIssue:
    """Represents a single validation problem."""

    severity: str
    path: str
    message: str
    code: str
    fix_suggestion: Optional[str] = None


@dataclass(slots=True)
class ValidationReport:
    """Aggregates validation warnings and errors."""

    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def error(self, path: str, message: str, code: str, fix_suggestion: Optional[str] = None) -> None:
        self.errors.append(ValidationIssue("error", path, message, code, fix_suggestion))

    def warning(self, path: str, message: str, code: str, fix_suggestion: Optional[str] = None) -> None:
        self.warnings.append(ValidationIssue("warning", path, message, code, fix_suggestion))


_STRING_LIST = {
    "oneOf": [
        {"type": "array", "items": {"type": "string"}},
        {"type": "string"},
    ]
}

GRAMMAR_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "description": {"type": "string"},
        "regex": {"type": "string", "minLength": 1},
        "timestamp_format": {"type": "string", "minLength": 1},
        "station_from": {"type": "string", "enum": list(STATION_SOURCES)},
        "default_station": {"type": "string"},
        "format_template": {"type": "string"},
        "extensions": _STRING_LIST,
    },
    "required": ["regex", "timestamp_format"],
    "additionalProperties": False,
}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "settings": {
            "type": "object",
            "properties": {
                "source_dir": {"type": "string"},
                "destination_dir": {"type": "string"},
                "source_globs": _STRING_LIST,
                "camera_dirs": _STRING_LIST,
                "tolerance_seconds": {"type": "number", "minimum": 0},
                "pair_threshold_seconds": {"type": "number", "minimum": 0},
                "grammar": {"oneOf": [{"type": "string"}, GRAMMAR_SCHEMA]},
                "transfer_mode": {"type": "string", "enum": list(TRANSFER_MODES)},
                "overwrite": {"type": "boolean"},
                "dry_run": {"type": "boolean"},
                "unmatched": {"type": "string", "enum": list(UNMATCHED_POLICIES)},
                "keep_empty_files": {"type": "boolean"},
                "destination": {
                    "type": "object",
                    "properties": {
                        "session_dir_template": {"type": "string", "minLength": 1},
                        "filename_template": {"type": "string", "minLength": 1},
                        "unmatched_dir": {"type": "string", "minLength": 1},
                        "empty_dir": {"type": "string", "minLength": 1},
                    },
                    "additionalProperties": False,
                },
                "suffix": {
                    "type": "object",
                    "properties": {
                        "separator": {"type": "string"},
                        "start": {"type": "integer", "minimum": 0},
                    },
                    "additionalProperties": False,
                },
            },
            "required": ["source_dir", "destination_dir"],
            "additionalProperties": False,
        },
        "grammars": {
            "type": "object",
            "additionalProperties": GRAMMAR_SCHEMA,
        },
    },
    "required": ["settings"],
    "additionalProperties": False,
}

FIX_SUGGESTIONS: Dict[str, str] = {
    "schema": "Compare the key with the example configuration in the README.",
    "grammar": "Grammar regexes need a named 'timestamp' group and, for station_from: group, a 'station' group.",
    "template": "Available placeholders: station, session_start, session_end, session_date, session_time, "
    "session_stamp, session_index, file_count, filename, stem, extension, suffix, timestamp, sequence.",
    "source-missing": "Check the path, or mount the capture drive before running.",
    "pairing": 'List the two camera folders under camera_dirs, e.g. ["C*_RGB", "C*_NIR"].',
}


def _format_jsonschema_path(path: Sequence[Any]) -> str:
    if not path:
        return "<root>"
    tokens: List[str] = []
    for part in path:
        if isinstance(part, int):
            if tokens:
                tokens[-1] = f"{tokens[-1]}[{part}]"
            else:
                tokens.append(f"[{part}]")
        else:
            tokens.append(str(part))
    return ".".join(tokens) if tokens else "<root>"


def validate_config_data(data: Dict[str, Any]) -> ValidationReport:
    """Validate a raw configuration document against schema and semantic rules.

    Args:
        data: The parsed YAML document

    Returns:
        ValidationReport containing any errors or warnings found
    """
    report = ValidationReport()
    validator = Draft7Validator(CONFIG_SCHEMA)

    for error in sorted(validator.iter_errors(data), key=lambda exc: _format_jsonschema_path(exc.absolute_path)):
        report.error(
            _format_jsonschema_path(error.absolute_path),
            error.message,
            "schema",
            FIX_SUGGESTIONS["schema"],
        )

    if report.errors:
        return report

    _validate_semantics(data, report)
    return report


def _validate_semantics(data: Dict[str, Any], report: ValidationReport) -> None:
    for name, definition in (data.get("grammars") or {}).items():
        try:
            build_grammar(str(name), definition, field_name=f"grammars.{name}")
        except ConfigError as exc:
            report.error(f"grammars.{name}", str(exc), "grammar", FIX_SUGGESTIONS["grammar"])

    try:
        settings = settings_from_data(data)
    except ConfigError as exc:
        report.error("settings", str(exc), "settings")
        return

    try:
        validate_templates(settings.destination)
    except ConfigError as exc:
        report.error("settings.destination", str(exc), "template", FIX_SUGGESTIONS["template"])

    if settings.pair_threshold is not None and len(settings.camera_dirs) != 2:
        report.error(
            "settings.pair_threshold_seconds",
            "Pairing needs exactly two camera_dirs",
            "pairing",
            FIX_SUGGESTIONS["pairing"],
        )

    if not settings.source_dir.exists():
        report.warning(
            "settings.source_dir",
            f"Source directory does not exist: {settings.source_dir}",
            "source-missing",
            FIX_SUGGESTIONS["source-missing"],
        )
    if settings.overwrite and settings.transfer_mode == "copy":
        report.warning(
            "settings.overwrite",
            "Overwriting with transfer_mode 'copy' replaces files in the destination tree on every run",
            "overwrite-copy",
        )
    if settings.tolerance.total_seconds() == 0:
        report.warning(
            "settings.tolerance_seconds",
            "A tolerance of 0 starts a new session for every distinct timestamp",
            "zero-tolerance",
        )
    if settings.destination_dir.resolve() == settings.source_dir.resolve():
        report.warning(
            "settings.destination_dir",
            "Destination is the source directory; sessions will be created inside the source tree",
            "same-dirs",
        )


def validate_config_file(path: Path) -> tuple[ValidationReport, Optional[Dict[str, Any]]]:
    """Load and validate ``path``; unreadable or malformed files become a single error."""
    report = ValidationReport()
    try:
        data = load_config_data(path)
    except ConfigError as exc:
        report.error("<file>", str(exc), "load-config")
        return report, None
    return validate_config_data(data), data
