from __future__ import annotations

import datetime as dt
import os
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .grammar import FilenameGrammar, build_grammar, get_grammar
from .utils import env_bool, load_yaml_file

TRANSFER_MODES = ("move", "copy")
UNMATCHED_POLICIES = ("skip", "passthrough")

DEFAULT_SOURCE_GLOBS = ["*.iiq"]
DEFAULT_TOLERANCE_SECONDS = 60.0


@dataclass
class SuffixPolicy:
    separator: str = "_"
    start: int = 1

    def apply(self, stem: str, counter: int) -> str:
        return f"{stem}{self.separator}{counter}"


@dataclass
class DestinationTemplates:
    session_dir_template: str = "{station}_{session_stamp}"
    filename_template: str = "{filename}"
    unmatched_dir: str = "unmatched"
    empty_dir: str = "empty"


@dataclass
class Settings:
    source_dir: Path
    destination_dir: Path
    source_globs: list[str] = field(default_factory=lambda: list(DEFAULT_SOURCE_GLOBS))
    camera_dirs: list[str] = field(default_factory=list)
    tolerance: dt.timedelta = field(default_factory=lambda: dt.timedelta(seconds=DEFAULT_TOLERANCE_SECONDS))
    grammar: FilenameGrammar = field(default_factory=get_grammar)
    destination: DestinationTemplates = field(default_factory=DestinationTemplates)
    suffix: SuffixPolicy = field(default_factory=SuffixPolicy)
    transfer_mode: str = "move"
    overwrite: bool = False
    dry_run: bool = False
    unmatched_policy: str = "skip"
    keep_empty_files: bool = False
    pair_threshold: dt.timedelta | None = None


def parse_tolerance(value: Any, *, field_name: str = "tolerance_seconds") -> dt.timedelta:
    if isinstance(value, dt.timedelta):
        seconds = value.total_seconds()
    else:
        try:
            seconds = float(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"'{field_name}' must be a number of seconds") from exc
    if seconds != seconds:  # NaN
        raise ConfigError(f"'{field_name}' must be a number of seconds")
    if seconds < 0:
        raise ConfigError(f"'{field_name}' must be greater than or equal to 0")
    return dt.timedelta(seconds=seconds)


def _optional_threshold(value: Any) -> dt.timedelta | None:
    if value is None:
        return None
    return parse_tolerance(value, field_name="settings.pair_threshold_seconds")


def _ensure_string_list(value: Any, *, field_name: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ConfigError(f"'{field_name}' must be provided as a list of strings")
    result: list[str] = []
    for index, entry in enumerate(value):
        if not isinstance(entry, str):
            raise ConfigError(f"'{field_name}[{index}]' must be a string")
        cleaned = entry.strip()
        if cleaned:
            result.append(cleaned)
    return result


def _choice(value: Any, choices: tuple[str, ...], *, field_name: str) -> str:
    normalized = str(value).strip().lower()
    if normalized not in choices:
        raise ConfigError(f"'{field_name}' must be one of {', '.join(choices)}, got '{value}'")
    return normalized


def _build_destination_templates(data: dict[str, Any] | None) -> DestinationTemplates:
    defaults = DestinationTemplates()
    if not data:
        return defaults
    if not isinstance(data, dict):
        raise ConfigError("'destination' must be provided as a mapping when specified")

    def _template(key: str, default: str) -> str:
        value = data.get(key, default)
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(f"'destination.{key}' must be a non-empty string")
        return value

    return DestinationTemplates(
        session_dir_template=_template("session_dir_template", defaults.session_dir_template),
        filename_template=_template("filename_template", defaults.filename_template),
        unmatched_dir=_template("unmatched_dir", defaults.unmatched_dir),
        empty_dir=_template("empty_dir", defaults.empty_dir),
    )


def _build_suffix_policy(data: dict[str, Any] | None) -> SuffixPolicy:
    if not data:
        return SuffixPolicy()
    if not isinstance(data, dict):
        raise ConfigError("'suffix' must be provided as a mapping when specified")
    separator = data.get("separator", "_")
    if not isinstance(separator, str) or "/" in separator or "\\" in separator:
        raise ConfigError("'suffix.separator' must be a string without path separators")
    try:
        start = int(data.get("start", 1))
    except (TypeError, ValueError) as exc:
        raise ConfigError("'suffix.start' must be an integer") from exc
    if start < 0:
        raise ConfigError("'suffix.start' must be greater than or equal to 0")
    return SuffixPolicy(separator=separator, start=start)


def resolve_grammar(value: Any, custom: dict[str, Any] | None = None) -> FilenameGrammar:
    """Resolve a grammar reference: a builtin/custom name, an inline mapping, or None."""
    if isinstance(value, FilenameGrammar):
        return value
    if value is None:
        return get_grammar()
    if isinstance(value, dict):
        return build_grammar("custom", value, field_name="settings.grammar")
    name = str(value).strip()
    if custom and name in custom:
        return build_grammar(name, custom[name], field_name=f"grammars.{name}")
    return get_grammar(name)


def build_settings(data: dict[str, Any], *, custom_grammars: dict[str, Any] | None = None) -> Settings:
    if not isinstance(data, dict):
        raise ConfigError("'settings' must be provided as a mapping")

    source_raw = data.get("source_dir")
    destination_raw = data.get("destination_dir")
    if not source_raw:
        raise ConfigError("'settings.source_dir' is required")
    if not destination_raw:
        raise ConfigError("'settings.destination_dir' is required")

    source_globs = _ensure_string_list(data.get("source_globs"), field_name="settings.source_globs")

    dry_run = bool(data.get("dry_run", False))
    overwrite = bool(data.get("overwrite", False))
    env_dry_run = env_bool("IX_MATCH_DRY_RUN")
    env_overwrite = env_bool("IX_MATCH_OVERWRITE")

    return Settings(
        source_dir=Path(str(source_raw)).expanduser().resolve(),
        destination_dir=Path(str(destination_raw)).expanduser().resolve(),
        source_globs=source_globs or list(DEFAULT_SOURCE_GLOBS),
        camera_dirs=_ensure_string_list(data.get("camera_dirs"), field_name="settings.camera_dirs"),
        tolerance=parse_tolerance(data.get("tolerance_seconds", DEFAULT_TOLERANCE_SECONDS)),
        grammar=resolve_grammar(data.get("grammar"), custom_grammars),
        destination=_build_destination_templates(data.get("destination")),
        suffix=_build_suffix_policy(data.get("suffix")),
        transfer_mode=_choice(data.get("transfer_mode", "move"), TRANSFER_MODES, field_name="settings.transfer_mode"),
        overwrite=overwrite if env_overwrite is None else env_overwrite,
        dry_run=dry_run if env_dry_run is None else env_dry_run,
        unmatched_policy=_choice(
            data.get("unmatched", "skip"), UNMATCHED_POLICIES, field_name="settings.unmatched"
        ),
        keep_empty_files=bool(data.get("keep_empty_files", False)),
        pair_threshold=_optional_threshold(data.get("pair_threshold_seconds")),
    )


def _deep_update(target: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    for key, value in updates.items():
        if isinstance(value, dict):
            existing = target.get(key)
            if isinstance(existing, dict):
                _deep_update(existing, value)
            else:
                target[key] = deepcopy(value)
        elif isinstance(value, list):
            target[key] = deepcopy(value)
        else:
            target[key] = value
    return target


def load_config_data(path: Path) -> dict[str, Any]:
    try:
        return load_yaml_file(path)
    except OSError as exc:
        raise ConfigError(f"Unable to read config file {path}: {exc}") from exc
    except (yaml.YAMLError, ValueError) as exc:
        raise ConfigError(f"Invalid config file {path}: {exc}") from exc


def settings_from_data(data: dict[str, Any], overrides: dict[str, Any] | None = None) -> Settings:
    """Build settings from a raw config document, with ``overrides`` layered on ``settings``."""
    custom_grammars = data.get("grammars", {}) or {}
    if not isinstance(custom_grammars, dict):
        raise ConfigError("'grammars' must be defined as a mapping of name -> grammar definition")

    raw_settings = data.get("settings", {}) or {}
    if not isinstance(raw_settings, dict):
        raise ConfigError("'settings' must be provided as a mapping")
    merged = _deep_update(deepcopy(raw_settings), overrides or {})
    return build_settings(merged, custom_grammars=custom_grammars)


def load_config(path: Path, overrides: dict[str, Any] | None = None) -> Settings:
    return settings_from_data(load_config_data(path), overrides)


def validate_settings(settings: Settings) -> None:
    """Raise :class:`ConfigError` when ``settings`` cannot drive a run.

    Checks happen before any file is touched: tolerance, choice fields,
    template rendering, and readability of the source tree.
    """
    from .planner import validate_templates

    parse_tolerance(settings.tolerance)
    _choice(settings.transfer_mode, TRANSFER_MODES, field_name="transfer_mode")
    _choice(settings.unmatched_policy, UNMATCHED_POLICIES, field_name="unmatched")
    if not settings.source_globs:
        raise ConfigError("'source_globs' must contain at least one pattern")
    validate_templates(settings.destination)
    if settings.pair_threshold is not None:
        parse_tolerance(settings.pair_threshold, field_name="pair_threshold_seconds")
        if len(settings.camera_dirs) != 2:
            raise ConfigError("'pair_threshold_seconds' requires exactly two 'camera_dirs' to pair")

    source_dir = settings.source_dir
    if not source_dir.exists():
        raise ConfigError(f"Source directory does not exist: {source_dir}")
    if not source_dir.is_dir():
        raise ConfigError(f"Source path is not a directory: {source_dir}")
    if not os.access(source_dir, os.R_OK | os.X_OK):
        raise ConfigError(f"Source directory is not readable: {source_dir}")

    destination_dir = settings.destination_dir
    if destination_dir.exists() and not destination_dir.is_dir():
        raise ConfigError(f"Destination path is not a directory: {destination_dir}")
