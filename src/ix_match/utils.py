from __future__ import annotations

import os
import re
import string
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


# Boolean true/false string values
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})

SAFE_FILENAME_CHARS = set(string.ascii_letters + string.digits + "-_. ()[]")


def sanitize_component(component: str, replacement: str = "_") -> str:
    """Return a single path component that is safe on every target filesystem."""
    component = component.strip()
    if not component:
        return "untitled"

    cleaned = "".join(ch if ch in SAFE_FILENAME_CHARS else replacement for ch in component)
    cleaned = re.sub(r"%s+" % re.escape(replacement), replacement, cleaned)
    cleaned = cleaned.strip(replacement) or "untitled"

    if cleaned in {".", ".."}:
        return "untitled"

    return cleaned


def split_components(rendered: str) -> list[str]:
    """Split a rendered template on either slash style, dropping empty parts."""
    return [part for part in re.split(r"[\\/]+", rendered) if part.strip()]


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def expand_env(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env(val) for key, val in value.items()}
    return value


def load_yaml_file(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return expand_env(data)


def parse_env_bool(value: Optional[str]) -> Optional[bool]:
    """Parse a boolean from an environment variable string.

    Returns None if value is None or not a recognized boolean string.
    """
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


def env_bool(name: str) -> Optional[bool]:
    """Get a boolean from an environment variable.

    Returns None if not set or not a recognized boolean string.
    """
    return parse_env_bool(os.getenv(name))


def format_relative(path: Path, root: Path) -> str:
    """Format ``path`` relative to ``root`` when possible."""
    try:
        return str(path.relative_to(root))
    except ValueError:
        return str(path)
