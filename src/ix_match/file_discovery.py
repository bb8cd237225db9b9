"""Source file discovery and camera directory lookup.

This module walks the source tree for capture files: regular files only,
symlinks are never followed, macOS resource forks are ignored, and names are
matched against the configured globs case-insensitively (camera backs write
both ``.IIQ`` and ``.iiq``).
"""

from __future__ import annotations

import glob
import logging
import os
from collections.abc import Iterable, Iterator, Sequence
from fnmatch import fnmatch
from pathlib import Path

from .logging_utils import render_fields_block

LOGGER = logging.getLogger(__name__)


def skip_reason_for_source_file(path: Path) -> str | None:
    """Return why ``path`` should be skipped, or None if it is a candidate."""
    name = path.name
    if name.startswith("._") and len(name) > 2:
        return "macOS resource fork (._ prefix)"
    return None


def matches_globs(path: Path, globs: Sequence[str]) -> bool:
    """Check a filename against the glob filter; an empty filter accepts everything."""
    if not globs:
        return True
    filename = path.name.lower()
    return any(fnmatch(filename, pattern.lower()) for pattern in globs)


def gather_source_files(
    source_dir: Path,
    globs: Sequence[str] = ("*.iiq",),
    *,
    exclude: Sequence[Path] = (),
) -> Iterator[Path]:
    """Lazily yield candidate files below ``source_dir``.

    Directory symlinks are not descended into and file symlinks are skipped,
    so every yielded path is a regular file that lives inside the tree.
    Directories listed in ``exclude`` (typically the destination root when it
    sits inside the source tree) are pruned.
    """
    excluded = {path.resolve() for path in exclude}
    if not source_dir.exists():
        LOGGER.warning(render_fields_block("Source Directory Missing", {"Path": source_dir}))
        return

    for dirpath, dirnames, filenames in os.walk(source_dir, followlinks=False):
        dirnames[:] = sorted(name for name in dirnames if (Path(dirpath) / name).resolve() not in excluded)
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            if path.is_symlink():
                LOGGER.debug(
                    render_fields_block("Skipping Source File", {"Source": path, "Reason": "symlink"})
                )
                continue
            if not path.is_file():
                continue
            if not matches_globs(path, globs):
                continue
            skip_reason = skip_reason_for_source_file(path)
            if skip_reason:
                LOGGER.debug(
                    render_fields_block("Skipping Source File", {"Source": path, "Reason": skip_reason})
                )
                continue
            yield path


def find_dir_by_pattern(base_dir: Path, dir_pattern: str) -> Path | None:
    """Return the single directory under ``base_dir`` matching ``dir_pattern``.

    Zero or several matches are reported and yield None, since the caller
    cannot tell which camera directory was meant.
    """
    pattern = os.path.join(glob.escape(str(base_dir)), dir_pattern)
    dirs = sorted(Path(match) for match in glob.glob(pattern) if Path(match).is_dir())

    if len(dirs) == 1:
        return dirs[0]
    if not dirs:
        LOGGER.warning(
            render_fields_block("No Directory Matches Pattern", {"Pattern": dir_pattern, "Base": base_dir})
        )
    else:
        LOGGER.warning(
            render_fields_block(
                "Multiple Directories Match Pattern",
                {"Pattern": dir_pattern, "Base": base_dir, "Matches": [d.name for d in dirs]},
            )
        )
    return None


def gather_from_roots(
    roots: Iterable[Path],
    globs: Sequence[str],
    *,
    exclude: Sequence[Path] = (),
) -> Iterator[Path]:
    """Walk several roots in turn, yielding each file once."""
    seen: set[Path] = set()
    for root in roots:
        for path in gather_source_files(root, globs, exclude=exclude):
            if path in seen:
                continue
            seen.add(path)
            yield path
