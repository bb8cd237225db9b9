"""Turn candidate paths into parsed file records.

The enumerator is lazy and side-effect free: it reads names and, when asked,
``stat`` sizes, but never opens a file. Each candidate produces exactly one
item, either a :class:`FileRecord` or a :class:`ParseError`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path
from typing import Optional, Union

from .errors import FilenameParseError
from .grammar import FilenameGrammar
from .logging_utils import render_fields_block
from .models import FileRecord, ParseError

LOGGER = logging.getLogger(__name__)

EnumeratedItem = Union[FileRecord, ParseError]
SizeProbe = Callable[[Path], int]


def stat_size(path: Path) -> int:
    return path.stat(follow_symlinks=False).st_size


def parse_candidate(
    path: Path,
    grammar: FilenameGrammar,
    *,
    size_of: Optional[SizeProbe] = None,
) -> EnumeratedItem:
    try:
        size = size_of(path) if size_of is not None else None
    except OSError as exc:
        return ParseError(source_path=path, filename=path.name, reason=f"unable to stat file: {exc}")

    try:
        return grammar.parse(path, size=size)
    except FilenameParseError as exc:
        LOGGER.debug(
            render_fields_block(
                "Filename Not Recognized",
                {"Source": path, "Grammar": grammar.name, "Reason": exc.reason},
            )
        )
        return ParseError(source_path=path, filename=exc.filename, reason=exc.reason)


def enumerate_records(
    paths: Iterable[Path],
    grammar: FilenameGrammar,
    *,
    size_of: Optional[SizeProbe] = None,
) -> Iterator[EnumeratedItem]:
    """Yield one parsed item per candidate path, in input order."""
    for path in paths:
        yield parse_candidate(path, grammar, size_of=size_of)


def split_results(items: Iterable[EnumeratedItem]) -> tuple[list[FileRecord], list[ParseError]]:
    records: list[FileRecord] = []
    errors: list[ParseError] = []
    for item in items:
        if isinstance(item, ParseError):
            errors.append(item)
        else:
            records.append(item)
    return records, errors
