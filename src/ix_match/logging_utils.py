"""Log message formatting and handler setup.

Every log record emitted by ix-match is a small titled block: a heading,
an underline, then aligned ``label: value`` fields or bulleted sections.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, MutableSequence, Sequence
from pathlib import Path
from textwrap import wrap
from typing import Union

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_WRAP_WIDTH = 110
DEFAULT_LABEL_WIDTH = 22
DEFAULT_INDENT = "    "
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s\n%(message)s\n"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

FieldMapping = Union[Mapping[str, object], Sequence[tuple[str, object]]]


def _coerce_items(fields: FieldMapping) -> list[tuple[str, object]]:
    if isinstance(fields, Mapping):
        return list(fields.items())
    return list(fields)


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple, set)):
        return ", ".join(_stringify(item) for item in value)
    return str(value)


def _wrap_text(text: str, width: int) -> list[str]:
    if not text:
        return [""]
    lines: list[str] = []
    for raw_line in text.splitlines() or [""]:
        lines.extend(wrap(raw_line, width=width) or [""])
    return lines


class LogBlockBuilder:
    def __init__(
        self,
        title: str,
        *,
        wrap_width: int = DEFAULT_WRAP_WIDTH,
        label_width: int = DEFAULT_LABEL_WIDTH,
        indent: str = DEFAULT_INDENT,
        pad_top: bool = True,
    ) -> None:
        self.title = title
        self.wrap_width = wrap_width
        self.label_width = label_width
        self.indent = indent
        self.lines: MutableSequence[str] = []
        if pad_top:
            self.lines.append("")
        self.lines.append(title)
        self.lines.append("-" * len(title))

    def add_blank_line(self) -> None:
        if self.lines and self.lines[-1] != "":
            self.lines.append("")

    def add_fields(self, fields: FieldMapping | None) -> None:
        items = _coerce_items(fields) if fields else []
        if not items:
            return

        longest = max(len(str(key)) for key, _ in items)
        label_width = max(min(longest, self.label_width), 8)
        value_width = max(self.wrap_width - len(self.indent) - label_width - 4, 32)

        for key, value in items:
            first, *rest = _wrap_text(_stringify(value), value_width)
            self.lines.append(f"{self.indent}{str(key):<{label_width}}: {first}")
            for continuation in rest:
                self.lines.append(f"{self.indent}{'':<{label_width}}  {continuation}")

    def add_section(
        self,
        heading: str,
        items: Iterable[object],
        *,
        empty_label: str = "(none)",
    ) -> None:
        self.add_blank_line()
        self.lines.append(f"{heading}:")
        materialized = [item for item in items if item is not None]
        if not materialized:
            self.lines.append(f"{self.indent}{empty_label}")
            return

        bullet = self.indent + "- "
        continuation_indent = self.indent + "  "
        width = max(self.wrap_width - len(bullet), 24)
        for item in materialized:
            first, *rest = _wrap_text(_stringify(item), width)
            self.lines.append(f"{bullet}{first}")
            for continuation in rest:
                self.lines.append(f"{continuation_indent}{continuation}")

    def render(self) -> str:
        return "\n".join(self.lines).rstrip()


def render_fields_block(title: str, fields: FieldMapping, *, pad_top: bool = True) -> str:
    builder = LogBlockBuilder(title, pad_top=pad_top)
    builder.add_fields(fields)
    return builder.render()


def render_section_block(
    title: str,
    sections: Sequence[tuple[str, Sequence[object]]],
    *,
    fields: FieldMapping | None = None,
    pad_top: bool = True,
) -> str:
    builder = LogBlockBuilder(title, pad_top=pad_top)
    builder.add_fields(fields)
    for heading, items in sections:
        builder.add_section(heading, items)
    return builder.render()


def configure_logging(
    level: int = logging.INFO,
    *,
    console_level: int | None = None,
    log_file: Path | None = None,
    console: Console | None = None,
) -> None:
    """Install the console (Rich) and optional file handlers on the root logger.

    Args:
        level: Root logger level; also the console level unless overridden
        console_level: Optional separate threshold for the console handler
        log_file: Optional path receiving plain-text log records
        console: Optional Rich console, mainly for tests
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    rich_handler.setLevel(console_level if console_level is not None else level)
    root.addHandler(rich_handler)

    effective = min(level, console_level) if console_level is not None else level

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, datefmt=FILE_DATE_FORMAT))
        file_handler.setLevel(level)
        root.addHandler(file_handler)

    root.setLevel(effective)
