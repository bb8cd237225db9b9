from __future__ import annotations

import logging
from io import StringIO
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from ix_match.logging_utils import (
    LogBlockBuilder,
    _stringify,
    configure_logging,
    render_fields_block,
    render_section_block,
)


class TestStringify:
    """Value rendering inside log blocks."""

    def test_none_is_blank(self):
        assert _stringify(None) == ""

    def test_sequences_are_joined(self):
        assert _stringify(["a", Path("b"), 3]) == "a, b, 3"

    def test_strings_are_stripped(self):
        assert _stringify("  padded ") == "padded"


class TestRenderFieldsBlock:
    """Titled key/value blocks."""

    def test_layout(self):
        block = render_fields_block("Run Recap", {"Moved": 3, "Failed": 0}, pad_top=False)
        lines = block.splitlines()
        assert lines[0] == "Run Recap"
        assert lines[1] == "-" * len("Run Recap")
        assert lines[2].strip().startswith("Moved")
        assert lines[2].endswith(": 3")
        assert lines[3].endswith(": 0")

    def test_pad_top_adds_leading_blank_line(self):
        assert render_fields_block("Title", {"A": 1}).startswith("\nTitle")

    def test_long_values_wrap(self):
        block = render_fields_block("Wrap", {"Value": "word " * 60}, pad_top=False)
        assert len(block.splitlines()) > 3


class TestSectionBlocks:
    """Bulleted sections."""

    def test_render_section_block(self):
        block = render_section_block(
            "Detailed Summary",
            [("Parse Errors", ["garbage.iiq: missing field"]), ("Failures", [])],
            fields={"Moved": 2},
            pad_top=False,
        )
        assert "Parse Errors:" in block
        assert "    - garbage.iiq: missing field" in block
        assert "Failures:\n    (none)" in block
        assert "Moved" in block

    def test_builder_skips_none_items(self):
        builder = LogBlockBuilder("Title", pad_top=False)
        builder.add_section("Items", [None, "kept"])
        assert builder.render().count("- ") == 1


class TestConfigureLogging:
    """Handler installation on the root logger."""

    def test_installs_rich_and_file_handlers(self, tmp_path: Path):
        root = logging.getLogger()
        previous_handlers = list(root.handlers)
        previous_level = root.level
        log_file = tmp_path / "logs" / "ix-match.log"
        try:
            configure_logging(
                logging.DEBUG,
                console_level=logging.WARNING,
                log_file=log_file,
                console=Console(file=StringIO()),
            )
            handlers = root.handlers
            assert any(isinstance(handler, RichHandler) for handler in handlers)
            rich_handler = next(handler for handler in handlers if isinstance(handler, RichHandler))
            assert rich_handler.level == logging.WARNING
            assert root.level == logging.DEBUG

            logging.getLogger("ix_match.test").debug("hello file")
            for handler in handlers:
                handler.flush()
            assert "hello file" in log_file.read_text(encoding="utf-8")
        finally:
            for handler in list(root.handlers):
                root.removeHandler(handler)
                handler.close()
            for handler in previous_handlers:
                root.addHandler(handler)
            root.setLevel(previous_level)
