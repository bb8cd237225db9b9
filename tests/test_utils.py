from __future__ import annotations

from pathlib import Path

import pytest

from ix_match.templating import check_template, render_template
from ix_match.utils import (
    env_bool,
    expand_env,
    format_relative,
    load_yaml_file,
    parse_env_bool,
    sanitize_component,
    split_components,
)


def test_sanitize_component_replaces_disallowed_characters() -> None:
    assert sanitize_component("  weird*name?.iiq  ") == "weird_name_.iiq"
    assert sanitize_component("???") == "untitled"


def test_sanitize_component_rejects_dot_segments() -> None:
    assert sanitize_component(".") == "untitled"
    assert sanitize_component("..") == "untitled"


def test_split_components_accepts_both_separators() -> None:
    assert split_components("2024-01-01/STA1\\raw") == ["2024-01-01", "STA1", "raw"]
    assert split_components("//") == []


@pytest.mark.parametrize(
    ("value", "expected"),
    [("1", True), ("Yes", True), ("on", True), ("0", False), ("off", False), ("maybe", None), (None, None)],
)
def test_parse_env_bool(value, expected) -> None:
    assert parse_env_bool(value) is expected


def test_env_bool_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IX_MATCH_TEST_FLAG", "true")
    assert env_bool("IX_MATCH_TEST_FLAG") is True
    monkeypatch.delenv("IX_MATCH_TEST_FLAG")
    assert env_bool("IX_MATCH_TEST_FLAG") is None


def test_expand_env_recurses(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CARD", "/mnt/card")
    assert expand_env({"a": ["$CARD/x"], "b": 3}) == {"a": ["/mnt/card/x"], "b": 3}


def test_load_yaml_file_requires_mapping(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_yaml_file(path)


def test_load_yaml_file_empty_document(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_yaml_file(path) == {}


def test_format_relative() -> None:
    assert format_relative(Path("/out/s/a.iiq"), Path("/out")) == "s/a.iiq"
    assert format_relative(Path("/elsewhere/a.iiq"), Path("/out")) == "/elsewhere/a.iiq"


def test_render_template_keeps_unknown_placeholders() -> None:
    assert render_template("{station}/{unknown}", {"station": "STA1"}) == "STA1/{unknown}"


def test_check_template_reports_problems() -> None:
    assert check_template("{station}", {"station": "STA1"}) is None
    assert check_template("{camera}", {"station": "STA1"}) == "unknown placeholder 'camera'"
    assert check_template("   ", {}) == "renders to an empty string"
    assert check_template("{station:%Y}", {"station": "STA1"}) is not None
