from __future__ import annotations

import logging
from pathlib import Path

import pytest

from ix_match.file_discovery import (
    find_dir_by_pattern,
    gather_from_roots,
    gather_source_files,
    matches_globs,
    skip_reason_for_source_file,
)


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x")
    return path


class TestSkipReasonForSourceFile:
    """Files that are never capture candidates."""

    def test_normal_file(self) -> None:
        assert skip_reason_for_source_file(Path("/card/STA1_20240101_120000.iiq")) is None

    def test_macos_resource_fork(self) -> None:
        reason = skip_reason_for_source_file(Path("/card/._STA1_20240101_120000.iiq"))
        assert reason is not None
        assert "resource fork" in reason.lower()


class TestMatchesGlobs:
    """Case-insensitive glob filtering."""

    def test_case_insensitive(self) -> None:
        assert matches_globs(Path("A.IIQ"), ["*.iiq"])
        assert matches_globs(Path("a.iiq"), ["*.IIQ"])

    def test_no_match(self) -> None:
        assert not matches_globs(Path("a.jpg"), ["*.iiq"])

    def test_empty_filter_accepts_everything(self) -> None:
        assert matches_globs(Path("a.jpg"), [])


class TestGatherSourceFiles:
    """Walking the source tree."""

    def test_recursive_sorted_and_filtered(self, tmp_path: Path) -> None:
        _touch(tmp_path / "b" / "2.iiq")
        _touch(tmp_path / "a" / "1.IIQ")
        _touch(tmp_path / "a" / "notes.txt")
        _touch(tmp_path / "a" / "._1.IIQ")

        found = list(gather_source_files(tmp_path))

        assert found == [tmp_path / "a" / "1.IIQ", tmp_path / "b" / "2.iiq"]

    def test_symlinks_are_skipped(self, tmp_path: Path) -> None:
        real = _touch(tmp_path / "elsewhere" / "real.iiq")
        source = tmp_path / "source"
        source.mkdir()
        (source / "link.iiq").symlink_to(real)
        (source / "linked_dir").symlink_to(real.parent, target_is_directory=True)

        assert list(gather_source_files(source)) == []

    def test_excluded_directories_are_pruned(self, tmp_path: Path) -> None:
        _touch(tmp_path / "1.iiq")
        _touch(tmp_path / "sorted" / "S_1" / "1.iiq")

        found = list(gather_source_files(tmp_path, exclude=[tmp_path / "sorted"]))

        assert found == [tmp_path / "1.iiq"]

    def test_missing_source_warns(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="ix_match.file_discovery"):
            assert list(gather_source_files(tmp_path / "missing")) == []
        assert "Source Directory Missing" in caplog.text

    def test_gather_from_roots_deduplicates(self, tmp_path: Path) -> None:
        path = _touch(tmp_path / "cam" / "1.iiq")
        found = list(gather_from_roots([tmp_path / "cam", tmp_path / "cam"], ["*.iiq"]))
        assert found == [path]


class TestFindDirByPattern:
    """Camera directory lookup."""

    def test_single_match(self, tmp_path: Path) -> None:
        (tmp_path / "C001_RGB").mkdir()
        (tmp_path / "C002_NIR").mkdir()
        assert find_dir_by_pattern(tmp_path, "C*_RGB") == tmp_path / "C001_RGB"

    def test_files_are_not_directories(self, tmp_path: Path) -> None:
        _touch(tmp_path / "C001_RGB")
        assert find_dir_by_pattern(tmp_path, "C*_RGB") is None

    def test_no_match_warns(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            assert find_dir_by_pattern(tmp_path, "C*_RGB") is None
        assert "No Directory Matches Pattern" in caplog.text

    def test_multiple_matches_warn(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        (tmp_path / "C001_RGB").mkdir()
        (tmp_path / "C002_RGB").mkdir()
        with caplog.at_level(logging.WARNING):
            assert find_dir_by_pattern(tmp_path, "C*_RGB") is None
        assert "Multiple Directories Match Pattern" in caplog.text

    def test_base_with_glob_characters(self, tmp_path: Path) -> None:
        base = tmp_path / "flight[1]"
        (base / "C001_RGB").mkdir(parents=True)
        assert find_dir_by_pattern(base, "C*_RGB") == base / "C001_RGB"
