from __future__ import annotations

import datetime as dt
from io import StringIO
from pathlib import Path

from rich.console import Console

from ix_match.banner import BannerInfo, build_banner_info, print_startup_banner
from ix_match.config import Settings
from ix_match.grammar import get_grammar


def _render(info: BannerInfo) -> str:
    buffer = StringIO()
    print_startup_banner(info, Console(file=buffer, width=120, force_terminal=False, color_system=None))
    return buffer.getvalue()


def test_build_banner_info_from_settings(tmp_path: Path) -> None:
    settings = Settings(
        source_dir=tmp_path / "card",
        destination_dir=tmp_path / "sorted",
        dry_run=True,
        transfer_mode="copy",
        camera_dirs=["C*_RGB"],
    )

    info = build_banner_info(settings, verbose=True)

    assert info.dry_run
    assert info.verbose
    assert info.transfer_mode == "copy"
    assert info.grammar == "station-datetime"
    assert info.tolerance_seconds == 60
    assert info.camera_dirs == ["C*_RGB"]
    assert not info.passthrough_unmatched


def test_banner_shows_modes_and_directories(tmp_path: Path) -> None:
    settings = Settings(
        source_dir=tmp_path / "card",
        destination_dir=tmp_path / "sorted",
        dry_run=True,
        overwrite=True,
        unmatched_policy="passthrough",
    )

    output = _render(build_banner_info(settings))

    assert "IX-MATCH" in output
    assert "DRY-RUN" in output
    assert "OVERWRITE" in output
    assert "passthrough" in output
    assert "Grammar" in output
    assert "60s" in output


def test_banner_omits_mode_row_for_plain_runs(tmp_path: Path) -> None:
    settings = Settings(source_dir=tmp_path / "card", destination_dir=tmp_path / "sorted")
    output = _render(build_banner_info(settings))
    assert "Mode" not in output
    assert "Cameras" not in output


def test_banner_shows_sample_filename_for_grammar(tmp_path: Path) -> None:
    settings = Settings(
        source_dir=tmp_path / "card", destination_dir=tmp_path / "sorted", grammar=get_grammar("phaseone")
    )

    info = build_banner_info(settings)
    output = _render(info)

    assert info.sample_name == "240102_030405678.iiq"
    assert "240102_030405678.iiq" in output
    assert "Pairing" not in output


def test_banner_shows_pairing_threshold(tmp_path: Path) -> None:
    settings = Settings(
        source_dir=tmp_path / "card",
        destination_dir=tmp_path / "sorted",
        camera_dirs=["C*_RGB", "C*_NIR"],
        pair_threshold=dt.timedelta(milliseconds=200),
    )

    output = _render(build_banner_info(settings))

    assert "Pairing" in output
    assert "0.2s" in output
