from __future__ import annotations

from pathlib import Path

from ix_match.enumerator import enumerate_records, parse_candidate, split_results, stat_size
from ix_match.grammar import get_grammar
from ix_match.models import FileRecord, ParseError


def test_enumerate_yields_one_item_per_path_in_order() -> None:
    paths = [
        Path("/card/STA1_20240101_120030.iiq"),
        Path("/card/garbage.iiq"),
        Path("/card/STA1_20240101_120000.iiq"),
    ]

    items = list(enumerate_records(paths, get_grammar()))

    assert [item.source_path for item in items] == paths
    assert isinstance(items[0], FileRecord)
    assert isinstance(items[1], ParseError)
    assert isinstance(items[2], FileRecord)


def test_enumerate_is_lazy() -> None:
    seen: list[Path] = []

    def paths():
        for name in ("STA1_20240101_120000.iiq", "STA1_20240101_120030.iiq"):
            path = Path(name)
            seen.append(path)
            yield path

    iterator = enumerate_records(paths(), get_grammar())
    assert seen == []
    next(iterator)
    assert len(seen) == 1


def test_split_results_separates_records_and_errors() -> None:
    items = enumerate_records(
        [Path("STA1_20240101_120000.iiq"), Path("nope.iiq"), Path("STA2_20240101_120000.iiq")],
        get_grammar(),
    )

    records, errors = split_results(items)

    assert [record.station for record in records] == ["STA1", "STA2"]
    assert len(errors) == 1
    assert errors[0].filename == "nope.iiq"
    assert "missing field" in errors[0].reason


def test_size_probe_populates_record_size(tmp_path: Path) -> None:
    path = tmp_path / "STA1_20240101_120000.iiq"
    path.write_bytes(b"abc")

    record = parse_candidate(path, get_grammar(), size_of=stat_size)

    assert isinstance(record, FileRecord)
    assert record.size == 3
    assert not record.is_empty


def test_size_probe_failure_becomes_parse_error(tmp_path: Path) -> None:
    path = tmp_path / "STA1_20240101_120000.iiq"

    item = parse_candidate(path, get_grammar(), size_of=stat_size)

    assert isinstance(item, ParseError)
    assert item.reason.startswith("unable to stat file")


def test_zero_byte_record_is_empty(tmp_path: Path) -> None:
    path = tmp_path / "STA1_20240101_120000.iiq"
    path.touch()

    record = parse_candidate(path, get_grammar(), size_of=stat_size)

    assert isinstance(record, FileRecord)
    assert record.is_empty
