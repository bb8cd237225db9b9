from __future__ import annotations

from pathlib import Path
from unittest.mock import Mock

from ix_match.executor import (
    ALREADY_IN_PLACE,
    DESTINATION_EXISTS,
    TransferResult,
    execute_plan,
    execute_plans,
    transfer_file,
)
from ix_match.models import MovePlan, OutcomeStatus


def _plan(source: Path, destination: Path) -> MovePlan:
    return MovePlan(source_path=source, destination_path=destination, relative_destination=Path(destination.name))


class TestTransferFile:
    """Filesystem transfers."""

    def test_move_creates_parent_directories(self, tmp_path: Path) -> None:
        source = tmp_path / "src.iiq"
        source.write_bytes(b"data")
        destination = tmp_path / "out" / "session" / "src.iiq"

        result = transfer_file(source, destination, "move")

        assert result.created
        assert destination.read_bytes() == b"data"
        assert not source.exists()

    def test_copy_keeps_source(self, tmp_path: Path) -> None:
        source = tmp_path / "src.iiq"
        source.write_bytes(b"data")
        destination = tmp_path / "out" / "src.iiq"

        result = transfer_file(source, destination, "copy")

        assert result.created
        assert source.exists()
        assert destination.read_bytes() == b"data"

    def test_missing_source_reports_reason(self, tmp_path: Path) -> None:
        result = transfer_file(tmp_path / "missing.iiq", tmp_path / "out" / "missing.iiq")
        assert not result.created
        assert result.reason


class TestExecutePlan:
    """Outcome for a single plan."""

    def test_moves_when_destination_free(self, tmp_path: Path) -> None:
        source = tmp_path / "a.iiq"
        source.write_bytes(b"x")
        plan = _plan(source, tmp_path / "out" / "a.iiq")

        outcome = execute_plan(plan)

        assert outcome.status is OutcomeStatus.MOVED
        assert plan.destination_path.exists()

    def test_existing_destination_is_skipped(self, tmp_path: Path) -> None:
        source = tmp_path / "a.iiq"
        source.write_bytes(b"new")
        destination = tmp_path / "out" / "a.iiq"
        destination.parent.mkdir()
        destination.write_bytes(b"old")

        outcome = execute_plan(_plan(source, destination))

        assert outcome.status is OutcomeStatus.SKIPPED
        assert outcome.reason == DESTINATION_EXISTS
        assert destination.read_bytes() == b"old"
        assert source.exists()

    def test_overwrite_replaces_destination(self, tmp_path: Path) -> None:
        source = tmp_path / "a.iiq"
        source.write_bytes(b"new")
        destination = tmp_path / "out" / "a.iiq"
        destination.parent.mkdir()
        destination.write_bytes(b"old")

        outcome = execute_plan(_plan(source, destination), overwrite=True)

        assert outcome.status is OutcomeStatus.MOVED
        assert destination.read_bytes() == b"new"

    def test_same_file_is_already_in_place(self, tmp_path: Path) -> None:
        source = tmp_path / "a.iiq"
        source.write_bytes(b"x")

        outcome = execute_plan(_plan(source, source), overwrite=True)

        assert outcome.status is OutcomeStatus.SKIPPED
        assert outcome.reason == ALREADY_IN_PLACE

    def test_vanished_source_fails(self, tmp_path: Path) -> None:
        mover = Mock()
        outcome = execute_plan(_plan(tmp_path / "gone.iiq", tmp_path / "out" / "gone.iiq"), mover=mover)

        assert outcome.status is OutcomeStatus.FAILED
        assert outcome.reason == "source no longer exists"
        mover.assert_not_called()

    def test_injected_collaborators(self) -> None:
        plan = _plan(Path("/src/a.iiq"), Path("/dst/a.iiq"))
        mover = Mock(return_value=TransferResult(created=True))

        outcome = execute_plan(plan, mode="copy", mover=mover, exists=lambda path: path == plan.source_path)

        assert outcome.status is OutcomeStatus.MOVED
        mover.assert_called_once_with(plan.source_path, plan.destination_path, "copy")

    def test_mover_oserror_becomes_failure(self) -> None:
        plan = _plan(Path("/src/a.iiq"), Path("/dst/a.iiq"))
        mover = Mock(side_effect=PermissionError("denied"))

        outcome = execute_plan(plan, mover=mover, exists=lambda path: path == plan.source_path)

        assert outcome.status is OutcomeStatus.FAILED
        assert "denied" in (outcome.reason or "")


class TestExecutePlans:
    """Batch execution."""

    def test_failure_does_not_stop_batch(self) -> None:
        plans = [_plan(Path(f"/src/{name}.iiq"), Path(f"/dst/{name}.iiq")) for name in ("a", "b", "c")]

        def mover(source: Path, destination: Path, mode: str) -> TransferResult:
            if source.name == "b.iiq":
                return TransferResult(created=False, reason="disk full")
            return TransferResult(created=True)

        outcomes = execute_plans(
            plans,
            mover=mover,
            exists=lambda path: path.parent == Path("/src"),
            show_progress=False,
        )

        assert [outcome.status for outcome in outcomes] == [
            OutcomeStatus.MOVED,
            OutcomeStatus.FAILED,
            OutcomeStatus.MOVED,
        ]
        assert outcomes[1].reason == "disk full"
        assert [outcome.plan for outcome in outcomes] == plans
