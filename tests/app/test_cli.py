from __future__ import annotations

from datetime import UTC, datetime

import pytest

from sponsorsync.config import MissingConfigurationError
from sponsorsync.domain.model import RunRecord, RunStatus
from sponsorsync.domain.reconciliation import ReconciliationResult
from sponsorsync.ui import cli as cli_module

STARTED = datetime(2024, 6, 5, 7, 0, tzinfo=UTC)


def _result(status: RunStatus) -> ReconciliationResult:
    record = RunRecord.begin(STARTED)
    if status is RunStatus.FAILED:
        record.record_error("Date node not found.", origin="register_page.last_updated")
        record.fail(STARTED)
    elif status is RunStatus.COMPLETED:
        record.file_name = "register.csv"
        record.status = RunStatus.COMPLETED
        record.finished_at = STARTED
    return ReconciliationResult(status=record.status, record=record)


def test_sync_defaults_to_configured_sizes(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_reconcile(**kwargs: object) -> ReconciliationResult:
        captured.update(kwargs)
        return _result(RunStatus.COMPLETED)

    monkeypatch.setattr(cli_module, "reconcile_register", fake_reconcile)

    cli_module.main(["sync"])

    assert captured == {"batch_size": None, "max_workers": None}


def test_sync_with_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_reconcile(**kwargs: object) -> ReconciliationResult:
        captured.update(kwargs)
        return _result(RunStatus.NO_UPDATE)

    monkeypatch.setattr(cli_module, "reconcile_register", fake_reconcile)

    cli_module.main(["sync", "--batch-size", "50", "--max-workers", "2"])

    assert captured == {"batch_size": 50, "max_workers": 2}


def test_failed_run_exits_with_one(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        cli_module, "reconcile_register", lambda **_: _result(RunStatus.FAILED)
    )

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["sync"])

    assert excinfo.value.code == 1


def test_missing_configuration_exits_with_two(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_reconcile(**_: object) -> ReconciliationResult:
        raise MissingConfigurationError("Missing configuration for: SPONSORSYNC_REGISTER_URL")

    monkeypatch.setattr(cli_module, "reconcile_register", fake_reconcile)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["sync"])

    assert excinfo.value.code == 2


def test_unexpected_error_exits_with_one(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_reconcile(**_: object) -> ReconciliationResult:
        raise OSError("database is locked")

    monkeypatch.setattr(cli_module, "reconcile_register", fake_reconcile)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["sync"])

    assert excinfo.value.code == 1


@pytest.mark.parametrize("value", ["0", "-1", "many"])
def test_invalid_batch_size_is_a_usage_error(value: str) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["sync", "--batch-size", value])

    assert excinfo.value.code == 2


def test_status_lists_recent_runs(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    requested: list[int] = []

    def fake_recent_runs(*, limit: int) -> list[RunRecord]:
        requested.append(limit)
        return [_result(RunStatus.COMPLETED).record, _result(RunStatus.FAILED).record]

    monkeypatch.setattr(cli_module, "recent_runs", fake_recent_runs)

    cli_module.main(["status", "--limit", "2"])

    lines = capsys.readouterr().out.splitlines()
    assert requested == [2]
    assert len(lines) == 2
    assert "Completed" in lines[0]
    assert "file=register.csv" in lines[0]
    assert "errors=1" in lines[1]


def test_status_without_runs(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(cli_module, "recent_runs", lambda *, limit: [])  # noqa: ARG005

    cli_module.main(["status"])

    assert capsys.readouterr().out.strip() == "No runs recorded yet."
