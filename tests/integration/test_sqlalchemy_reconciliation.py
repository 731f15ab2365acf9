from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from sponsorsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyOrganisationUnitOfWork,
    SqlAlchemyRunLogUnitOfWork,
    shutdown,
    startup,
)
from sponsorsync.adapters.storage import LocalSnapshotStorage
from sponsorsync.app import reconcile_register, recent_runs
from sponsorsync.domain.model import RunStatus
from tests.helpers.organisations import make_organisation, row, snapshot_csv
from tests.support.fakes import FakeDownloader, FakeRegisterPage

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from sponsorsync.domain.ports import RunLogUnitOfWork
    from sponsorsync.domain.reconciliation import ReconciliationResult

SNAPSHOT_URL = "https://assets.publishing.service.gov.uk/media/665f/register.csv"


@pytest.fixture
def file_database(tmp_path: Path) -> Iterator[None]:
    # a file database so the run-log and organisation sessions use separate connections
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'sponsorsync.db'}", future=True)
    startup(engine=engine, force=True)
    try:
        yield
    finally:
        shutdown()


def _sync(
    tmp_path: Path,
    updated_at: datetime,
    content: bytes,
    *,
    run_log_factory: Callable[[], RunLogUnitOfWork] = SqlAlchemyRunLogUnitOfWork,
) -> ReconciliationResult:
    return reconcile_register(
        register_page=FakeRegisterPage(updated_at=updated_at, url=SNAPSHOT_URL),
        downloader=FakeDownloader(content=content),
        storage=LocalSnapshotStorage(root=tmp_path / "objects"),
        bucket="snapshots",
        run_log_factory=run_log_factory,
        organisation_uow_factory=SqlAlchemyOrganisationUnitOfWork,
        batch_size=2,
        max_workers=2,
    )


def _stored_organisations() -> dict[str, tuple[str, list[str]]]:
    with SqlAlchemyOrganisationUnitOfWork() as uow:
        return {
            organisation.name: (organisation.county, organisation.town_cities)
            for organisation in uow.repositories.organisations.stream_all()
        }


@pytest.mark.usefixtures("file_database")
def test_successive_snapshots_reconcile_into_the_database(tmp_path: Path) -> None:
    first_update = datetime.now(UTC) + timedelta(days=1)
    first = snapshot_csv(
        [
            row("Acme Ltd", "Leeds", "West Yorkshire"),
            row("Acme Ltd", "York", "West Yorkshire"),
            row("Beta Care", "Hull"),
            row("Cobalt Labs", "Oxford", "Oxfordshire"),
            row("Delta Foods", "Bristol"),
            row("Echo Media", "Leeds"),
        ]
    )

    created = _sync(tmp_path, first_update, first)

    assert created.status is RunStatus.COMPLETED
    assert created.record.added_records.count == 5
    stored = _stored_organisations()
    assert stored["Acme Ltd"] == ("West Yorkshire", ["Leeds", "York"])
    assert len(stored) == 5
    assert (tmp_path / "objects" / "snapshots" / "org-files" / "register.csv").read_bytes() == first

    second = snapshot_csv(
        [
            row("Acme Ltd", "Leeds", "North Yorkshire"),
            row("Beta Care", "Hull"),
            row("Foxtrot Ltd", "Derby"),
        ]
    )
    changed = _sync(tmp_path, first_update + timedelta(days=1), second)

    assert changed.status is RunStatus.COMPLETED
    assert changed.record.added_records.names == {"Foxtrot Ltd"}
    assert sorted(changed.record.deleted_records.names) == [
        "Cobalt Labs",
        "Delta Foods",
        "Echo Media",
    ]
    assert changed.record.updated_records.count == 1
    stored = _stored_organisations()
    assert set(stored) == {"Acme Ltd", "Beta Care", "Foxtrot Ltd"}
    assert stored["Acme Ltd"] == ("North Yorkshire", ["Leeds"])

    # already reconciled: the source is older than the last completed run
    unchanged = _sync(tmp_path, datetime.now(UTC) - timedelta(days=1), second)

    assert unchanged.status is RunStatus.NO_UPDATE
    runs = recent_runs(limit=10, run_log_factory=SqlAlchemyRunLogUnitOfWork)
    assert [run.id for run in runs] == [changed.record.id, created.record.id]
    assert all(run.status is RunStatus.COMPLETED for run in runs)


@pytest.mark.usefixtures("file_database")
def test_failed_run_is_logged_and_leaves_organisations_alone(tmp_path: Path) -> None:
    update = datetime.now(UTC) + timedelta(days=1)
    _sync(tmp_path, update, snapshot_csv([row("Acme Ltd", "Leeds")]))

    failed = _sync(tmp_path, update + timedelta(days=1), b"")

    assert failed.status is RunStatus.FAILED
    assert set(_stored_organisations()) == {"Acme Ltd"}
    [latest, _] = recent_runs(limit=2, run_log_factory=SqlAlchemyRunLogUnitOfWork)
    assert latest.id == failed.record.id
    assert latest.status is RunStatus.FAILED
    assert latest.errors[0].origin == "fetch_snapshot"


@pytest.mark.usefixtures("file_database")
def test_failed_commit_still_logs_one_failed_run(tmp_path: Path) -> None:
    update = datetime.now(UTC) + timedelta(days=1)
    first = _sync(tmp_path, update, snapshot_csv([row("Acme Ltd", "Leeds")]))
    failures = ["Acme Ltd"]

    class ConflictingRunLog(SqlAlchemyRunLogUnitOfWork):
        def commit(self) -> None:
            if failures:
                # a second organisation under a taken name fails the flush
                self.session.add(make_organisation(failures.pop()))
            super().commit()

    failed = _sync(
        tmp_path,
        update + timedelta(days=1),
        snapshot_csv([row("Beta Care", "Hull")]),
        run_log_factory=ConflictingRunLog,
    )

    assert failed.status is RunStatus.FAILED
    [error] = failed.record.errors
    assert error.origin == "upload_snapshot"
    assert set(_stored_organisations()) == {"Acme Ltd"}
    [latest, previous] = recent_runs(limit=5, run_log_factory=SqlAlchemyRunLogUnitOfWork)
    assert previous.id == first.record.id
    assert previous.status is RunStatus.COMPLETED
    assert latest.id == failed.record.id
    assert latest.status is RunStatus.FAILED
    assert [entry.origin for entry in latest.errors] == ["upload_snapshot"]
