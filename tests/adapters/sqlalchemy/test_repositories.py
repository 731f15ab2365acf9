"""Tests for SQLAlchemy repositories."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import Session  # noqa: TC002

from sponsorsync.adapters.sqlalchemy.repositories import (
    SqlAlchemyOrganisationRepository,
    SqlAlchemyRunRecordRepository,
)
from sponsorsync.domain.model import RunRecord, RunStatus, new_id
from tests.helpers.organisations import make_organisation

BASE_TIME = datetime(2024, 6, 5, 7, 0, tzinfo=UTC)


def _run(status: RunStatus, started_at: datetime, finished_at: datetime | None = None) -> RunRecord:
    record = RunRecord.begin(started_at)
    record.status = status
    record.finished_at = finished_at
    return record


def test_bulk_insert_assigns_missing_ids_and_streams_by_name(sqlite_session: Session) -> None:
    repository = SqlAlchemyOrganisationRepository(sqlite_session, chunk_size=2)
    preset = new_id()
    batch = [
        make_organisation("Charlie", town_cities=["York"]),
        make_organisation("Alpha", id=preset),
        make_organisation("Bravo"),
    ]

    repository.bulk_insert(batch)
    sqlite_session.commit()

    assert all(organisation.id is not None for organisation in batch)
    assert batch[1].id == preset
    streamed = list(repository.stream_all())
    assert [organisation.name for organisation in streamed] == ["Alpha", "Bravo", "Charlie"]
    assert streamed[2].town_cities == ["York"]
    assert repository.count() == 3


def test_bulk_insert_of_empty_batch_is_a_no_op(sqlite_session: Session) -> None:
    repository = SqlAlchemyOrganisationRepository(sqlite_session)

    repository.bulk_insert([])

    assert repository.count() == 0


def test_updates_and_deferred_deletes_land_on_commit(sqlite_session: Session) -> None:
    repository = SqlAlchemyOrganisationRepository(sqlite_session)
    repository.bulk_insert([make_organisation("Keep", county="Kent"), make_organisation("Drop")])
    sqlite_session.commit()

    loaded = {organisation.name: organisation for organisation in repository.stream_all()}
    loaded["Keep"].overwrite_from(make_organisation("Keep", county="Surrey", routes=["Scale-up"]))
    repository.defer_delete(loaded["Drop"])
    sqlite_session.commit()
    sqlite_session.expunge_all()

    kept = repository.get_by_name("Keep")
    assert kept is not None
    assert kept.county == "Surrey"
    assert kept.routes == ["Scale-up"]
    assert repository.get_by_name("Drop") is None


def test_uncommitted_changes_are_discarded_on_rollback(sqlite_session: Session) -> None:
    repository = SqlAlchemyOrganisationRepository(sqlite_session)
    repository.bulk_insert([make_organisation("Transient")])

    sqlite_session.rollback()

    assert repository.count() == 0


def test_run_queries_pick_the_right_records(sqlite_session: Session) -> None:
    repository = SqlAlchemyRunRecordRepository(sqlite_session)
    older = _run(RunStatus.COMPLETED, BASE_TIME, BASE_TIME + timedelta(minutes=5))
    newer = _run(
        RunStatus.COMPLETED, BASE_TIME + timedelta(days=1), BASE_TIME + timedelta(days=1, hours=1)
    )
    failed = _run(RunStatus.FAILED, BASE_TIME + timedelta(days=2), BASE_TIME + timedelta(days=2))
    open_run = _run(RunStatus.IN_PROGRESS, BASE_TIME + timedelta(days=3))
    for record in (older, newer, failed, open_run):
        repository.add(record)
    sqlite_session.commit()

    latest = repository.latest_completed()
    in_progress = repository.find_in_progress()

    assert latest is not None
    assert latest.id == newer.id
    assert in_progress is not None
    assert in_progress.id == open_run.id
    assert [record.id for record in repository.recent(3)] == [open_run.id, failed.id, newer.id]


def test_empty_run_log(sqlite_session: Session) -> None:
    repository = SqlAlchemyRunRecordRepository(sqlite_session)

    assert repository.latest_completed() is None
    assert repository.find_in_progress() is None
    assert repository.recent(5) == []


def test_save_merges_records_from_another_session(sqlite_session: Session) -> None:
    repository = SqlAlchemyRunRecordRepository(sqlite_session)
    record = _run(RunStatus.IN_PROGRESS, BASE_TIME)
    repository.add(record)
    sqlite_session.commit()
    sqlite_session.expunge_all()

    record.fail(BASE_TIME + timedelta(minutes=1))
    record.record_error("boom", origin="apply_changes")
    repository.save(record)
    sqlite_session.commit()
    sqlite_session.expunge_all()

    stored = sqlite_session.get(RunRecord, record.id)
    assert stored is not None
    assert stored.status is RunStatus.FAILED
    assert [error.origin for error in stored.errors] == ["apply_changes"]
