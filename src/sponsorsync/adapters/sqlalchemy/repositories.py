"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import func, insert, select

from sponsorsync.adapters.sqlalchemy.mappings import organisation_table, run_record_table
from sponsorsync.domain.model import Organisation, RunRecord, RunStatus, new_id

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from datetime import datetime

    from sqlalchemy.orm import InstrumentedAttribute, Session

STREAM_CHUNK_SIZE = 1000


class SqlAlchemyOrganisationRepository:
    def __init__(self, session: Session, *, chunk_size: int = STREAM_CHUNK_SIZE) -> None:
        self.session = session
        self.chunk_size = chunk_size

    def add(self, entity: Organisation) -> None:
        self.session.add(entity)

    def stream_all(self) -> Iterator[Organisation]:
        stmt = (
            select(Organisation)
            .order_by(organisation_table.c.name)
            .execution_options(yield_per=self.chunk_size)
        )
        yield from self.session.scalars(stmt)

    def bulk_insert(self, batch: Sequence[Organisation]) -> None:
        if not batch:
            return
        rows: list[dict[str, object]] = []
        for organisation in batch:
            if organisation.id is None:
                organisation.id = new_id()
            rows.append(
                {
                    "id": organisation.id,
                    "name": organisation.name,
                    "county": organisation.county,
                    "town_cities": list(organisation.town_cities),
                    "type_and_ratings": list(organisation.type_and_ratings),
                    "routes": list(organisation.routes),
                }
            )
        self.session.execute(insert(organisation_table), rows)

    def defer_delete(self, organisation: Organisation) -> None:
        self.session.delete(organisation)

    def get_by_name(self, name: str) -> Organisation | None:
        stmt = select(Organisation).where(organisation_table.c.name == name)
        return self.session.execute(stmt).scalar_one_or_none()

    def count(self) -> int:
        return self.session.scalar(select(func.count()).select_from(organisation_table)) or 0


class SqlAlchemyRunRecordRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: RunRecord) -> None:
        self.session.add(entity)

    def save(self, record: RunRecord) -> None:
        # merge also covers records loaded by another session
        if record not in self.session:
            self.session.merge(record)

    def find_in_progress(self) -> RunRecord | None:
        stmt = (
            select(RunRecord)
            .where(run_record_table.c.status == RunStatus.IN_PROGRESS)
            .order_by(self._started_at().desc())
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def latest_completed(self) -> RunRecord | None:
        stmt = (
            select(RunRecord)
            .where(run_record_table.c.status == RunStatus.COMPLETED)
            .order_by(self._finished_at().desc())
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def recent(self, limit: int) -> list[RunRecord]:
        stmt = select(RunRecord).order_by(self._started_at().desc()).limit(limit)
        return list(self.session.scalars(stmt))

    @staticmethod
    def _started_at() -> InstrumentedAttribute[datetime]:
        return cast("InstrumentedAttribute[datetime]", RunRecord.started_at)

    @staticmethod
    def _finished_at() -> InstrumentedAttribute[datetime]:
        return cast("InstrumentedAttribute[datetime]", RunRecord.finished_at)
