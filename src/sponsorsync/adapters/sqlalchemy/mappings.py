"""SQLAlchemy mapping metadata for organisations and the run log."""

from __future__ import annotations

import json
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any, Final, cast

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers

from sponsorsync.domain.model import (
    AddedRecords,
    DeletedRecords,
    Organisation,
    OrganisationSnapshot,
    RunError,
    RunRecord,
    RunStatus,
    UpdatedRecords,
    UpdateDetail,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]
STATUS_LENGTH: Final[int] = 16


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class _JsonType[T](TypeDecorator[T], ABC):
    """Store a value object as a JSON document in a text column."""

    impl = Text
    cache_ok = True

    @abstractmethod
    def dump(self, value: T) -> object: ...

    @abstractmethod
    def load(self, payload: Any) -> T: ...

    def process_bind_param(self, value: T | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(self.dump(value), ensure_ascii=False)

    def process_result_value(self, value: str | None, dialect: Dialect) -> T | None:
        _ = dialect
        if value is None:
            return None
        return self.load(json.loads(value))


def _strings(payload: Any) -> list[str]:
    if not isinstance(payload, list):
        return []
    return [str(item) for item in cast(list[Any], payload)]


def _dump_snapshot(snapshot: OrganisationSnapshot) -> dict[str, object]:
    return {
        "name": snapshot.name,
        "county": snapshot.county,
        "town_cities": list(snapshot.town_cities),
        "type_and_ratings": list(snapshot.type_and_ratings),
        "routes": list(snapshot.routes),
    }


def _load_snapshot(payload: dict[str, Any]) -> OrganisationSnapshot:
    return OrganisationSnapshot(
        name=str(payload.get("name", "")),
        county=str(payload.get("county", "")),
        town_cities=tuple(_strings(payload.get("town_cities"))),
        type_and_ratings=tuple(_strings(payload.get("type_and_ratings"))),
        routes=tuple(_strings(payload.get("routes"))),
    )


class StringListType(_JsonType[list[str]]):
    """Ordered list of strings; order matters for change detection."""

    cache_ok = True

    def dump(self, value: list[str]) -> object:
        return list(value)

    def load(self, payload: Any) -> list[str]:
        return _strings(payload)


class AddedRecordsType(_JsonType[AddedRecords]):
    cache_ok = True

    def dump(self, value: AddedRecords) -> object:
        return {"count": value.count, "names": sorted(value.names)}

    def load(self, payload: Any) -> AddedRecords:
        return AddedRecords(
            count=int(payload.get("count", 0)),
            names=set(_strings(payload.get("names"))),
        )


class UpdatedRecordsType(_JsonType[UpdatedRecords]):
    cache_ok = True

    def dump(self, value: UpdatedRecords) -> object:
        return {
            "count": value.count,
            "details": [
                {"current": _dump_snapshot(detail.current), "new": _dump_snapshot(detail.new)}
                for detail in value.details
            ],
        }

    def load(self, payload: Any) -> UpdatedRecords:
        details = [
            UpdateDetail(current=_load_snapshot(item["current"]), new=_load_snapshot(item["new"]))
            for item in payload.get("details", [])
        ]
        return UpdatedRecords(count=int(payload.get("count", 0)), details=details)


class DeletedRecordsType(_JsonType[DeletedRecords]):
    cache_ok = True

    def dump(self, value: DeletedRecords) -> object:
        return {"count": value.count, "names": list(value.names)}

    def load(self, payload: Any) -> DeletedRecords:
        return DeletedRecords(
            count=int(payload.get("count", 0)),
            names=_strings(payload.get("names")),
        )


class RunErrorListType(_JsonType[list[RunError]]):
    cache_ok = True

    def dump(self, value: list[RunError]) -> object:
        return [
            {"message": error.message, "origin": error.origin, "trace": error.trace}
            for error in value
        ]

    def load(self, payload: Any) -> list[RunError]:
        if not isinstance(payload, list):
            return []
        return [
            RunError(message=item["message"], origin=item["origin"], trace=item.get("trace"))
            for item in cast(list[dict[str, Any]], payload)
        ]


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

organisation_table = Table(
    "organisation",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String, nullable=False, unique=True),
    Column("county", String, nullable=False, default=""),
    Column("town_cities", StringListType, nullable=False, default=list),
    Column("type_and_ratings", StringListType, nullable=False, default=list),
    Column("routes", StringListType, nullable=False, default=list),
)

run_record_table = Table(
    "run_record",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "status",
        Enum(
            RunStatus,
            name="run_status",
            native_enum=False,
            length=STATUS_LENGTH,
            values_callable=lambda statuses: [status.value for status in statuses],
        ),
        nullable=False,
    ),
    Column("file_name", String, nullable=True),
    Column("source_last_update", UTCDateTime, nullable=True),
    Column("started_at", UTCDateTime, nullable=False),
    Column("finished_at", UTCDateTime, nullable=True),
    Column("total_records_processed", Integer, nullable=False, default=0),
    Column("added_records", AddedRecordsType, nullable=False),
    Column("updated_records", UpdatedRecordsType, nullable=False),
    Column("deleted_records", DeletedRecordsType, nullable=False),
    Column("errors", RunErrorListType, nullable=False),
    Index("ix_run_record_status_finished_at", "status", "finished_at"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")
    mapper_registry.map_imperatively(Organisation, organisation_table)
    mapper_registry.map_imperatively(RunRecord, run_record_table)
    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
