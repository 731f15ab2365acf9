"""Run log for reconciliation attempts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from .entity import new_id

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from .organisation import OrganisationSnapshot


class RunStatus(StrEnum):
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    FAILED = "Failed"
    NO_UPDATE = "NoUpdate"

    @property
    def is_terminal(self) -> bool:
        return self is not RunStatus.IN_PROGRESS


@dataclass(frozen=True, slots=True)
class RunError:
    message: str
    origin: str
    trace: str | None = None


@dataclass(slots=True)
class AddedRecords:
    """Inserted organisations; names form a set because workers finish in any order."""

    count: int = 0
    names: set[str] = field(default_factory=set[str])

    def record(self, names: Iterable[str]) -> None:
        for name in names:
            self.count += 1
            self.names.add(name)


@dataclass(frozen=True, slots=True)
class UpdateDetail:
    current: OrganisationSnapshot
    new: OrganisationSnapshot


@dataclass(slots=True)
class UpdatedRecords:
    count: int = 0
    details: list[UpdateDetail] = field(default_factory=list[UpdateDetail])

    def record(self, detail: UpdateDetail) -> None:
        self.count += 1
        self.details.append(detail)


@dataclass(slots=True)
class DeletedRecords:
    count: int = 0
    names: list[str] = field(default_factory=list[str])

    def record(self, name: str) -> None:
        self.count += 1
        self.names.append(name)


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False, kw_only=True)
class RunRecord:
    """One reconciliation attempt.

    At most one record is ``InProgress`` at any time; a later invocation picks it up
    instead of starting over. Collections are reassigned rather than mutated so the
    persistence layer notices every change.
    """

    id: UUID = field(default_factory=new_id)
    status: RunStatus = RunStatus.IN_PROGRESS
    file_name: str | None = None
    source_last_update: datetime | None = None
    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None
    total_records_processed: int = 0
    added_records: AddedRecords = field(default_factory=AddedRecords)
    updated_records: UpdatedRecords = field(default_factory=UpdatedRecords)
    deleted_records: DeletedRecords = field(default_factory=DeletedRecords)
    errors: list[RunError] = field(default_factory=list[RunError])

    @classmethod
    def begin(cls, now: datetime) -> RunRecord:
        return cls(status=RunStatus.IN_PROGRESS, started_at=now)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def resume(self, now: datetime) -> None:
        self.started_at = now

    def record_error(self, message: str, origin: str, trace: str | None = None) -> None:
        self.errors = [*self.errors, RunError(message=message, origin=origin, trace=trace)]

    def fail(self, now: datetime) -> None:
        self.status = RunStatus.FAILED
        self.finished_at = now

    def mark_no_update(self, now: datetime) -> None:
        self.status = RunStatus.NO_UPDATE
        self.finished_at = now

    def complete(
        self,
        now: datetime,
        *,
        total: int,
        added: AddedRecords,
        updated: UpdatedRecords,
        deleted: DeletedRecords,
    ) -> None:
        self.total_records_processed = total
        self.added_records = added
        self.updated_records = updated
        self.deleted_records = deleted
        self.status = RunStatus.COMPLETED
        self.finished_at = now
