"""Ports for persisting organisations and the run log."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sponsorsync.domain.model import Organisation, RunRecord

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class OrganisationRepository(Repository[Organisation], Protocol):
    """Persistence contract for organisations."""

    def stream_all(self) -> Iterator[Organisation]:
        """Lazily yield every stored organisation."""
        ...

    def bulk_insert(self, batch: Sequence[Organisation]) -> None:
        """Insert a batch in one round trip; every entity must already carry an id."""
        ...

    def defer_delete(self, organisation: Organisation) -> None:
        """Schedule a delete that takes effect on the next commit."""
        ...


@runtime_checkable
class RunRecordRepository(Repository[RunRecord], Protocol):
    """Persistence contract for the run log."""

    def find_in_progress(self) -> RunRecord | None: ...

    def latest_completed(self) -> RunRecord | None: ...

    def recent(self, limit: int) -> list[RunRecord]: ...

    def save(self, record: RunRecord) -> None: ...
