"""Compare a parsed snapshot with the stored organisations.

Updates are applied to the stored entities in place while the snapshot is walked;
additions are yielded lazily so that inserting can start before the walk finishes.
Deletions are computed up front, before anything is mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from sponsorsync.domain.model import Organisation, UpdatedRecords, UpdateDetail

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

log = getLogger(__name__)


@dataclass(slots=True)
class SnapshotDiff:
    to_add: list[Organisation] = field(default_factory=list[Organisation])
    updated: UpdatedRecords = field(default_factory=UpdatedRecords)
    to_delete: list[Organisation] = field(default_factory=list[Organisation])

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.updated.count and not self.to_delete


def index_by_name(organisations: Iterable[Organisation]) -> dict[str, Organisation]:
    """Key organisations by name; the first of any duplicate names wins."""

    index: dict[str, Organisation] = {}
    for organisation in organisations:
        if organisation.name in index:
            log.warning("Duplicate stored organisation name %r ignored", organisation.name)
            continue
        index[organisation.name] = organisation
    return index


def find_deletions(
    parsed: Iterable[Organisation],
    persisted: Iterable[Organisation],
) -> list[Organisation]:
    incoming = {organisation.name for organisation in parsed}
    return [organisation for organisation in persisted if organisation.name not in incoming]


def needs_update(current: Organisation, incoming: Organisation) -> bool:
    return current.differs_from(incoming)


def apply_update(current: Organisation, incoming: Organisation) -> UpdateDetail:
    before = current.snapshot()
    current.overwrite_from(incoming)
    return UpdateDetail(current=before, new=current.snapshot())


def iter_additions(
    parsed: Iterable[Organisation],
    persisted_by_name: Mapping[str, Organisation],
    updated: UpdatedRecords,
) -> Iterator[Organisation]:
    """Yield organisations missing from the store, updating matched ones as a side effect."""

    for incoming in parsed:
        current = persisted_by_name.get(incoming.name)
        if current is None:
            yield incoming
            continue
        if needs_update(current, incoming):
            updated.record(apply_update(current, incoming))


def diff_snapshot(
    parsed: Iterable[Organisation],
    persisted: Iterable[Organisation],
) -> SnapshotDiff:
    """Eager variant of the diff; stored entities are still overwritten in place."""

    parsed = list(parsed)
    persisted = list(persisted)
    diff = SnapshotDiff(to_delete=find_deletions(parsed, persisted))
    diff.to_add = list(iter_additions(parsed, index_by_name(persisted), diff.updated))
    return diff
