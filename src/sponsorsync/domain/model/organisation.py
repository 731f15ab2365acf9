"""Organisations listed on the sponsor register."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID


@dataclass(frozen=True, slots=True)
class OrganisationSnapshot:
    """Immutable copy of an organisation's comparable fields."""

    name: str
    county: str
    town_cities: tuple[str, ...]
    type_and_ratings: tuple[str, ...]
    routes: tuple[str, ...]


@dataclass(eq=False, kw_only=True)
class Organisation:
    """A licensed sponsor, keyed by its trimmed, case-sensitive name.

    ``id`` stays ``None`` until the store assigns one on insert. The list fields keep
    their order of first appearance; two organisations holding the same values in a
    different order are considered different.
    """

    name: str
    county: str = ""
    town_cities: list[str] = field(default_factory=list[str])
    type_and_ratings: list[str] = field(default_factory=list[str])
    routes: list[str] = field(default_factory=list[str])
    id: UUID | None = None

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    def snapshot(self) -> OrganisationSnapshot:
        return OrganisationSnapshot(
            name=self.name,
            county=self.county,
            town_cities=tuple(self.town_cities),
            type_and_ratings=tuple(self.type_and_ratings),
            routes=tuple(self.routes),
        )

    def differs_from(self, other: Organisation) -> bool:
        return (
            self.county != other.county
            or not _same_sequence(self.town_cities, other.town_cities)
            or not _same_sequence(self.type_and_ratings, other.type_and_ratings)
            or not _same_sequence(self.routes, other.routes)
        )

    def overwrite_from(self, other: Organisation) -> None:
        # fresh lists so that JSON-backed columns register the change
        self.county = other.county
        self.town_cities = list(other.town_cities)
        self.type_and_ratings = list(other.type_and_ratings)
        self.routes = list(other.routes)


def _same_sequence(left: Sequence[str], right: Sequence[str]) -> bool:
    return len(left) == len(right) and all(a == b for a, b in zip(left, right, strict=True))
