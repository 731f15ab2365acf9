"""Turn the register's CSV export into one organisation per name."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from sponsorsync.domain.model import Organisation

from .snapshot_schema import SnapshotRow

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

log = getLogger(__name__)

SNAPSHOT_ENCODING = "utf-8-sig"
REPLACEMENT_CHARACTER = "\ufffd"
# above this share of replaced characters the bytes are not CSV text at all
MAX_REPLACED_SHARE = 0.1


@dataclass(slots=True)
class SnapshotParseResult:
    organisations: list[Organisation] = field(default_factory=list[Organisation])
    rows_read: int = 0
    skipped_rows: int = 0
    replaced_characters: int = 0
    decode_error: str | None = None

    @property
    def decoded(self) -> bool:
        return self.decode_error is None

    def __len__(self) -> int:
        return len(self.organisations)


@dataclass(slots=True)
class _Group:
    county: str
    town_cities: dict[str, None] = field(default_factory=dict[str, None])
    type_and_ratings: dict[str, None] = field(default_factory=dict[str, None])
    routes: dict[str, None] = field(default_factory=dict[str, None])

    def absorb(self, row: SnapshotRow) -> None:
        # dict keys keep first-occurrence order
        self.town_cities.setdefault(row.town_city)
        self.type_and_ratings.setdefault(row.type_and_rating)
        self.routes.setdefault(row.route)

    def to_organisation(self, name: str) -> Organisation:
        return Organisation(
            name=name,
            county=self.county,
            town_cities=list(self.town_cities),
            type_and_ratings=list(self.type_and_ratings),
            routes=list(self.routes),
        )


def parse_snapshot(content: bytes) -> SnapshotParseResult:
    """Parse a snapshot, merging rows that share an organisation name.

    Row-level defects never abort the parse: short rows are padded, extra cells are
    dropped and unreadable rows are skipped. Stray bytes that are not UTF-8 become
    U+FFFD. The county comes from the first row of each name. Only content that is
    not text (NUL bytes, or mostly unreadable) yields an empty result, with
    ``decode_error`` set.
    """

    if b"\x00" in content:
        log.warning("Snapshot contains NUL bytes, not parsing it")
        return SnapshotParseResult(decode_error="Snapshot contains NUL bytes.")

    text = content.decode(SNAPSHOT_ENCODING, errors="replace")
    replaced = text.count(REPLACEMENT_CHARACTER)
    if replaced > len(text) * MAX_REPLACED_SHARE:
        log.warning("Snapshot is not text: %d of %d characters unreadable", replaced, len(text))
        return SnapshotParseResult(
            replaced_characters=replaced,
            decode_error=f"{replaced} of {len(text)} characters are not UTF-8.",
        )
    if replaced:
        log.warning("Replaced %d undecodable characters in snapshot", replaced)

    result = SnapshotParseResult(replaced_characters=replaced)
    groups: dict[str, _Group] = {}
    for row in _iter_rows(text, result):
        name = row.organisation_name
        if not name:
            result.skipped_rows += 1
            continue
        group = groups.get(name)
        if group is None:
            group = groups[name] = _Group(county=row.county)
        group.absorb(row)

    result.organisations = [group.to_organisation(name) for name, group in groups.items()]
    log.info(
        "Parsed %d rows into %d organisations (%d skipped)",
        result.rows_read,
        len(result.organisations),
        result.skipped_rows,
    )
    return result


def _iter_rows(text: str, result: SnapshotParseResult) -> Iterator[SnapshotRow]:
    reader = csv.reader(io.StringIO(text, newline=""))
    header: list[str] | None = None
    while True:
        try:
            cells = next(reader)
        except StopIteration:
            return
        except csv.Error as exc:
            log.debug("Skipping unreadable line %d: %s", reader.line_num, exc)
            result.skipped_rows += 1
            continue

        if not any(cell.strip() for cell in cells):
            continue
        if header is None:
            header = [cell.strip() for cell in cells]
            continue

        result.rows_read += 1
        try:
            yield SnapshotRow.model_validate(_map_cells(header, cells))
        except ValidationError as exc:
            log.debug("Skipping malformed line %d: %s", reader.line_num, exc)
            result.skipped_rows += 1


def _map_cells(header: Sequence[str], cells: Sequence[str]) -> dict[str, str]:
    return {
        column: cells[index] if index < len(cells) else "" for index, column in enumerate(header)
    }
