"""Ports for discovering the current register snapshot."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from sponsorsync.domain.model import RunRecord


@runtime_checkable
class RegisterPage(Protocol):
    """Freshness and link discovery for the published register.

    Implementations never raise: problems are written into ``record.errors`` and
    the method returns ``None`` so the caller can decide what the run becomes.
    """

    async def last_updated(self, record: RunRecord) -> datetime | None: ...

    async def attachment_url(self, record: RunRecord) -> str | None: ...


__all__ = ["RegisterPage"]
