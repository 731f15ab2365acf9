"""Ports for fetching snapshot content from the source."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SnapshotDownloader(Protocol):
    """Callable port returning the raw bytes behind a snapshot URL."""

    async def __call__(self, url: str) -> bytes: ...


__all__ = ["SnapshotDownloader"]
