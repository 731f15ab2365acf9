"""Ports for durable blob storage of downloaded snapshots."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SnapshotStorage(Protocol):
    async def exists(self, bucket: str, key: str) -> bool: ...

    async def upload(self, bucket: str, key: str, content: bytes) -> None: ...

    async def download(self, bucket: str, key: str) -> bytes | None:
        """Return the stored bytes, or ``None`` when nothing is stored under ``key``."""
        ...


__all__ = ["SnapshotStorage"]
