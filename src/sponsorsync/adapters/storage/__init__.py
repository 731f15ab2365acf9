"""Durable storage backends for register snapshots."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .gcs import GcsSnapshotStorage
from .local import LocalSnapshotStorage

if TYPE_CHECKING:
    from sponsorsync.config import StorageConfig
    from sponsorsync.domain.ports import SnapshotStorage


def build_snapshot_storage(config: StorageConfig) -> SnapshotStorage:
    if config.backend == "gcs":
        return GcsSnapshotStorage()
    return LocalSnapshotStorage(root=config.ensure_data_dir())


__all__ = ["GcsSnapshotStorage", "LocalSnapshotStorage", "build_snapshot_storage"]
