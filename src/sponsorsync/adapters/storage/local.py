"""Local-directory backend for downloaded snapshots."""

from __future__ import annotations

import asyncio
import os
import tempfile
from dataclasses import dataclass
from logging import getLogger
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from sponsorsync.domain.reconciliation.errors import SnapshotStorageError

log = getLogger(__name__)


@dataclass(slots=True)
class LocalSnapshotStorage:
    """Stores ``<root>/<bucket>/<key>``; an existing file is never overwritten."""

    root: Path

    async def exists(self, bucket: str, key: str) -> bool:
        return self._path(bucket, key).is_file()

    async def upload(self, bucket: str, key: str, content: bytes) -> None:
        await asyncio.to_thread(self._write, self._path(bucket, key), content)

    async def download(self, bucket: str, key: str) -> bytes | None:
        path = self._path(bucket, key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise SnapshotStorageError(f"Could not read {path}: {exc}") from exc

    def _path(self, bucket: str, key: str) -> Path:
        parts = PurePosixPath(key).parts
        if not bucket or not parts or ".." in parts or PurePosixPath(key).is_absolute():
            raise SnapshotStorageError(f"Invalid storage location {bucket!r}/{key!r}")
        return self.root.joinpath(bucket, *parts)

    @staticmethod
    def _write(path: Path, content: bytes) -> None:
        if path.exists():
            log.info("%s already exists, keeping the stored copy", path)
            return
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
            with os.fdopen(fd, "wb") as handle:
                handle.write(content)
            Path(temp_name).replace(path)
        except OSError as exc:
            raise SnapshotStorageError(f"Could not write {path}: {exc}") from exc


if TYPE_CHECKING:
    from sponsorsync.domain.ports import SnapshotStorage

    _local_check: SnapshotStorage = LocalSnapshotStorage(root=Path())
