"""Google Cloud Storage backend for downloaded snapshots."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from google.api_core.exceptions import GoogleAPIError, NotFound, PreconditionFailed
from google.cloud import storage

from sponsorsync.domain.reconciliation.errors import SnapshotStorageError

if TYPE_CHECKING:
    from collections.abc import Callable

log = getLogger(__name__)

CSV_CONTENT_TYPE = "text/csv"


@dataclass(slots=True)
class GcsSnapshotStorage:
    """Blocking client calls run in worker threads; the client is created on first use."""

    client_factory: Callable[[], storage.Client] = field(default=storage.Client)
    content_type: str = CSV_CONTENT_TYPE
    _client: storage.Client | None = field(default=None, init=False, repr=False)

    async def exists(self, bucket: str, key: str) -> bool:
        return await asyncio.to_thread(self._exists, bucket, key)

    async def upload(self, bucket: str, key: str, content: bytes) -> None:
        await asyncio.to_thread(self._upload, bucket, key, content)

    async def download(self, bucket: str, key: str) -> bytes | None:
        return await asyncio.to_thread(self._download, bucket, key)

    def _blob(self, bucket: str, key: str) -> storage.Blob:
        if self._client is None:
            self._client = self.client_factory()
        return self._client.bucket(bucket).blob(key)

    def _exists(self, bucket: str, key: str) -> bool:
        try:
            return bool(self._blob(bucket, key).exists())
        except GoogleAPIError as exc:
            raise SnapshotStorageError(f"Could not check gs://{bucket}/{key}: {exc}") from exc

    def _upload(self, bucket: str, key: str, content: bytes) -> None:
        try:
            # generation 0 means "only if the object does not exist yet"
            self._blob(bucket, key).upload_from_string(
                content,
                content_type=self.content_type,
                if_generation_match=0,
            )
        except PreconditionFailed:
            log.info("gs://%s/%s already exists, keeping the stored copy", bucket, key)
        except GoogleAPIError as exc:
            raise SnapshotStorageError(f"Could not upload gs://{bucket}/{key}: {exc}") from exc

    def _download(self, bucket: str, key: str) -> bytes | None:
        try:
            return self._blob(bucket, key).download_as_bytes()
        except NotFound:
            return None
        except GoogleAPIError as exc:
            raise SnapshotStorageError(f"Could not download gs://{bucket}/{key}: {exc}") from exc


if TYPE_CHECKING:
    from sponsorsync.domain.ports import SnapshotStorage

    _gcs_check: SnapshotStorage = GcsSnapshotStorage()
