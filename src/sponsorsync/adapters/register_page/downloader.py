"""Plain HTTP download of the register CSV."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from sponsorsync.adapters.http_resilience import ResilienceConfig, ResilientClient
from sponsorsync.config.register import default_download_resilience
from sponsorsync.domain.reconciliation.errors import SnapshotDownloadError

if TYPE_CHECKING:
    from collections.abc import Callable

log = getLogger(__name__)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class HttpSnapshotDownloader:
    resilience: ResilienceConfig = field(default_factory=default_download_resilience)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    async def __call__(self, url: str) -> bytes:
        try:
            async with self.client_factory(self.resilience) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            log.warning("Download of %s failed: %s", url, exc)
            raise SnapshotDownloadError(f"File download failed - URL: {url}.") from exc
        return response.content


if TYPE_CHECKING:
    from sponsorsync.domain.ports import SnapshotDownloader

    _downloader_check: SnapshotDownloader = HttpSnapshotDownloader()
