"""Scraper for the GOV.UK publication page of the sponsor register."""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import datetime
from logging import getLogger
from typing import TYPE_CHECKING, Final
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from sponsorsync.adapters.http_resilience import ResilienceConfig, ResilientClient
from sponsorsync.config.register import default_page_resilience
from sponsorsync.domain.reconciliation.errors import SourceUnavailableError

if TYPE_CHECKING:
    from collections.abc import Callable

    from bs4 import Tag

    from sponsorsync.domain.model import RunRecord

log = getLogger(__name__)

CHANGE_DATE_SELECTOR: Final[str] = "time.gem-c-published-dates__change-date.timestamp"
ATTACHMENT_LINK_SELECTOR: Final[str] = "a.gem-c-attachment__link"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class GovUkRegisterPage:
    """Reads the last-updated stamp and the CSV attachment link off the page.

    The page is downloaded once per instance. Failures never propagate: they are
    added to the run record's errors and the lookup returns ``None``.
    """

    page_url: str
    resilience: ResilienceConfig = field(default_factory=default_page_resilience)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _html: str | None = field(default=None, init=False, repr=False)

    async def last_updated(self, record: RunRecord) -> datetime | None:
        origin = "register_page.last_updated"
        try:
            node = await self._select(CHANGE_DATE_SELECTOR)
            if node is None:
                raise SourceUnavailableError("Date node not found.")
            raw = node.get("datetime")
            if not isinstance(raw, str) or not raw.strip():
                raise SourceUnavailableError("Date node has no datetime attribute.")
            return datetime.fromisoformat(raw.strip())
        except Exception as exc:  # noqa: BLE001
            _record_failure(record, exc, origin)
            return None

    async def attachment_url(self, record: RunRecord) -> str | None:
        origin = "register_page.attachment_url"
        try:
            node = await self._select(ATTACHMENT_LINK_SELECTOR)
            if node is None:
                raise SourceUnavailableError("Link node not found.")
            href = node.get("href")
            if not isinstance(href, str) or not href.strip():
                raise SourceUnavailableError("Link node has no href attribute.")
            return urljoin(self.page_url, href.strip())
        except Exception as exc:  # noqa: BLE001
            _record_failure(record, exc, origin)
            return None

    async def _select(self, selector: str) -> Tag | None:
        if self._html is None:
            self._html = await self._fetch_page()
        return BeautifulSoup(self._html, "html.parser").select_one(selector)

    async def _fetch_page(self) -> str:
        async with self.client_factory(self.resilience) as client:
            response = await client.get(self.page_url)
            response.raise_for_status()
            log.debug("Fetched register page %s (%d bytes)", self.page_url, len(response.content))
            return response.text


def _record_failure(record: RunRecord, exc: Exception, origin: str) -> None:
    log.warning("%s failed: %s", origin, exc)
    trace = None if isinstance(exc, SourceUnavailableError) else traceback.format_exc()
    record.record_error(str(exc) or type(exc).__name__, origin=origin, trace=trace)


if TYPE_CHECKING:
    from sponsorsync.domain.ports import RegisterPage

    _page_check: RegisterPage = GovUkRegisterPage(page_url="https://example.invalid")
