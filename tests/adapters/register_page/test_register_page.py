from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import httpx

from sponsorsync.adapters.http_resilience import ResilienceConfig, ResilientClient
from sponsorsync.adapters.register_page import GovUkRegisterPage
from sponsorsync.domain.model import RunRecord

if TYPE_CHECKING:
    from collections.abc import Callable

PAGE_URL = "https://www.gov.uk/government/publications/register-of-licensed-sponsors-workers"
CSV_URL = (
    "https://assets.publishing.service.gov.uk/media/665f/"
    "2024-06-04_-_Worker_and_Temporary_Worker.csv"
)

PAGE_HTML = f"""
<html><body>
  <div class="gem-c-published-dates">
    Published 1 January 2019
    <time class="gem-c-published-dates__change-date timestamp"
          datetime="2024-06-04T10:30:00.000+01:00">4 June 2024</time>
  </div>
  <section class="gem-c-attachment">
    <a class="govuk-link gem-c-attachment__link" href="{CSV_URL}">Register of sponsors</a>
  </section>
</body></html>
"""

TEST_RESILIENCE = ResilienceConfig(name="register-page-test", cache=None)


def _make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(async_handler))  # noqa: SLF001  # type: ignore[reportPrivateUsage]
        return client

    return factory


def _page(handler: Callable[[httpx.Request], httpx.Response]) -> GovUkRegisterPage:
    return GovUkRegisterPage(
        page_url=PAGE_URL,
        resilience=TEST_RESILIENCE,
        client_factory=_make_client_factory(handler),
    )


def _html_handler(html: str, requests: list[httpx.Request] | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return httpx.Response(200, text=html)

    return handler


def test_reads_change_date_and_attachment_link_with_one_request() -> None:
    requests: list[httpx.Request] = []
    page = _page(_html_handler(PAGE_HTML, requests))
    record = RunRecord.begin(datetime(2024, 6, 5, tzinfo=UTC))

    async def scenario() -> tuple[datetime | None, str | None]:
        return await page.last_updated(record), await page.attachment_url(record)

    updated, url = asyncio.run(scenario())

    assert updated == datetime(2024, 6, 4, 9, 30, tzinfo=UTC)
    assert url == CSV_URL
    assert record.errors == []
    assert [str(request.url) for request in requests] == [PAGE_URL]


def test_relative_attachment_link_is_resolved_against_the_page() -> None:
    html = PAGE_HTML.replace(CSV_URL, "/media/665f/register.csv")
    page = _page(_html_handler(html))
    record = RunRecord.begin(datetime(2024, 6, 5, tzinfo=UTC))

    url = asyncio.run(page.attachment_url(record))

    assert url == "https://www.gov.uk/media/665f/register.csv"


def test_missing_nodes_are_recorded_on_the_run() -> None:
    page = _page(_html_handler("<html><body><p>Moved</p></body></html>"))
    record = RunRecord.begin(datetime(2024, 6, 5, tzinfo=UTC))

    async def scenario() -> tuple[datetime | None, str | None]:
        return await page.last_updated(record), await page.attachment_url(record)

    updated, url = asyncio.run(scenario())

    assert updated is None
    assert url is None
    assert [(error.message, error.origin) for error in record.errors] == [
        ("Date node not found.", "register_page.last_updated"),
        ("Link node not found.", "register_page.attachment_url"),
    ]
    assert all(error.trace is None for error in record.errors)


def test_unparseable_change_date_is_recorded_with_trace() -> None:
    html = PAGE_HTML.replace("2024-06-04T10:30:00.000+01:00", "4th of June")
    page = _page(_html_handler(html))
    record = RunRecord.begin(datetime(2024, 6, 5, tzinfo=UTC))

    updated = asyncio.run(page.last_updated(record))

    assert updated is None
    [error] = record.errors
    assert error.origin == "register_page.last_updated"
    assert error.trace


def test_http_error_is_recorded_instead_of_raised() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    page = _page(handler)
    record = RunRecord.begin(datetime(2024, 6, 5, tzinfo=UTC))

    updated = asyncio.run(page.last_updated(record))

    assert updated is None
    [error] = record.errors
    assert "503" in error.message
    assert error.trace
