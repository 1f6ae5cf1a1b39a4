from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest

from unbias.ingestion.firecrawl_client import (
    FirecrawlClient,
    FirecrawlConfigurationError,
    InvalidScrapeResponseError,
    TransientUpstreamError,
)
from unbias.ingestion.models import ScrapeOptions

pytestmark = pytest.mark.unit

API_URL = "https://api.firecrawl.dev/v1/scrape"
TEST_API_KEY = "fc-test-key"  # pragma: allowlist secret


def _response(status_code: int = 200, *, json: Any = None, text: str | None = None) -> httpx.Response:
    request = httpx.Request("POST", API_URL)
    if text is not None:
        return httpx.Response(status_code, text=text, request=request)
    return httpx.Response(status_code, json=json, request=request)


def _client(mock_http_client: AsyncMock, api_key: str = TEST_API_KEY) -> FirecrawlClient:
    return FirecrawlClient(mock_http_client, api_key=api_key, api_url=API_URL)


@pytest.mark.asyncio
async def test_scrape_posts_options_with_bearer_token(
    mock_http_client: AsyncMock,
    firecrawl_payload: dict[str, Any],
) -> None:
    mock_http_client.post = AsyncMock(return_value=_response(json=firecrawl_payload))
    options = ScrapeOptions(only_main_content=False)

    scraped = await _client(mock_http_client).scrape("https://archive.ph/abcd", options)

    assert scraped.html is not None
    assert scraped.metadata is not None
    assert scraped.metadata.source_url == "https://www.example.com/news/night-buses"
    call = mock_http_client.post.await_args
    assert call.args == (API_URL,)
    assert call.kwargs["json"] == options.to_payload("https://archive.ph/abcd")
    assert call.kwargs["headers"]["Authorization"] == f"Bearer {TEST_API_KEY}"
    assert call.kwargs["timeout"] == 60.0


@pytest.mark.asyncio
async def test_scrape_accepts_unwrapped_payload(mock_http_client: AsyncMock) -> None:
    mock_http_client.post = AsyncMock(
        return_value=_response(json={"markdown": "# Title", "extract": {"title": "Title"}})
    )

    scraped = await _client(mock_http_client).scrape("https://example.com", ScrapeOptions())

    assert scraped.markdown == "# Title"
    assert scraped.html is None
    assert scraped.extract is not None
    assert scraped.extract.title == "Title"


@pytest.mark.asyncio
async def test_scrape_fails_fast_without_api_key(mock_http_client: AsyncMock) -> None:
    client = _client(mock_http_client, api_key="  ")

    with pytest.raises(FirecrawlConfigurationError, match="FIRECRAWL_API_KEY"):
        await client.scrape("https://example.com", ScrapeOptions())

    mock_http_client.post.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [401, 429, 500, 503])
async def test_scrape_wraps_http_errors_as_transient(
    mock_http_client: AsyncMock,
    status_code: int,
) -> None:
    mock_http_client.post = AsyncMock(return_value=_response(status_code, json={"error": "x"}))

    with pytest.raises(TransientUpstreamError) as exc_info:
        await _client(mock_http_client).scrape("https://example.com", ScrapeOptions())

    assert exc_info.value.status_code == status_code
    assert exc_info.value.failure_reason == f"http_{status_code}"
    assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "reason"),
    [
        (httpx.ReadTimeout("timed out"), "timeout"),
        (httpx.ConnectError("refused"), "network"),
    ],
)
async def test_scrape_wraps_transport_errors(
    mock_http_client: AsyncMock,
    error: httpx.HTTPError,
    reason: str,
) -> None:
    mock_http_client.post = AsyncMock(side_effect=error)

    with pytest.raises(TransientUpstreamError) as exc_info:
        await _client(mock_http_client).scrape("https://example.com", ScrapeOptions())

    assert exc_info.value.failure_reason == reason
    assert exc_info.value.__cause__ is error


@pytest.mark.asyncio
async def test_scrape_treats_success_false_as_transient(mock_http_client: AsyncMock) -> None:
    mock_http_client.post = AsyncMock(
        return_value=_response(json={"success": False, "error": "Site blocked"})
    )

    with pytest.raises(TransientUpstreamError, match="Site blocked") as exc_info:
        await _client(mock_http_client).scrape("https://example.com", ScrapeOptions())

    assert exc_info.value.failure_reason == "upstream_failure"


@pytest.mark.asyncio
async def test_scrape_rejects_response_without_content(mock_http_client: AsyncMock) -> None:
    mock_http_client.post = AsyncMock(
        return_value=_response(json={"success": True, "data": {"markdown": "  ", "html": ""}})
    )

    with pytest.raises(InvalidScrapeResponseError, match="neither markdown nor html"):
        await _client(mock_http_client).scrape("https://example.com", ScrapeOptions())


@pytest.mark.asyncio
async def test_scrape_rejects_non_json_body(mock_http_client: AsyncMock) -> None:
    mock_http_client.post = AsyncMock(return_value=_response(text="<html>gateway</html>"))

    with pytest.raises(InvalidScrapeResponseError) as exc_info:
        await _client(mock_http_client).scrape("https://example.com", ScrapeOptions())

    assert exc_info.value.failure_reason == "invalid_json"


@pytest.mark.asyncio
async def test_scrape_rejects_non_object_json(mock_http_client: AsyncMock) -> None:
    mock_http_client.post = AsyncMock(return_value=_response(json=["not", "an", "object"]))

    with pytest.raises(InvalidScrapeResponseError, match="not a JSON object"):
        await _client(mock_http_client).scrape("https://example.com", ScrapeOptions())
