"""
Firecrawl scrape API client.

One call per `scrape()`; retries belong to the caller so the backoff policy and
deadline live in one place.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from unbias.ingestion.models import RawScrapeResponse, ScrapeOptions

logger = structlog.get_logger(__name__)


class ArticleFetchError(RuntimeError):
    """Base class for terminal and retryable article fetch failures."""


class FirecrawlConfigurationError(ArticleFetchError):
    """Raised before any network call when the client is not configured."""


class TransientUpstreamError(ArticleFetchError):
    """Raised for a failed scrape attempt that is worth retrying."""

    def __init__(self, message: str, *, failure_reason: str, status_code: int | None = None):
        super().__init__(message)
        self.failure_reason = failure_reason
        self.status_code = status_code


class InvalidScrapeResponseError(TransientUpstreamError):
    """Raised when the upstream answered but returned neither markdown nor html."""


class FirecrawlClient:
    """
    Thin async wrapper over the Firecrawl `/scrape` endpoint.

    The injected `httpx.AsyncClient` is shared; the client holds no per-call
    state, so one instance serves concurrent requests.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        api_key: str,
        api_url: str = "https://api.firecrawl.dev/v1/scrape",
        request_timeout_seconds: float = 60.0,
    ) -> None:
        self.http_client = http_client
        self.api_key = api_key
        self.api_url = api_url
        self.request_timeout_seconds = request_timeout_seconds

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    def ensure_configured(self) -> None:
        if not self.is_configured:
            msg = "Firecrawl API key is not configured (set FIRECRAWL_API_KEY)"
            raise FirecrawlConfigurationError(msg)

    async def scrape(self, url: str, options: ScrapeOptions) -> RawScrapeResponse:
        """Scrape `url` once; raises `TransientUpstreamError` on any failure."""
        self.ensure_configured()
        try:
            response = await self.http_client.post(
                self.api_url,
                json=options.to_payload(url),
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.request_timeout_seconds,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            msg = f"Firecrawl returned HTTP {status_code} for {url}"
            raise TransientUpstreamError(
                msg,
                failure_reason=f"http_{status_code}",
                status_code=status_code,
            ) from exc
        except httpx.HTTPError as exc:
            reason = self._failure_reason(exc)
            msg = f"Firecrawl request failed ({reason}) for {url}: {exc}"
            raise TransientUpstreamError(msg, failure_reason=reason) from exc

        payload = self._decode_payload(response, url)
        if payload.get("success") is False:
            upstream_error = payload.get("error") or "unknown error"
            msg = f"Firecrawl reported failure for {url}: {upstream_error}"
            raise TransientUpstreamError(msg, failure_reason="upstream_failure")

        scraped = RawScrapeResponse.from_payload(payload)
        if not scraped.has_content:
            msg = f"Firecrawl response for {url} contained neither markdown nor html"
            raise InvalidScrapeResponseError(msg, failure_reason="empty_response")
        return scraped

    @staticmethod
    def _decode_payload(response: httpx.Response, url: str) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            msg = f"Firecrawl response for {url} is not valid JSON"
            raise InvalidScrapeResponseError(msg, failure_reason="invalid_json") from exc
        if not isinstance(payload, dict):
            msg = f"Firecrawl response for {url} is not a JSON object"
            raise InvalidScrapeResponseError(msg, failure_reason="invalid_json")
        return payload

    @staticmethod
    def _failure_reason(exc: BaseException) -> str:
        if isinstance(exc, httpx.TimeoutException | TimeoutError | asyncio.TimeoutError):
            return "timeout"
        if isinstance(exc, httpx.NetworkError):
            return "network"
        return type(exc).__name__.lower()
