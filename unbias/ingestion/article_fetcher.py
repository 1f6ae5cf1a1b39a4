"""
Fetch orchestration: strategy selection, retried scraping, extraction, assembly.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import httpx
import structlog

from unbias.core.config import settings
from unbias.ingestion.archive_resolver import ArchiveSnapshotResolver
from unbias.ingestion.content_extractor import ContentExtractor
from unbias.ingestion.extraction_samples import save_extraction_sample
from unbias.ingestion.fetch_strategy import (
    build_fetch_request,
    build_scrape_options,
    is_domain_on_proactive_list,
    with_default_scheme,
)
from unbias.ingestion.firecrawl_client import (
    ArticleFetchError,
    FirecrawlClient,
    TransientUpstreamError,
)
from unbias.ingestion.models import (
    ArticleDetails,
    ExtractedContent,
    FetchRequest,
    RawScrapeResponse,
)
from unbias.ingestion.result_assembler import assemble_article_details
from unbias.ingestion.sentinels import SentinelTable

logger = structlog.get_logger(__name__)

# Strong references to sample writes still running after their fetcher is gone.
_PENDING_SAMPLE_TASKS: set[asyncio.Task[object]] = set()


class ExhaustedRetriesError(ArticleFetchError):
    """Raised when every scrape attempt failed; chained to the last failure."""

    def __init__(self, message: str, *, attempts: int, last_error: BaseException | None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class ArticleFetchTimeoutError(ArticleFetchError):
    """Raised when the caller's deadline expired; remaining attempts are skipped."""


class ArticleFetcher:
    """
    Turns one article URL into an `ArticleDetails` record.

    Archive-service URLs are scraped unfiltered and left to the local
    extractor; live URLs use upstream main-content filtering. Failed scrapes
    are retried with exponential backoff, and local extraction failures fall
    back to the upstream markdown.
    """

    def __init__(
        self,
        firecrawl_client: FirecrawlClient,
        *,
        content_extractor: ContentExtractor | None = None,
        archive_resolver: ArchiveSnapshotResolver | None = None,
        archive_domains: Sequence[str] | None = None,
        proactive_archive_domains: Sequence[str] | None = None,
        max_attempts: int | None = None,
        backoff_base_seconds: float | None = None,
        wait_for_ms: int | None = None,
        save_samples: bool | None = None,
        sentinel_table: SentinelTable | None = None,
    ) -> None:
        self.firecrawl_client = firecrawl_client
        self.sentinel_table = sentinel_table
        self.content_extractor = content_extractor or ContentExtractor(sentinel_table=sentinel_table)
        self.archive_resolver = archive_resolver
        self.archive_domains = tuple(
            settings.ARCHIVE_DOMAINS if archive_domains is None else archive_domains
        )
        self.proactive_archive_domains = tuple(
            settings.PROACTIVE_ARCHIVE_DOMAINS
            if proactive_archive_domains is None
            else proactive_archive_domains
        )
        self.max_attempts = max(
            1, settings.FIRECRAWL_MAX_ATTEMPTS if max_attempts is None else max_attempts
        )
        self.backoff_base_seconds = (
            settings.FIRECRAWL_BACKOFF_BASE_SECONDS
            if backoff_base_seconds is None
            else backoff_base_seconds
        )
        self.wait_for_ms = settings.FIRECRAWL_WAIT_FOR_MS if wait_for_ms is None else wait_for_ms
        self.save_samples = (
            settings.extraction_samples_active if save_samples is None else save_samples
        )
        self._background_tasks: set[asyncio.Task[object]] = set()

    @classmethod
    def from_settings(cls, http_client: httpx.AsyncClient) -> ArticleFetcher:
        """Fetcher wired from environment configuration."""
        firecrawl_client = FirecrawlClient(
            http_client,
            api_key=settings.FIRECRAWL_API_KEY,
            api_url=settings.FIRECRAWL_API_URL,
            request_timeout_seconds=settings.FIRECRAWL_REQUEST_TIMEOUT_SECONDS,
        )
        archive_resolver = None
        if settings.ARCHIVE_RESOLUTION_ENABLED:
            archive_resolver = ArchiveSnapshotResolver(
                http_client,
                mirrors=settings.ARCHIVE_MIRRORS,
                request_timeout_seconds=settings.ARCHIVE_RESOLVER_TIMEOUT_SECONDS,
                mirror_delay_seconds=settings.ARCHIVE_MIRROR_DELAY_SECONDS,
            )
        return cls(firecrawl_client, archive_resolver=archive_resolver)

    async def fetch(self, url: str, *, timeout_seconds: float | None = None) -> ArticleDetails:
        """
        Fetch and assemble one article.

        Raises:
            ValueError: `url` is empty.
            FirecrawlConfigurationError: no API key; raised before any network call.
            ExhaustedRetriesError: every scrape attempt failed.
            ArticleFetchTimeoutError: `timeout_seconds` elapsed first.
        """
        if not url or not url.strip():
            msg = "Article URL must not be empty"
            raise ValueError(msg)
        self.firecrawl_client.ensure_configured()
        url = with_default_scheme(url)

        if timeout_seconds is None:
            return await self._fetch(url)
        try:
            async with asyncio.timeout(timeout_seconds):
                return await self._fetch(url)
        except TimeoutError as exc:
            logger.warning("Article fetch timed out", url=url, timeout_seconds=timeout_seconds)
            msg = f"Fetching {url} did not finish within {timeout_seconds:g}s"
            raise ArticleFetchTimeoutError(msg) from exc

    async def wait_for_background_tasks(self) -> None:
        """Wait for pending debug-sample writes."""
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

    async def _fetch(self, url: str) -> ArticleDetails:
        request = await self._build_request(url)
        scraped = await self._scrape_with_retries(request)
        extracted = await self._extract(request, scraped)
        details = assemble_article_details(request, scraped, extracted, table=self.sentinel_table)

        logger.info(
            "Article content extracted",
            url=request.url,
            title=details.title,
            body_chars=len(details.text or ""),
            author=details.author,
            site_name=details.site_name,
            strategy=request.strategy.value,
            used_extractor=extracted is not None,
        )
        self._schedule_sample(request, scraped, details)
        return details

    async def _build_request(self, url: str) -> FetchRequest:
        request = build_fetch_request(url, self.archive_domains)
        if (
            request.is_archive_url
            or self.archive_resolver is None
            or not is_domain_on_proactive_list(url, self.proactive_archive_domains)
        ):
            return request

        snapshot_url = await self.archive_resolver.resolve(url)
        if snapshot_url is None:
            return request
        return build_fetch_request(snapshot_url, self.archive_domains, original_url=url)

    async def _scrape_with_retries(self, request: FetchRequest) -> RawScrapeResponse:
        options = build_scrape_options(request, wait_for_ms=self.wait_for_ms)
        logger.debug(
            "Scrape options selected",
            url=request.url,
            strategy=request.strategy.value,
            only_main_content=options.only_main_content,
        )

        last_error: TransientUpstreamError | None = None
        for attempt in range(1, self.max_attempts + 1):
            logger.info(
                "Scrape attempt started",
                url=request.url,
                attempt=attempt,
                max_attempts=self.max_attempts,
            )
            try:
                scraped = await self.firecrawl_client.scrape(request.url, options)
            except TransientUpstreamError as exc:
                last_error = exc
                logger.warning(
                    "Scrape attempt failed",
                    url=request.url,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    failure_reason=exc.failure_reason,
                    error=str(exc),
                )
                if attempt >= self.max_attempts:
                    break
                await asyncio.sleep(self._backoff_seconds(attempt))
                continue

            logger.info("Scrape attempt succeeded", url=request.url, attempt=attempt)
            return scraped

        msg = f"Firecrawl scrape failed after {self.max_attempts} attempts: {last_error}"
        raise ExhaustedRetriesError(
            msg,
            attempts=self.max_attempts,
            last_error=last_error,
        ) from last_error

    async def _extract(
        self,
        request: FetchRequest,
        scraped: RawScrapeResponse,
    ) -> ExtractedContent | None:
        if not scraped.html:
            logger.debug("No HTML returned; using markdown body", url=request.url)
            return None
        try:
            extracted = await asyncio.to_thread(
                self.content_extractor.extract_article,
                scraped.html,
                request.url,
            )
        except Exception as exc:
            logger.warning(
                "Content extraction failed; using markdown body",
                url=request.url,
                error=str(exc),
            )
            return None
        if extracted is None:
            logger.debug("Extractor found no article; using markdown body", url=request.url)
        return extracted

    def _backoff_seconds(self, attempt: int) -> float:
        return self.backoff_base_seconds * (2 ** (attempt - 1))

    def _schedule_sample(
        self,
        request: FetchRequest,
        scraped: RawScrapeResponse,
        details: ArticleDetails,
    ) -> None:
        if not self.save_samples:
            return
        task = asyncio.create_task(
            asyncio.to_thread(save_extraction_sample, request.url, scraped, details)
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        _PENDING_SAMPLE_TASKS.add(task)
        task.add_done_callback(_PENDING_SAMPLE_TASKS.discard)


async def fetch_article_details(
    url: str,
    *,
    http_client: httpx.AsyncClient | None = None,
    timeout_seconds: float | None = None,
) -> ArticleDetails:
    """One-shot entry point for the job pipeline."""
    if http_client is not None:
        return await ArticleFetcher.from_settings(http_client).fetch(
            url, timeout_seconds=timeout_seconds
        )
    async with httpx.AsyncClient() as client:
        fetcher = ArticleFetcher.from_settings(client)
        details = await fetcher.fetch(url, timeout_seconds=timeout_seconds)
        await fetcher.wait_for_background_tasks()
        return details
