"""Article fetching and extraction."""

from unbias.ingestion.archive_resolver import ArchiveSnapshotResolver
from unbias.ingestion.article_fetcher import (
    ArticleFetcher,
    ArticleFetchTimeoutError,
    ExhaustedRetriesError,
    fetch_article_details,
)
from unbias.ingestion.content_extractor import ContentExtractor
from unbias.ingestion.firecrawl_client import (
    ArticleFetchError,
    FirecrawlClient,
    FirecrawlConfigurationError,
    InvalidScrapeResponseError,
    TransientUpstreamError,
)
from unbias.ingestion.models import ArticleDetails, ExtractedContent, FetchRequest, ScrapeOptions

__all__ = [
    "ArchiveSnapshotResolver",
    "ArticleDetails",
    "ArticleFetchError",
    "ArticleFetchTimeoutError",
    "ArticleFetcher",
    "ContentExtractor",
    "ExhaustedRetriesError",
    "ExtractedContent",
    "FetchRequest",
    "FirecrawlClient",
    "FirecrawlConfigurationError",
    "InvalidScrapeResponseError",
    "ScrapeOptions",
    "TransientUpstreamError",
    "fetch_article_details",
]
