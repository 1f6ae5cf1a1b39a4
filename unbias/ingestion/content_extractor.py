"""
Main-article extraction followed by boilerplate cleanup.
"""

from __future__ import annotations

import structlog

from unbias.ingestion.content_sanitizer import SanitizerOptions, sanitize_extracted
from unbias.ingestion.models import ExtractedContent
from unbias.ingestion.readability_extractor import extract_with_readability
from unbias.ingestion.sentinels import SentinelTable

logger = structlog.get_logger(__name__)


class ContentExtractor:
    """Extracts and sanitizes the main article from raw HTML."""

    def __init__(
        self,
        *,
        options: SanitizerOptions | None = None,
        sentinel_table: SentinelTable | None = None,
    ) -> None:
        self.options = options
        self.sentinel_table = sentinel_table

    def extract_article(
        self,
        html: str | None,
        url: str,
        *,
        trim_tail: bool = True,
        trim_sentinels: bool = True,
    ) -> ExtractedContent | None:
        """
        Isolate the article in `html` and strip residual boilerplate.

        Returns None when nothing article-like was found; callers fall back to
        upstream markdown in that case.
        """
        if not html:
            return None
        extracted = extract_with_readability(html, url)
        if extracted is None:
            return None

        sanitized = sanitize_extracted(
            extracted,
            trim_tail=trim_tail,
            trim_sentinels=trim_sentinels,
            options=self.options,
            table=self.sentinel_table,
        )
        logger.debug(
            "Article content sanitized",
            url=url,
            raw_chars=len(extracted.body_text or ""),
            clean_chars=len(sanitized.body_text or ""),
        )
        return sanitized

    @staticmethod
    def extract_text(html: str | None, url: str) -> str | None:
        """Sanitized article text only."""
        extracted = ContentExtractor().extract_article(html, url)
        if extracted is None:
            return None
        return extracted.body_text
