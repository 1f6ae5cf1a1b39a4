"""
Records passed between the fetch, extraction, and assembly stages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

FETCH_STRATEGY_FIRECRAWL = "firecrawl"


class ScrapeStrategy(StrEnum):
    ARCHIVE = "archive"
    DIRECT = "direct"


def _safe_str(value: Any) -> str | None:
    if value is None or isinstance(value, dict | list):
        return None
    as_str = str(value).strip()
    return as_str or None


def _first_str(mapping: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = _safe_str(mapping.get(key))
        if value is not None:
            return value
    return None


def _parse_keywords(raw_value: Any) -> list[str]:
    if raw_value is None:
        return []
    if isinstance(raw_value, str):
        return [term.strip() for term in raw_value.split(",") if term.strip()]
    if isinstance(raw_value, list):
        return [str(term).strip() for term in raw_value if str(term).strip()]
    return []


@dataclass(slots=True, frozen=True)
class FetchRequest:
    """One URL to fetch, classified once on entry."""

    url: str
    is_archive_url: bool
    original_url: str | None = None

    @property
    def strategy(self) -> ScrapeStrategy:
        return ScrapeStrategy.ARCHIVE if self.is_archive_url else ScrapeStrategy.DIRECT

    @property
    def requested_url(self) -> str:
        """URL the caller asked for, even when a snapshot is fetched instead."""
        return self.original_url or self.url


@dataclass(slots=True, frozen=True)
class ScrapeOptions:
    """Options sent to the upstream scrape API for one strategy."""

    formats: tuple[str, ...] = ("html", "markdown")
    only_main_content: bool = True
    include_tags: tuple[str, ...] = ()
    exclude_tags: tuple[str, ...] = ()
    remove_base64_images: bool = True
    wait_for_ms: int = 800

    def to_payload(self, url: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "url": url,
            "formats": list(self.formats),
            "onlyMainContent": self.only_main_content,
            "removeBase64Images": self.remove_base64_images,
            "waitFor": self.wait_for_ms,
        }
        if self.include_tags:
            payload["includeTags"] = list(self.include_tags)
        if self.exclude_tags:
            payload["excludeTags"] = list(self.exclude_tags)
        return payload


@dataclass(slots=True, frozen=True)
class ScrapeExtract:
    """Structured fields the upstream API extracted itself."""

    title: str | None = None
    author: str | None = None
    publish_date: str | None = None
    site_name: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> ScrapeExtract | None:
        if not isinstance(payload, dict):
            return None
        return cls(
            title=_safe_str(payload.get("title")),
            author=_safe_str(payload.get("author")),
            publish_date=_first_str(payload, "publishDate", "publishedDate", "date"),
            site_name=_safe_str(payload.get("siteName")),
        )


@dataclass(slots=True, frozen=True)
class ScrapeMetadata:
    """Page metadata reported by the upstream API."""

    source_url: str | None = None
    canonical_url: str | None = None
    language: str | None = None
    keywords: tuple[str, ...] = ()
    title: str | None = None
    og_site_name: str | None = None
    published_time: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> ScrapeMetadata | None:
        if not isinstance(payload, dict):
            return None
        return cls(
            source_url=_first_str(payload, "sourceURL", "sourceUrl", "url"),
            canonical_url=_first_str(payload, "canonicalUrl", "canonical"),
            language=_first_str(payload, "language", "lang"),
            keywords=tuple(_parse_keywords(payload.get("keywords"))),
            title=_first_str(payload, "title", "ogTitle", "og:title"),
            og_site_name=_first_str(payload, "ogSiteName", "og:site_name"),
            published_time=_first_str(
                payload,
                "publishedTime",
                "article:published_time",
                "datePublished",
            ),
        )


@dataclass(slots=True, frozen=True)
class RawScrapeResponse:
    """Loosely-typed upstream scrape result, null-checked field by field."""

    markdown: str | None = None
    html: str | None = None
    extract: ScrapeExtract | None = None
    metadata: ScrapeMetadata | None = None
    raw_extract: dict[str, Any] | None = None
    raw_metadata: dict[str, Any] | None = None

    @property
    def has_content(self) -> bool:
        return bool(self.markdown) or bool(self.html)

    @classmethod
    def from_payload(cls, payload: Any) -> RawScrapeResponse:
        if not isinstance(payload, dict):
            return cls()
        # The REST API wraps results in {"success": ..., "data": {...}}
        data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        markdown = data.get("markdown")
        html = data.get("html") or data.get("rawHtml")
        raw_extract = data.get("extract") or data.get("json")
        raw_metadata = data.get("metadata")
        return cls(
            markdown=markdown if isinstance(markdown, str) and markdown.strip() else None,
            html=html if isinstance(html, str) and html.strip() else None,
            extract=ScrapeExtract.from_payload(raw_extract),
            metadata=ScrapeMetadata.from_payload(raw_metadata),
            raw_extract=raw_extract if isinstance(raw_extract, dict) else None,
            raw_metadata=raw_metadata if isinstance(raw_metadata, dict) else None,
        )


@dataclass(slots=True, frozen=True)
class ExtractedContent:
    """Main-article content isolated from a page; sanitizer stages return copies."""

    title: str | None = None
    body_text: str | None = None
    body_html: str | None = None
    byline: str | None = None
    excerpt: str | None = None
    site_name: str | None = None


@dataclass(slots=True, frozen=True)
class KeywordTag:
    label: str
    id: int
    count: int = 1
    prevalence: float = 0.1
    type: str = "keyword"
    uri: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "count": self.count,
            "prevalence": self.prevalence,
            "id": self.id,
            "type": self.type,
            "uri": self.uri,
        }


@dataclass(slots=True, frozen=True)
class ArticleDetails:
    """Canonical article record handed to the analysis job."""

    title: str | None
    text: str | None
    html: str | None
    author: str | None
    date: str | None
    site_name: str | None
    url: str
    page_url: str
    original_url: str
    canonical_url: str | None = None
    resolved_page_url: str | None = None
    normalized_url: str | None = None
    language: str | None = None
    tags: tuple[KeywordTag, ...] = ()
    images: tuple[dict[str, Any], ...] = field(default_factory=tuple)
    type: str = "article"
    fetch_strategy: str = FETCH_STRATEGY_FIRECRAWL
    is_archive_content: bool = False

    def to_job_details(self) -> dict[str, Any]:
        """Render the record in the camelCase shape persisted with the job."""
        return {
            "title": self.title,
            "text": self.text,
            "html": self.html,
            "author": self.author,
            "date": self.date,
            "siteName": self.site_name,
            "images": [dict(image) for image in self.images],
            "url": self.url,
            "canonicalUrl": self.canonical_url,
            "language": self.language,
            "humanLanguage": self.language,
            "type": self.type,
            "resolvedPageUrl": self.resolved_page_url,
            "pageUrl": self.page_url,
            "normalizedUrl": self.normalized_url,
            "tags": [tag.to_dict() for tag in self.tags] if self.tags else None,
            "fetchStrategy": self.fetch_strategy,
            "originalUrl": self.original_url,
            "isArchiveContent": self.is_archive_content,
        }
