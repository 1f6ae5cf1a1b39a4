"""
Merge extractor output and upstream fields into the canonical article record.

Every field is resolved by an ordered tuple of small source functions; the
first non-empty value wins. No I/O happens here.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from unbias.ingestion.fetch_strategy import normalize_url
from unbias.ingestion.models import (
    FETCH_STRATEGY_FIRECRAWL,
    ArticleDetails,
    ExtractedContent,
    FetchRequest,
    KeywordTag,
    RawScrapeResponse,
)
from unbias.ingestion.sentinels import SentinelTable, get_sentinel_table

_LINE_BREAK_RE = re.compile(r"\s*\n+\s*")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(slots=True, frozen=True)
class AssemblyInputs:
    """Everything one fetch produced, before field selection."""

    scraped: RawScrapeResponse
    extracted: ExtractedContent | None = None


FieldSource = Callable[[AssemblyInputs], str | None]


def _present(value: str | None) -> str | None:
    if value is None:
        return None
    return value if value.strip() else None


def extractor_title(inputs: AssemblyInputs) -> str | None:
    return inputs.extracted.title if inputs.extracted else None


def extract_title(inputs: AssemblyInputs) -> str | None:
    return inputs.scraped.extract.title if inputs.scraped.extract else None


def metadata_title(inputs: AssemblyInputs) -> str | None:
    return inputs.scraped.metadata.title if inputs.scraped.metadata else None


def extractor_body_text(inputs: AssemblyInputs) -> str | None:
    return inputs.extracted.body_text if inputs.extracted else None


def upstream_markdown(inputs: AssemblyInputs) -> str | None:
    return inputs.scraped.markdown


def extractor_byline(inputs: AssemblyInputs) -> str | None:
    return inputs.extracted.byline if inputs.extracted else None


def extract_author(inputs: AssemblyInputs) -> str | None:
    return inputs.scraped.extract.author if inputs.scraped.extract else None


def extractor_site_name(inputs: AssemblyInputs) -> str | None:
    return inputs.extracted.site_name if inputs.extracted else None


def extract_site_name(inputs: AssemblyInputs) -> str | None:
    return inputs.scraped.extract.site_name if inputs.scraped.extract else None


def metadata_og_site_name(inputs: AssemblyInputs) -> str | None:
    return inputs.scraped.metadata.og_site_name if inputs.scraped.metadata else None


def extract_publish_date(inputs: AssemblyInputs) -> str | None:
    return inputs.scraped.extract.publish_date if inputs.scraped.extract else None


def metadata_published_time(inputs: AssemblyInputs) -> str | None:
    return inputs.scraped.metadata.published_time if inputs.scraped.metadata else None


TITLE_SOURCES: tuple[FieldSource, ...] = (extractor_title, extract_title, metadata_title)
BODY_TEXT_SOURCES: tuple[FieldSource, ...] = (extractor_body_text, upstream_markdown)
AUTHOR_SOURCES: tuple[FieldSource, ...] = (extractor_byline, extract_author)
SITE_NAME_SOURCES: tuple[FieldSource, ...] = (
    extractor_site_name,
    extract_site_name,
    metadata_og_site_name,
)
DATE_SOURCES: tuple[FieldSource, ...] = (extract_publish_date, metadata_published_time)


def first_available(sources: tuple[FieldSource, ...], inputs: AssemblyInputs) -> str | None:
    """Value of the first source that yields a non-blank string."""
    for source in sources:
        value = _present(source(inputs))
        if value is not None:
            return value
    return None


def normalize_title_whitespace(title: str) -> str:
    """Turn line breaks into `: ` separators and collapse whitespace runs."""
    return _WHITESPACE_RE.sub(" ", _LINE_BREAK_RE.sub(": ", title)).strip()


def normalize_title(title: str | None, *, table: SentinelTable | None = None) -> str | None:
    """
    Normalize whitespace and strip category prefixes and outlet suffixes.

    Applied until the title stops changing, so the result is stable under
    repeated normalization.
    """
    if title is None or not title.strip():
        return None
    patterns = (table or get_sentinel_table()).title_patterns
    current = normalize_title_whitespace(title)
    while True:
        stripped = current
        for pattern in patterns:
            stripped = pattern.sub("", stripped)
        stripped = normalize_title_whitespace(stripped)
        if stripped == current:
            return current or None
        current = stripped


def build_keyword_tags(keywords: tuple[str, ...]) -> tuple[KeywordTag, ...]:
    return tuple(
        KeywordTag(label=label, id=index)
        for index, label in enumerate(keyword.strip() for keyword in keywords)
        if label
    )


def assemble_article_details(
    request: FetchRequest,
    scraped: RawScrapeResponse,
    extracted: ExtractedContent | None,
    *,
    table: SentinelTable | None = None,
) -> ArticleDetails:
    """Build the record for one successful fetch. Title normalization runs here, once."""
    inputs = AssemblyInputs(scraped=scraped, extracted=extracted)
    metadata = scraped.metadata
    source_url = metadata.source_url if metadata else None
    page_url = request.url

    return ArticleDetails(
        title=normalize_title(first_available(TITLE_SOURCES, inputs), table=table),
        text=first_available(BODY_TEXT_SOURCES, inputs),
        html=extracted.body_html if extracted else None,
        author=first_available(AUTHOR_SOURCES, inputs),
        date=first_available(DATE_SOURCES, inputs),
        site_name=first_available(SITE_NAME_SOURCES, inputs),
        url=source_url or page_url,
        page_url=page_url,
        original_url=request.requested_url,
        canonical_url=metadata.canonical_url if metadata else None,
        resolved_page_url=source_url,
        normalized_url=normalize_url(request.requested_url),
        language=metadata.language if metadata else None,
        tags=build_keyword_tags(metadata.keywords) if metadata else (),
        fetch_strategy=FETCH_STRATEGY_FIRECRAWL,
        is_archive_content=request.is_archive_url,
    )
