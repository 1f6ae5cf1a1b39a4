"""
Readability-based main-article isolation.

Scores block elements by text density, link density, and tag semantics, and
keeps the best-scoring subtree (the same approach browsers use for reader
view). Page metadata (byline, site name, description) comes from Trafilatura.
"""

from __future__ import annotations

from typing import Any

import structlog
from lxml import html as lxml_html
from readability import Document
from trafilatura.metadata import extract_metadata

from unbias.ingestion.models import ExtractedContent

logger = structlog.get_logger(__name__)

# readability-lxml returns this placeholder when a page has no <title>.
_NO_TITLE = "[no-title]"


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    as_str = str(value).strip()
    return as_str or None


def _summary_text(body_html: str) -> str | None:
    fragment = lxml_html.fromstring(body_html)
    return _clean(fragment.text_content())


def _page_metadata(html: str, url: str) -> dict[str, str | None]:
    try:
        metadata = extract_metadata(html, default_url=url)
    except Exception as exc:
        logger.debug("Page metadata extraction failed", url=url, error=str(exc))
        return {}
    if metadata is None:
        return {}
    return {
        "title": _clean(getattr(metadata, "title", None)),
        "byline": _clean(getattr(metadata, "author", None)),
        "site_name": _clean(getattr(metadata, "sitename", None)),
        "excerpt": _clean(getattr(metadata, "description", None)),
    }


def extract_with_readability(html: str, url: str) -> ExtractedContent | None:
    """
    Isolate the main article of `html`, resolving relative links against `url`.

    Returns None when no article-like subtree is found or parsing fails.
    """
    if not html or not html.strip():
        return None

    try:
        document = Document(html, url=url)
        body_html = _clean(document.summary(html_partial=True))
        body_text = _summary_text(body_html) if body_html else None
        title = _clean(document.short_title())
    except Exception as exc:
        logger.warning("Readability extraction failed", url=url, error=str(exc))
        return None

    if body_text is None:
        logger.debug("Readability found no article content", url=url)
        return None

    metadata = _page_metadata(html, url)
    if title == _NO_TITLE:
        title = None

    return ExtractedContent(
        title=title or metadata.get("title"),
        body_text=body_text,
        body_html=body_html,
        byline=metadata.get("byline"),
        excerpt=metadata.get("excerpt"),
        site_name=metadata.get("site_name"),
    )
