"""
Pytest configuration and shared fixtures.

This module provides:
- Mock fixtures for unit tests
- Sample article pages and Firecrawl payloads
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from unbias.core.config import settings

# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_sample_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep debug samples written during tests out of the working tree."""
    monkeypatch.setattr(settings, "EXTRACTION_SAMPLES_DIR", str(tmp_path / "samples"))


# =============================================================================
# Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_http_client() -> AsyncMock:
    """Create a mock HTTP client for unit tests."""
    return AsyncMock(spec=AsyncClient)


# =============================================================================
# Sample Data Fixtures
# =============================================================================

ARTICLE_PARAGRAPHS = [
    (
        "The city council voted on Tuesday evening to expand the night bus network, "
        "adding four new routes that connect the outer districts with the central "
        "station. Council members said the decision followed two years of complaints "
        "from shift workers who had no way home after midnight."
    ),
    (
        "Supporters of the plan argued that the additional routes would cost less than "
        "the subsidies currently paid for late taxi vouchers, while critics pointed out "
        "that ridership estimates were based on a survey with fewer than three hundred "
        "responses and could easily overstate demand."
    ),
    (
        "Transport officials expect the first of the new lines to begin operating in "
        "early spring. The remaining routes will follow once the operator has hired "
        "and trained enough drivers, a process the company described as the main "
        "bottleneck for the entire expansion."
    ),
    (
        "Residents attending the meeting were divided. Several shop owners welcomed the "
        "extra connections, saying their staff currently spend more on transport than "
        "they earn in the final hours of a shift, while others worried about noise on "
        "residential streets that have been quiet at night for decades."
    ),
]

NAV_LINK_LABELS = [
    "Weather widget",
    "Horoscope today",
    "Crossword archive",
    "Lottery numbers",
    "Traffic cameras",
    "Podcast feed",
    "Shop deals",
    "Classifieds board",
    "Event calendar",
    "Reader photos",
]


@pytest.fixture
def article_paragraphs() -> list[str]:
    return list(ARTICLE_PARAGRAPHS)


@pytest.fixture
def nav_link_labels() -> list[str]:
    return list(NAV_LINK_LABELS)


@pytest.fixture
def sample_article_html() -> str:
    """Article page: real prose in <article>, followed by a link-only navigation rail."""
    paragraphs = "\n".join(f"<p>{paragraph}</p>" for paragraph in ARTICLE_PARAGRAPHS)
    links = "\n".join(
        f'<li><a href="/section/{index}">{label}</a></li>'
        for index, label in enumerate(NAV_LINK_LABELS)
    )
    return (
        "<html><head><title>Night buses expand to outer districts</title>"
        '<meta name="author" content="Jane Doe"></head>'
        "<body>"
        "<article><h1>Night buses expand to outer districts</h1>"
        f"{paragraphs}"
        "</article>"
        f'<nav id="site-menu"><ul>{links}</ul></nav>'
        "</body></html>"
    )


@pytest.fixture
def firecrawl_payload(sample_article_html: str) -> dict[str, Any]:
    """Firecrawl `/scrape` response envelope for `sample_article_html`."""
    return {
        "success": True,
        "data": {
            "markdown": "# Night buses expand to outer districts\n\n" + ARTICLE_PARAGRAPHS[0],
            "html": sample_article_html,
            "metadata": {
                "title": "Night buses expand to outer districts | City Post",
                "sourceURL": "https://www.example.com/news/night-buses",
                "canonicalUrl": "https://example.com/news/night-buses",
                "language": "en",
                "keywords": "transport, night bus, council",
                "ogSiteName": "City Post",
                "publishedTime": "2026-03-02T08:00:00Z",
            },
        },
    }
