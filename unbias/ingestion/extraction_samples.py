"""
Development-only dumps of raw scrape responses next to what we made of them.
"""

from __future__ import annotations

import json
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog

from unbias.core.config import settings
from unbias.ingestion.fetch_strategy import url_hostname
from unbias.ingestion.models import ArticleDetails, RawScrapeResponse

logger = structlog.get_logger(__name__)

_UNSAFE_HOST_CHARS_RE = re.compile(r"[^a-zA-Z0-9.-]")


def sample_file_stem(url: str, captured_at: datetime) -> str:
    """`<host>_<timestamp>` with filesystem-safe characters only."""
    host = _UNSAFE_HOST_CHARS_RE.sub("_", url_hostname(url)) or "unknown-host"
    timestamp = captured_at.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return f"{host}_{re.sub(r'[:.]', '-', timestamp)}"


def build_sample_payload(
    url: str,
    scraped: RawScrapeResponse,
    details: ArticleDetails,
    *,
    captured_at: datetime,
    markdown_chars: int,
    preview_chars: int,
) -> dict[str, Any]:
    text = details.text or ""
    return {
        "url": url,
        "extractedAt": captured_at.isoformat(),
        "rawResponse": {
            "markdown": scraped.markdown[:markdown_chars] if scraped.markdown else None,
            "extract": scraped.raw_extract,
            "metadata": scraped.raw_metadata,
        },
        "processedJobDetails": {
            "title": details.title,
            "author": details.author,
            "siteName": details.site_name,
            "date": details.date,
            "textLength": len(text),
            "textPreview": text[:preview_chars],
            "fetchStrategy": details.fetch_strategy,
            "isArchiveContent": details.is_archive_content,
        },
    }


def save_extraction_sample(
    url: str,
    scraped: RawScrapeResponse,
    details: ArticleDetails,
    *,
    output_dir: str | Path | None = None,
    captured_at: datetime | None = None,
) -> Path | None:
    """
    Write the sample JSON (and raw HTML when present); return the JSON path.

    Never raises: a failed write is logged and the request carries on.
    Returns None in production or when the write failed.
    """
    if settings.is_production:
        return None

    captured = captured_at or datetime.now(tz=UTC)
    target_dir = Path(output_dir or settings.EXTRACTION_SAMPLES_DIR)
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        stem = sample_file_stem(url, captured)
        payload = build_sample_payload(
            url,
            scraped,
            details,
            captured_at=captured,
            markdown_chars=settings.EXTRACTION_SAMPLE_MARKDOWN_CHARS,
            preview_chars=settings.EXTRACTION_SAMPLE_PREVIEW_CHARS,
        )
        json_path = target_dir / f"{stem}.json"
        json_path.write_text(
            json.dumps(payload, indent=2, ensure_ascii=False, default=str),
            encoding="utf-8",
        )
        logger.debug("Saved extraction sample", path=str(json_path))

        if scraped.html:
            html_path = target_dir / f"{stem}.html"
            html_path.write_text(scraped.html, encoding="utf-8")
            logger.debug("Saved raw HTML sample", path=str(html_path))
    except Exception as exc:
        logger.warning("Failed to save extraction sample", url=url, error=str(exc))
        return None
    return json_path
