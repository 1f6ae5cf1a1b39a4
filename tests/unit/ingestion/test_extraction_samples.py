from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from unbias.core.config import settings
from unbias.ingestion.extraction_samples import (
    build_sample_payload,
    sample_file_stem,
    save_extraction_sample,
)
from unbias.ingestion.models import ArticleDetails, RawScrapeResponse

pytestmark = pytest.mark.unit

CAPTURED_AT = datetime(2026, 3, 2, 8, 15, 30, 123000, tzinfo=UTC)


def _details(text: str = "Body text") -> ArticleDetails:
    return ArticleDetails(
        title="Headline",
        text=text,
        html="<p>Body text</p>",
        author="Jane Doe",
        date="2026-03-02",
        site_name="City Post",
        url="https://example.com/story",
        page_url="https://example.com/story",
        original_url="https://example.com/story",
    )


def test_sample_file_stem_sanitizes_host_and_timestamp() -> None:
    stem = sample_file_stem("https://www.Example.com:8080/story", CAPTURED_AT)

    assert stem == "www.example.com_2026-03-02T08-15-30-123Z"


def test_sample_file_stem_for_url_without_host() -> None:
    assert sample_file_stem("not a url", CAPTURED_AT).startswith("unknown-host_")


def test_build_sample_payload_truncates_large_fields() -> None:
    scraped = RawScrapeResponse(
        markdown="m" * 20,
        raw_extract={"title": "Headline"},
        raw_metadata={"language": "en"},
    )

    payload = build_sample_payload(
        "https://example.com/story",
        scraped,
        _details(text="t" * 30),
        captured_at=CAPTURED_AT,
        markdown_chars=5,
        preview_chars=10,
    )

    assert payload["rawResponse"] == {
        "markdown": "mmmmm",
        "extract": {"title": "Headline"},
        "metadata": {"language": "en"},
    }
    assert payload["processedJobDetails"]["textLength"] == 30
    assert payload["processedJobDetails"]["textPreview"] == "t" * 10
    assert payload["processedJobDetails"]["fetchStrategy"] == "firecrawl"


def test_save_extraction_sample_writes_json_and_html(tmp_path: Path) -> None:
    scraped = RawScrapeResponse(markdown="# Headline", html="<html>raw</html>")

    json_path = save_extraction_sample(
        "https://example.com/story",
        scraped,
        _details(),
        output_dir=tmp_path,
        captured_at=CAPTURED_AT,
    )

    assert json_path is not None
    saved = json.loads(json_path.read_text(encoding="utf-8"))
    assert saved["url"] == "https://example.com/story"
    assert saved["processedJobDetails"]["title"] == "Headline"
    html_path = json_path.with_suffix(".html")
    assert html_path.read_text(encoding="utf-8") == "<html>raw</html>"


def test_save_extraction_sample_skips_html_file_without_html(tmp_path: Path) -> None:
    json_path = save_extraction_sample(
        "https://example.com/story",
        RawScrapeResponse(markdown="# Headline"),
        _details(),
        output_dir=tmp_path,
        captured_at=CAPTURED_AT,
    )

    assert json_path is not None
    assert not json_path.with_suffix(".html").exists()


def test_save_extraction_sample_disabled_in_production(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")

    result = save_extraction_sample(
        "https://example.com/story",
        RawScrapeResponse(markdown="# Headline"),
        _details(),
        output_dir=tmp_path,
    )

    assert result is None
    assert list(tmp_path.iterdir()) == []


def test_save_extraction_sample_never_raises(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("occupied", encoding="utf-8")

    result = save_extraction_sample(
        "https://example.com/story",
        RawScrapeResponse(markdown="# Headline"),
        _details(),
        output_dir=blocker,
    )

    assert result is None
