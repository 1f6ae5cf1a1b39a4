"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables and .env files.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_ARCHIVE_DOMAINS = ["archive.ph", "archive.is", "archive.today", "archive.md"]

# Publishers with paywalls or metering that are better read from a snapshot.
DEFAULT_PROACTIVE_ARCHIVE_DOMAINS = [
    "nytimes.com",
    "wsj.com",
    "washingtonpost.com",
    "ft.com",
    "bloomberg.com",
    "economist.com",
    "spiegel.de",
    "zeit.de",
    "faz.net",
    "telegraph.co.uk",
    "thetimes.co.uk",
    "bbc.com",
    "newyorker.com",
    "wired.com",
    "theatlantic.com",
    "forbes.com",
    "businessinsider.com",
    "latimes.com",
    "theguardian.com",
    "sueddeutsche.de",
    "welt.de",
    "tagesspiegel.de",
    "handelsblatt.com",
    "focus.de",
    "managermagazin.de",
    "usatoday.com",
    "npr.org",
    "chicagotribune.com",
    "independent.co.uk",
    "dailymail.co.uk",
    "standard.co.uk",
    "lemonde.fr",
    "lefigaro.fr",
    "liberation.fr",
    "lesechos.fr",
    "mediapart.fr",
    "corriere.it",
    "repubblica.it",
    "lastampa.it",
    "ilsole24ore.com",
    "elpais.com",
    "elmundo.es",
    "abc.es",
    "lavanguardia.com",
    "expansion.com",
    "reuters.com",
    "apnews.com",
    "aljazeera.com",
    "foreignpolicy.com",
    "harpers.org",
    "vanityfair.com",
    "technologyreview.com",
    "science.org",
    "nature.com",
    "cell.com",
    "thelancet.com",
]

# Ordered by observed reliability.
DEFAULT_ARCHIVE_MIRRORS = ["archive.is", "archive.ph", "archive.today", "archive.md"]


def _read_secret_file(path: str) -> str:
    try:
        content = Path(path).expanduser().read_text(encoding="utf-8").strip()
    except OSError as exc:
        msg = f"Could not read secret file '{path}'"
        raise ValueError(msg) from exc
    if not content:
        msg = f"Secret file '{path}' is empty"
        raise ValueError(msg)
    return content


def _parse_domain_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list | tuple | set):
        items = [str(item) for item in value]
    else:
        return []
    return [item.strip().lower() for item in items if item.strip()]


class Settings(BaseSettings):
    """
    Application settings.

    All settings can be overridden via environment variables.
    For example, FIRECRAWL_API_KEY env var sets the FIRECRAWL_API_KEY field.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Firecrawl (upstream scrape API)
    # =========================================================================
    FIRECRAWL_API_KEY: str = Field(
        default="",
        description="Firecrawl API key; fetching fails fast when empty",
    )
    FIRECRAWL_API_KEY_FILE: str | None = Field(
        default=None,
        description="Path to file containing FIRECRAWL_API_KEY",
    )
    FIRECRAWL_API_URL: str = Field(
        default="https://api.firecrawl.dev/v1/scrape",
        description="Firecrawl scrape endpoint",
    )
    FIRECRAWL_REQUEST_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        gt=0,
        le=600,
        description="Per-attempt HTTP timeout for scrape calls",
    )
    FIRECRAWL_MAX_ATTEMPTS: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total scrape attempts before giving up",
    )
    FIRECRAWL_BACKOFF_BASE_SECONDS: float = Field(
        default=1.0,
        ge=0,
        le=60,
        description="First retry delay; doubled on every further attempt",
    )
    FIRECRAWL_WAIT_FOR_MS: int = Field(
        default=800,
        ge=0,
        le=30000,
        description="Render wait requested from Firecrawl before capture",
    )
    ARCHIVE_DOMAINS: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_ARCHIVE_DOMAINS),
        description="Archive-service domains scraped with the unfiltered strategy",
    )

    @model_validator(mode="after")
    def _load_secret_file_values(self) -> Settings:
        if self.FIRECRAWL_API_KEY_FILE:
            self.FIRECRAWL_API_KEY = _read_secret_file(self.FIRECRAWL_API_KEY_FILE)
        return self

    @field_validator(
        "ARCHIVE_DOMAINS",
        "PROACTIVE_ARCHIVE_DOMAINS",
        "ARCHIVE_MIRRORS",
        mode="before",
    )
    @classmethod
    def parse_domain_lists(cls, v: Any) -> list[str]:
        """Parse domain lists from comma-separated string or list."""
        return _parse_domain_list(v)

    # =========================================================================
    # Content Sanitizer
    # =========================================================================
    TAIL_TRIM_MAX_WORDS: int = Field(
        default=80,
        ge=1,
        description="Blocks with fewer words are candidates for tail trimming",
    )
    TAIL_TRIM_LINK_DENSITY: float = Field(
        default=0.08,
        ge=0,
        le=1,
        description="Link density above which a short trailing block is trimmed",
    )
    SENTINEL_FOOTER_FRACTION: float = Field(
        default=0.2,
        gt=0,
        le=1,
        description="Trailing share of the text where sentinel phrases may cut",
    )
    SENTINEL_TABLE_PATH: str | None = Field(
        default=None,
        description="Optional YAML sentinel table replacing the bundled one",
    )

    # =========================================================================
    # Debug Extraction Samples
    # =========================================================================
    EXTRACTION_SAMPLES_ENABLED: bool = Field(
        default=True,
        description="Write raw scrape samples to disk (never in production)",
    )
    EXTRACTION_SAMPLES_DIR: str = Field(default="extracted-content-samples")
    EXTRACTION_SAMPLE_MARKDOWN_CHARS: int = Field(default=5000, ge=0)
    EXTRACTION_SAMPLE_PREVIEW_CHARS: int = Field(default=500, ge=0)

    # =========================================================================
    # Archive Snapshot Resolution
    # =========================================================================
    ARCHIVE_RESOLUTION_ENABLED: bool = Field(
        default=False,
        description="Look up existing snapshots for proactive-archive publishers",
    )
    PROACTIVE_ARCHIVE_DOMAINS: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_PROACTIVE_ARCHIVE_DOMAINS),
    )
    ARCHIVE_MIRRORS: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_ARCHIVE_MIRRORS),
    )
    ARCHIVE_RESOLVER_TIMEOUT_SECONDS: float = Field(default=15.0, gt=0, le=120)
    ARCHIVE_MIRROR_DELAY_SECONDS: float = Field(default=0.15, ge=0, le=10)

    # =========================================================================
    # Application
    # =========================================================================
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: development, staging, production",
    )
    LOG_LEVEL: str | None = Field(
        default=None,
        description="Explicit log level; defaults to INFO in production, DEBUG elsewhere",
    )
    LOG_FORMAT: str = Field(default="json", description="json or console")

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def effective_log_level(self) -> str:
        if self.LOG_LEVEL and self.LOG_LEVEL.strip():
            return self.LOG_LEVEL.strip()
        return "INFO" if self.is_production else "DEBUG"

    @property
    def extraction_samples_active(self) -> bool:
        """Samples are a development aid and are never written in production."""
        return self.EXTRACTION_SAMPLES_ENABLED and not self.is_production


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Convenience instance
settings = get_settings()
