"""
Boilerplate phrase tables for the content sanitizer and title cleanup.

The table is data: phrases live in `sentinels.yaml` keyed by category, so new
languages or outlets are added there without code changes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import structlog
import yaml

from unbias.core.config import settings

logger = structlog.get_logger(__name__)

DEFAULT_TABLE_PATH = Path(__file__).with_name("sentinels.yaml")

_DASHES = "-–—|"


@dataclass(slots=True, frozen=True)
class SentinelRule:
    """A compiled pattern and the category it belongs to."""

    category: str
    pattern: re.Pattern[str]


@dataclass(slots=True, frozen=True)
class SentinelMatch:
    category: str
    start: int
    phrase: str


@dataclass(slots=True, frozen=True)
class SentinelTable:
    """Compiled boilerplate table."""

    sentinels: tuple[SentinelRule, ...]
    preserve: tuple[SentinelRule, ...]
    social_share_labels: tuple[str, ...] = ()
    title_prefixes: tuple[str, ...] = ()
    title_section_suffixes: tuple[str, ...] = ()
    title_outlet_suffixes: tuple[str, ...] = ()

    def find_sentinels(self, text: str) -> list[SentinelMatch]:
        """Return every sentinel occurrence in `text`, ordered by position."""
        matches = [
            SentinelMatch(category=rule.category, start=match.start(), phrase=match.group(0))
            for rule in self.sentinels
            for match in rule.pattern.finditer(text)
        ]
        return sorted(matches, key=lambda item: item.start)

    def find_preserved(self, text: str) -> list[SentinelMatch]:
        """Return the first occurrence of each editorial-note opener, ordered by position."""
        found: list[SentinelMatch] = []
        for rule in self.preserve:
            match = rule.pattern.search(text)
            if match is not None:
                found.append(
                    SentinelMatch(category=rule.category, start=match.start(), phrase=match.group(0))
                )
        return sorted(found, key=lambda item: item.start)

    @property
    def social_share_pattern(self) -> re.Pattern[str] | None:
        if not self.social_share_labels:
            return None
        labels = _alternation(self.social_share_labels)
        return re.compile(rf"^(?:{labels})(?:\s+(?:{labels}))*\s+", re.IGNORECASE)

    @property
    def title_patterns(self) -> tuple[re.Pattern[str], ...]:
        patterns: list[re.Pattern[str]] = []
        if self.title_prefixes:
            patterns.append(
                re.compile(rf"^(?:{_alternation(self.title_prefixes)})\s*:\s*", re.IGNORECASE)
            )
        if self.title_section_suffixes:
            sections = _alternation(self.title_section_suffixes)
            patterns.append(
                re.compile(
                    rf"\s*(?<!\w)[{_DASHES}]\s*(?:{sections})\s*[{_DASHES}]\s*\w+\.de.*$",
                    re.IGNORECASE,
                )
            )
        if self.title_outlet_suffixes:
            outlets = _alternation(self.title_outlet_suffixes)
            patterns.append(
                re.compile(rf"\s*(?<!\w)[{_DASHES}]\s*(?:{outlets})\b.*$", re.IGNORECASE)
            )
        return tuple(patterns)


def _alternation(phrases: tuple[str, ...] | list[str]) -> str:
    # Longest first so overlapping phrases prefer the fuller match.
    ordered = sorted({phrase for phrase in phrases if phrase}, key=len, reverse=True)
    return "|".join(re.escape(phrase) for phrase in ordered)


def _phrase_rule(category: str, phrases: list[str]) -> SentinelRule:
    return SentinelRule(
        category=category,
        pattern=re.compile(rf"\b(?:{_alternation(phrases)})\b", re.IGNORECASE),
    )


def _parse_str_list(raw_value: Any) -> list[str]:
    if raw_value is None:
        return []
    if isinstance(raw_value, str):
        return [raw_value.strip()] if raw_value.strip() else []
    if isinstance(raw_value, list):
        return [str(value).strip() for value in raw_value if str(value).strip()]
    msg = f"Invalid sentinel table entry: expected list of strings, got {type(raw_value).__name__}"
    raise ValueError(msg)


def _parse_category_map(raw_value: Any, section: str) -> dict[str, list[str]]:
    if raw_value is None:
        return {}
    if not isinstance(raw_value, dict):
        msg = f"Invalid sentinel table section '{section}': expected mapping"
        raise ValueError(msg)
    parsed: dict[str, list[str]] = {}
    for category, entries in raw_value.items():
        values = _parse_str_list(entries)
        if values:
            parsed[str(category)] = values
    return parsed


def parse_sentinel_table(raw_table: Any) -> SentinelTable:
    """Compile a table from its mapping form (as loaded from YAML)."""
    if not isinstance(raw_table, dict):
        msg = "Invalid sentinel table format: expected mapping at top-level"
        raise ValueError(msg)

    sentinels: list[SentinelRule] = [
        _phrase_rule(category, phrases)
        for category, phrases in _parse_category_map(raw_table.get("sentinels"), "sentinels").items()
    ]
    raw_patterns = _parse_category_map(raw_table.get("sentinel_patterns"), "sentinel_patterns")
    for category, expressions in raw_patterns.items():
        for expression in expressions:
            try:
                compiled = re.compile(expression, re.IGNORECASE)
            except re.error as exc:
                msg = f"Invalid sentinel pattern in category '{category}': {exc}"
                raise ValueError(msg) from exc
            sentinels.append(SentinelRule(category=category, pattern=compiled))

    preserve = tuple(
        SentinelRule(
            category=category,
            pattern=re.compile(rf"(?:{_alternation(phrases)})", re.IGNORECASE),
        )
        for category, phrases in _parse_category_map(raw_table.get("preserve"), "preserve").items()
    )

    return SentinelTable(
        sentinels=tuple(sentinels),
        preserve=preserve,
        social_share_labels=tuple(_parse_str_list(raw_table.get("social_share_labels"))),
        title_prefixes=tuple(_parse_str_list(raw_table.get("title_prefixes"))),
        title_section_suffixes=tuple(_parse_str_list(raw_table.get("title_section_suffixes"))),
        title_outlet_suffixes=tuple(_parse_str_list(raw_table.get("title_outlet_suffixes"))),
    )


def load_sentinel_table(path: str | Path | None = None) -> SentinelTable:
    """Load and compile a sentinel table from YAML."""
    table_path = Path(path) if path is not None else DEFAULT_TABLE_PATH
    if not table_path.exists():
        msg = f"Sentinel table not found: {table_path}"
        raise FileNotFoundError(msg)

    raw_table = yaml.safe_load(table_path.read_text(encoding="utf-8")) or {}
    table = parse_sentinel_table(raw_table)
    logger.debug(
        "Sentinel table loaded",
        path=str(table_path),
        sentinel_rules=len(table.sentinels),
        preserve_rules=len(table.preserve),
    )
    return table


@lru_cache
def get_sentinel_table() -> SentinelTable:
    """Process-wide table, loaded once from settings or the bundled default."""
    return load_sentinel_table(settings.SENTINEL_TABLE_PATH)
