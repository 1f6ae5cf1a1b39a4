"""
Look up an existing archive.today snapshot for a live article URL.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Sequence

import httpx
import structlog
from lxml import etree
from lxml import html as lxml_html

logger = structlog.get_logger(__name__)

SHORT_CODE_RE = re.compile(r"^(?:https?://[^/]+)?/([A-Za-z0-9]{4,6})(?:/|$)")
# Listing and service routes that look like short codes.
_RESERVED_PATHS = frozenset({"newest", "oldest", "submit", "search", "timemap"})
_META_REFRESH_URL_RE = re.compile(r"url\s*=\s*(.+)$", re.IGNORECASE)

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/122 Safari/537.36"
    ),
    "Accept-Language": "en,de;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


def is_snapshot_path(href: str) -> bool:
    match = SHORT_CODE_RE.match(href.strip())
    return match is not None and match.group(1).lower() not in _RESERVED_PATHS


def absolute_snapshot_url(host: str, href: str) -> str:
    href = href.strip()
    if re.match(r"^https?://", href, re.IGNORECASE):
        return href
    separator = "" if href.startswith("/") else "/"
    return f"https://{host}{separator}{href}"


def find_snapshot_in_listing(host: str, listing_html: str) -> str | None:
    """First short-code link on a listing page (newest first), else a meta-refresh target."""
    if not listing_html.strip():
        return None
    document = lxml_html.fromstring(listing_html)

    for href in document.xpath("//a/@href"):
        if is_snapshot_path(str(href)):
            return absolute_snapshot_url(host, str(href))

    for meta in document.xpath("//meta[@http-equiv]"):
        if str(meta.get("http-equiv", "")).lower() != "refresh":
            continue
        match = _META_REFRESH_URL_RE.search(str(meta.get("content", "")))
        if match:
            target = match.group(1).strip().strip("'\"")
            if is_snapshot_path(target):
                return absolute_snapshot_url(host, target)
    return None


class ArchiveSnapshotResolver:
    """
    Resolves a URL to a short-code snapshot on one of the archive mirrors.

    Mirrors are tried in order; any mirror error moves on to the next one
    after a short pause.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        mirrors: Sequence[str] = ("archive.is", "archive.ph", "archive.today", "archive.md"),
        request_timeout_seconds: float = 15.0,
        mirror_delay_seconds: float = 0.15,
    ) -> None:
        self.http_client = http_client
        self.mirrors = tuple(mirrors)
        self.request_timeout_seconds = request_timeout_seconds
        self.mirror_delay_seconds = mirror_delay_seconds

    async def resolve(self, original_url: str) -> str | None:
        for host in self.mirrors:
            try:
                snapshot = await self._resolve_on_mirror(host, original_url)
            except (httpx.HTTPError, etree.ParserError, ValueError) as exc:
                logger.debug("Archive mirror failed", mirror=host, error=str(exc))
                snapshot = None

            if snapshot is not None:
                logger.info("Archive snapshot resolved", url=original_url, snapshot=snapshot)
                return snapshot
            await asyncio.sleep(self.mirror_delay_seconds)

        logger.warning("No archive snapshot found", url=original_url)
        return None

    async def _resolve_on_mirror(self, host: str, original_url: str) -> str | None:
        listing_url = f"https://{host}/{original_url}"

        first = await self.http_client.get(
            listing_url,
            headers=DEFAULT_HEADERS,
            timeout=self.request_timeout_seconds,
            follow_redirects=False,
        )
        location = first.headers.get("location", "")
        if first.is_redirect and is_snapshot_path(location):
            return absolute_snapshot_url(host, location)

        listing = first
        if first.is_redirect:
            listing = await self.http_client.get(
                listing_url,
                headers=DEFAULT_HEADERS,
                timeout=self.request_timeout_seconds,
                follow_redirects=True,
            )
        if listing.status_code != 200:
            logger.debug("Archive mirror returned non-200", mirror=host, status=listing.status_code)
            return None

        snapshot = find_snapshot_in_listing(host, listing.text)
        if snapshot is None:
            logger.debug("No short code found on mirror", mirror=host)
        return snapshot
