"""
Per-URL fetch strategy: archive snapshot versus live page.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from urllib.parse import urlsplit, urlunsplit

from unbias.ingestion.models import FetchRequest, ScrapeOptions

DIRECT_INCLUDE_TAGS = (
    "article",
    "main",
    "#content",
    "h1",
    "h2",
    "h3",
    "p",
    "div",
    "section",
    "li",
    "blockquote",
)
DIRECT_EXCLUDE_TAGS = ("nav", "footer", "#HEADER", "figcaption")

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


def with_default_scheme(url: str) -> str:
    """Prefix `https://` to bare `host/path` input such as `archive.ph/AbCd1`."""
    stripped = url.strip()
    if not stripped or _SCHEME_RE.match(stripped):
        return stripped
    return f"https://{stripped.lstrip('/')}"


def url_hostname(url: str) -> str:
    """Lowercased hostname of `url`, or an empty string if it has none."""
    try:
        hostname = urlsplit(url.strip()).hostname
    except ValueError:
        return ""
    return (hostname or "").lower().rstrip(".")


def host_matches_domain(hostname: str, domain: str) -> bool:
    """True for the domain itself and any of its subdomains, never for look-alikes."""
    domain = domain.strip().lower().lstrip(".")
    if not hostname or not domain:
        return False
    return hostname == domain or hostname.endswith(f".{domain}")


def is_archive_url(url: str, archive_domains: Iterable[str]) -> bool:
    hostname = url_hostname(with_default_scheme(url))
    return any(host_matches_domain(hostname, domain) for domain in archive_domains)


def is_domain_on_proactive_list(url: str, proactive_domains: Iterable[str]) -> bool:
    """True when `url` belongs to a publisher that is better read from a snapshot."""
    hostname = url_hostname(with_default_scheme(url))
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return any(host_matches_domain(hostname, domain) for domain in proactive_domains)


def build_fetch_request(
    url: str,
    archive_domains: Iterable[str],
    *,
    original_url: str | None = None,
) -> FetchRequest:
    """Classify `url` once; the result drives every later decision for the request."""
    return FetchRequest(
        url=url,
        is_archive_url=is_archive_url(url, archive_domains),
        original_url=original_url,
    )


def build_scrape_options(request: FetchRequest, *, wait_for_ms: int = 800) -> ScrapeOptions:
    # Archive pages need the full DOM; upstream main-content filtering mis-trims their chrome.
    if request.is_archive_url:
        return ScrapeOptions(
            formats=("html", "markdown"),
            only_main_content=False,
            remove_base64_images=True,
            wait_for_ms=wait_for_ms,
        )
    return ScrapeOptions(
        formats=("html", "markdown"),
        only_main_content=True,
        include_tags=DIRECT_INCLUDE_TAGS,
        exclude_tags=DIRECT_EXCLUDE_TAGS,
        remove_base64_images=True,
        wait_for_ms=wait_for_ms,
    )


def normalize_url(url: str) -> str:
    """
    Canonical form used for deduplicating article URLs.

    https scheme, lowercase host without `www.`, default port dropped, no query
    or fragment, no trailing slash. Unparseable input is returned unchanged.
    """
    if not url:
        return ""
    try:
        parsed = urlsplit(url.strip())
        port = parsed.port
    except ValueError:
        return url

    if not parsed.scheme or not parsed.netloc:
        return url

    hostname = parsed.hostname.lower() if parsed.hostname else ""
    if hostname.startswith("www."):
        hostname = hostname[4:]

    scheme = parsed.scheme.lower()
    if scheme == "http":
        scheme = "https"

    netloc = hostname
    if port is not None and port not in (80, 443):
        netloc = f"{hostname}:{port}"

    path = parsed.path.rstrip("/") or "/"
    return urlunsplit((scheme, netloc, path, "", ""))
