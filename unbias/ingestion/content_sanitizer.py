"""
Residual-boilerplate cleanup for extracted article content.

Three order-dependent passes, each total on empty input:

- tail trim: drops the trailing run of short, link-dense HTML blocks
- sentinel trim: cuts plain text at footer phrases near the end
- artifact cleanup: removes share labels, stray tag names, and entities
"""

from __future__ import annotations

import html as html_lib
import math
import re
from dataclasses import dataclass, replace

from unbias.core.config import settings
from unbias.ingestion.models import ExtractedContent
from unbias.ingestion.sentinels import SentinelMatch, SentinelTable, get_sentinel_table

_BLOCK_CLOSE_RE = re.compile(r"</(?:p|div|section|article|ul|ol|aside)\s*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_WORD_RE = re.compile(r"\w+")
_ANCHOR_RE = re.compile(r"<a\b", re.IGNORECASE)
_SCRIPT_RE = re.compile(r"<script[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_STYLE_RE = re.compile(r"<style[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL)
_WHITESPACE_RE = re.compile(r"\s+")
_CLOSING_TAG_RE = re.compile(r"</\s*([a-zA-Z][\w-]*)\s*>")
_SEGMENT_END_CHARS = ".!?"

_REPEATABLE_TAGS = (
    "p|div|section|article|span|ul|ol|li|h1|h2|h3|h4|h5|h6|aside|nav|header|footer|"
    "blockquote|pre|code|table|tbody|thead|tr|td|th|dl|dt|dd|figure|figcaption"
)
_LINE_EDGE_TAGS = "p|div|section|article|span|ul|ol|li|aside|nav|header|footer"
_INLINE_TAGS = "p|div|section|ul|ol|li|span"

_REPEATED_TAG_RE = re.compile(rf"\b({_REPEATABLE_TAGS})(?:[ \t]+\1)+\b", re.IGNORECASE)
_TAG_ONLY_LINE_RE = re.compile(rf"^[ \t]*(?:{_LINE_EDGE_TAGS})[ \t]*$", re.MULTILINE)
_TAG_LINE_END_RE = re.compile(rf"[ \t]+(?:{_LINE_EDGE_TAGS})[ \t]*$", re.MULTILINE)
_TAG_LINE_START_RE = re.compile(rf"^[ \t]*(?:{_LINE_EDGE_TAGS})[ \t]+", re.MULTILINE)
_TAG_INLINE_RE = re.compile(rf"(?<=\s)(?:{_INLINE_TAGS})(?=\s)")
_LINE_EDGE_SPACE_RE = re.compile(r"^[ \t]+|[ \t]+$", re.MULTILINE)
_MULTI_SPACE_RE = re.compile(r" {2,}")
_SPACE_BEFORE_PUNCT_RE = re.compile(r" +([.,!?;:])")
_MULTI_NEWLINE_RE = re.compile(r"\n{3,}")


@dataclass(slots=True, frozen=True)
class SanitizerOptions:
    """Thresholds for the trimming passes."""

    max_tail_words: int = 80
    max_tail_link_density: float = 0.08
    footer_fraction: float = 0.2

    @classmethod
    def from_settings(cls) -> SanitizerOptions:
        return cls(
            max_tail_words=settings.TAIL_TRIM_MAX_WORDS,
            max_tail_link_density=settings.TAIL_TRIM_LINK_DENSITY,
            footer_fraction=settings.SENTINEL_FOOTER_FRACTION,
        )


# ---------------------------------------------------------------------------
# Pass A: link-density tail trim (HTML)
# ---------------------------------------------------------------------------


def split_blocks(html: str) -> list[str]:
    """Split HTML after each block-closing tag; the closing tag stays with its block."""
    blocks: list[str] = []
    position = 0
    for match in _BLOCK_CLOSE_RE.finditer(html):
        blocks.append(html[position : match.end()])
        position = match.end()
    if position < len(html):
        blocks.append(html[position:])
    return blocks


def block_stats(block: str) -> tuple[int, int]:
    """Return (word count, anchor count) for one HTML block."""
    words = len(_WORD_RE.findall(_TAG_RE.sub(" ", block)))
    links = len(_ANCHOR_RE.findall(block))
    return (words, links)


def link_density(words: int, links: int) -> float:
    if words > 0:
        return links / words
    return 1.0 if links > 0 else 0.0


def trim_high_link_density_tail(
    html: str | None,
    *,
    max_words: int | None = None,
    max_link_density: float | None = None,
) -> str | None:
    """
    Remove the contiguous trailing run of short, link-dense blocks.

    Blocks with neither words nor links (bare closing tags, whitespace) do not
    stop the walk; the first block with real content that fails the test does.
    """
    if not html:
        return html
    word_limit = settings.TAIL_TRIM_MAX_WORDS if max_words is None else max_words
    density_limit = (
        settings.TAIL_TRIM_LINK_DENSITY if max_link_density is None else max_link_density
    )

    blocks = split_blocks(html)
    keep_until = len(blocks)
    for index in range(len(blocks) - 1, -1, -1):
        words, links = block_stats(blocks[index])
        if words == 0 and links == 0:
            continue
        if words < word_limit and link_density(words, links) > density_limit:
            keep_until = index
            continue
        break

    if keep_until == len(blocks):
        return html
    kept = "".join(blocks[:keep_until]).strip()
    return _restore_closing_tags(kept, blocks[keep_until:])


def _unclosed_count(html: str, tag_name: str) -> int:
    name = re.escape(tag_name)
    opened = len(re.findall(rf"<{name}\b", html, re.IGNORECASE))
    closed = len(re.findall(rf"</{name}\s*>", html, re.IGNORECASE))
    return opened - closed


def _restore_closing_tags(kept: str, dropped: list[str]) -> str:
    """Re-close elements left open in `kept` with the closing tags found in `dropped`."""
    restored = kept
    for block in dropped:
        for match in _CLOSING_TAG_RE.finditer(block):
            if _unclosed_count(restored, match.group(1)) > 0:
                restored += match.group(0)
    return restored


def html_to_text(html: str | None) -> str:
    """Strip tags (dropping script and style bodies) and collapse whitespace."""
    if not html:
        return ""
    without_code = _STYLE_RE.sub("", _SCRIPT_RE.sub("", html))
    return _WHITESPACE_RE.sub(" ", _TAG_RE.sub(" ", without_code)).strip()


# ---------------------------------------------------------------------------
# Pass B: sentinel trim (plain text)
# ---------------------------------------------------------------------------


def _starts_segment(text: str, position: int) -> bool:
    """True when `position` opens a new sentence or line rather than sitting mid-sentence."""
    before = text[:position]
    stripped = before.rstrip()
    if not stripped:
        return True
    return stripped[-1] in _SEGMENT_END_CHARS or "\n" in before[len(stripped) :]


def _preserved_notes(
    text: str,
    table: SentinelTable,
    sentinels: list[SentinelMatch],
    cut: int,
) -> list[str]:
    # A note runs to the end of the text unless the cut or a sentinel opening a
    # new segment comes after it.
    notes: list[str] = []
    for opener in table.find_preserved(text):
        end = next(
            (
                item.start
                for item in sentinels
                if item.start > opener.start
                and (item.start == cut or _starts_segment(text, item.start))
            ),
            len(text),
        )
        note = text[opener.start : end].strip()
        if note and not any(note in existing for existing in notes):
            notes.append(note)
    return notes


def trim_at_sentinels(
    text: str | None,
    *,
    table: SentinelTable | None = None,
    footer_fraction: float | None = None,
) -> str | None:
    """
    Cut `text` at the earliest sentinel phrase inside the trailing footer region.

    Editorial notes (transparency notices, imprint, disclosures) that the cut
    removes are re-appended after a blank line.
    """
    if not text:
        return text
    sentinel_table = table or get_sentinel_table()
    fraction = settings.SENTINEL_FOOTER_FRACTION if footer_fraction is None else footer_fraction

    sentinels = sentinel_table.find_sentinels(text)
    footer_start = math.floor(len(text) * (1 - fraction))
    cut = next((item.start for item in sentinels if item.start >= footer_start), None)
    if cut is None:
        return text

    trimmed = text[:cut].strip()
    for note in _preserved_notes(text, sentinel_table, sentinels, cut):
        if note not in trimmed:
            trimmed = f"{trimmed}\n\n{note}" if trimmed else note
    return trimmed


# ---------------------------------------------------------------------------
# Pass C: text-artifact cleanup
# ---------------------------------------------------------------------------


def _decode_entities(text: str) -> str:
    decoded = html_lib.unescape(text.replace("&nbsp;", " "))
    return decoded.replace("\xa0", " ")


def _clean_once(text: str, table: SentinelTable) -> str:
    cleaned = text
    share_pattern = table.social_share_pattern
    if share_pattern is not None:
        cleaned = share_pattern.sub("", cleaned, count=1)

    cleaned = _REPEATED_TAG_RE.sub("", cleaned)
    cleaned = _TAG_ONLY_LINE_RE.sub("", cleaned)
    cleaned = _TAG_LINE_END_RE.sub("", cleaned)
    cleaned = _TAG_LINE_START_RE.sub("", cleaned)
    cleaned = _TAG_INLINE_RE.sub("", cleaned)
    cleaned = _decode_entities(cleaned)

    cleaned = _MULTI_SPACE_RE.sub(" ", cleaned)
    cleaned = _LINE_EDGE_SPACE_RE.sub("", cleaned)
    cleaned = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", cleaned)
    cleaned = _MULTI_NEWLINE_RE.sub("\n\n", cleaned)
    return cleaned.strip()


def clean_text_artifacts(text: str | None, *, table: SentinelTable | None = None) -> str | None:
    """
    Remove leftovers of naive tag stripping.

    Runs until the text stops changing, so a second call is always a no-op.
    Every rule only shortens the text, which bounds the loop.
    """
    if not text:
        return text
    sentinel_table = table or get_sentinel_table()
    cleaned = text
    while True:
        next_pass = _clean_once(cleaned, sentinel_table)
        if next_pass == cleaned:
            return cleaned
        cleaned = next_pass


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def sanitize_extracted(
    extracted: ExtractedContent,
    *,
    trim_tail: bool = True,
    trim_sentinels: bool = True,
    options: SanitizerOptions | None = None,
    table: SentinelTable | None = None,
) -> ExtractedContent:
    """Run tail trim, HTML-to-text, sentinel trim, and artifact cleanup."""
    opts = options or SanitizerOptions.from_settings()
    body_text = extracted.body_text
    body_html = extracted.body_html

    if trim_tail and body_html:
        body_html = trim_high_link_density_tail(
            body_html,
            max_words=opts.max_tail_words,
            max_link_density=opts.max_tail_link_density,
        )
        body_text = html_to_text(body_html)

    if trim_sentinels and body_text:
        body_text = trim_at_sentinels(body_text, table=table, footer_fraction=opts.footer_fraction)

    if body_text:
        body_text = clean_text_artifacts(body_text, table=table)

    return replace(extracted, body_text=body_text or None, body_html=body_html or None)
