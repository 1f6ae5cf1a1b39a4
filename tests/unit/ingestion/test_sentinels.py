from __future__ import annotations

from pathlib import Path

import pytest

from unbias.ingestion.sentinels import (
    DEFAULT_TABLE_PATH,
    get_sentinel_table,
    load_sentinel_table,
    parse_sentinel_table,
)

pytestmark = pytest.mark.unit


def test_bundled_table_loads_all_sections() -> None:
    table = load_sentinel_table()

    categories = {rule.category for rule in table.sentinels}
    assert {"related_reading_de", "related_reading_en", "archive_chrome", "site_menu"} <= categories
    assert {rule.category for rule in table.preserve} == {
        "transparency_notice",
        "imprint",
        "disclosure",
    }
    assert "Facebook" in table.social_share_labels
    assert DEFAULT_TABLE_PATH.exists()


def test_find_sentinels_returns_every_occurrence_in_position_order() -> None:
    table = load_sentinel_table()
    text = "Read more here. Body text. Mehr lesen über Politik. Read more again."

    matches = table.find_sentinels(text)

    assert [match.start for match in matches] == sorted(match.start for match in matches)
    assert [match.phrase.lower() for match in matches] == [
        "read more",
        "mehr lesen über",
        "read more",
    ]


def test_find_sentinels_respects_word_boundaries() -> None:
    table = parse_sentinel_table({"sentinels": {"engagement": ["Games"]}})

    assert table.find_sentinels("Wargames are popular") == []
    assert len(table.find_sentinels("Games and puzzles")) == 1


def test_site_menu_pattern_matches_menu_markers() -> None:
    table = load_sentinel_table()

    matches = table.find_sentinels("Artikel Ende. Politik aufklappen Ausland Menü")

    assert [match.category for match in matches] == ["site_menu", "site_menu"]


def test_find_preserved_reports_first_occurrence_per_rule() -> None:
    table = load_sentinel_table()
    text = "Body. Transparenzhinweis: note one. Transparenzhinweis: note two. Impressum"

    preserved = table.find_preserved(text)

    assert [match.category for match in preserved] == ["transparency_notice", "imprint"]
    assert preserved[0].start == text.index("Transparenzhinweis")


def test_social_share_pattern_strips_only_leading_run() -> None:
    table = load_sentinel_table()
    pattern = table.social_share_pattern

    assert pattern is not None
    assert pattern.sub("", "Facebook Twitter LinkedIn Article begins") == "Article begins"
    assert pattern.sub("", "Article mentions Facebook") == "Article mentions Facebook"


def test_social_share_pattern_absent_without_labels() -> None:
    assert parse_sentinel_table({}).social_share_pattern is None


def test_title_patterns_follow_prefix_section_outlet_order() -> None:
    table = load_sentinel_table()

    prefix, section, outlet = table.title_patterns

    assert prefix.sub("", "Politik: Headline") == "Headline"
    assert section.sub("", "Headline - Politik - SZ.de") == "Headline"
    assert outlet.sub("", "Headline | The Guardian") == "Headline"
    assert outlet.sub("", "Headline - Spiegelbild der Zeit") == "Headline - Spiegelbild der Zeit"


def test_parse_sentinel_table_rejects_non_mapping() -> None:
    with pytest.raises(ValueError, match="Invalid sentinel table format"):
        parse_sentinel_table(["not", "a", "mapping"])


def test_parse_sentinel_table_rejects_bad_section() -> None:
    with pytest.raises(ValueError, match="Invalid sentinel table section 'sentinels'"):
        parse_sentinel_table({"sentinels": ["Read more"]})


def test_parse_sentinel_table_rejects_bad_regex() -> None:
    with pytest.raises(ValueError, match="Invalid sentinel pattern in category 'broken'"):
        parse_sentinel_table({"sentinel_patterns": {"broken": ["(unclosed"]}})


def test_load_sentinel_table_from_custom_file(tmp_path: Path) -> None:
    table_path = tmp_path / "sentinels.yaml"
    table_path.write_text(
        "sentinels:\n  footer_fr:\n    - Lire aussi\npreserve:\n  note:\n    - Rectificatif\n",
        encoding="utf-8",
    )

    table = load_sentinel_table(table_path)

    assert [rule.category for rule in table.sentinels] == ["footer_fr"]
    assert table.find_sentinels("Texte. Lire aussi: autre")[0].phrase == "Lire aussi"
    assert table.title_patterns == ()


def test_load_sentinel_table_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="Sentinel table not found"):
        load_sentinel_table(tmp_path / "missing.yaml")


def test_get_sentinel_table_is_cached() -> None:
    assert get_sentinel_table() is get_sentinel_table()
