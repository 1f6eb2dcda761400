from datetime import datetime, timedelta

import pytest
from ragbrain.core.exceptions import ValidationError
from ragbrain.services.text_rules import (
    clean_text,
    decision_score,
    detect_type,
    normalize_tags,
    parse_month,
    parse_time_window,
    resolve_type,
    validate_query,
)


def test_clean_text_strips_control_characters_but_keeps_whitespace():
    assert clean_text("line one\x00\x07\nline\ttwo\r\n") == "line one\nline\ttwo\r\n"


@pytest.mark.parametrize("text", [None, "", "   \n\t", "\x00\x01"])
def test_clean_text_rejects_empty(text):
    with pytest.raises(ValidationError):
        clean_text(text)


def test_clean_text_rejects_overlong():
    with pytest.raises(ValidationError):
        clean_text("x" * 50_001)
    assert len(clean_text("x" * 50_000)) == 50_000


def test_detect_type_rules():
    assert detect_type("```py\nprint(1)\n```") == "code"
    assert detect_type("see https://example.com") == "link"
    assert detect_type("!todo write tests") == "todo"
    assert detect_type("!decision use sqlite") == "decision"
    assert detect_type("plain thought") == "note"


def test_resolve_type_validates_explicit_type():
    assert resolve_type("insight", "anything") == "insight"
    with pytest.raises(ValidationError):
        resolve_type("memo", "anything")


def test_normalize_tags_merges_hashtags_and_dedupes():
    assert normalize_tags(["Infra", "db"], text="moving to #postgres #DB") == [
        "infra",
        "db",
        "postgres",
    ]


@pytest.mark.parametrize("tags", [["has space"], [""], ["x" * 51], ["emoji🙂"]])
def test_normalize_tags_rejects_invalid(tags):
    with pytest.raises(ValidationError):
        normalize_tags(tags)


def test_normalize_tags_limits_count():
    with pytest.raises(ValidationError):
        normalize_tags([f"t{i}" for i in range(21)])


def test_decision_score_counts_keywords_and_markers():
    assert decision_score("just a note") == 0.0
    assert decision_score("we decided because of cost") == pytest.approx(0.2)
    # "rationale" is also a keyword: 0.1 + 0.3 + 0.2
    assert decision_score("!decision !rationale") == pytest.approx(0.6)
    assert decision_score(
        "decided chose selected picked because rationale reason tradeoff pros cons !decision"
    ) == 1.0


def test_parse_time_window():
    now = datetime(2024, 6, 15, 13, 45)
    assert parse_time_window(None) is None
    assert parse_time_window("today", now=now) == datetime(2024, 6, 15)
    assert parse_time_window("week", now=now) == now - timedelta(days=7)
    assert parse_time_window("2w", now=now) == now - timedelta(days=14)
    assert parse_time_window("1y", now=now) == now - timedelta(days=365)
    with pytest.raises(ValidationError):
        parse_time_window("fortnight", now=now)


def test_parse_month():
    assert parse_month("2024-12") == (datetime(2024, 12, 1), datetime(2025, 1, 1))
    assert parse_month(None) is None
    for bad in ("2024-13", "24-01", "2024/01"):
        with pytest.raises(ValidationError):
            parse_month(bad)


def test_validate_query_bounds():
    assert validate_query("  why redis?  ") == "why redis?"
    with pytest.raises(ValidationError):
        validate_query("   ")
    with pytest.raises(ValidationError):
        validate_query("q" * 1001)
