"""Pure text rules shared by capture, search and enrichment.

Validation raises `ValidationError` so callers on the request path surface a 400
without extra translation.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Iterable

from ragbrain.core.exceptions import ValidationError
from ragbrain.core.settings import settings
from ragbrain.core.utils import utcnow
from ragbrain.models.thought import THOUGHT_TYPES

MAX_TAGS = 20
MAX_TAG_LENGTH = 50
MAX_QUERY_LENGTH = 1000

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_TAG_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
_HASHTAG_RE = re.compile(r"#([A-Za-z0-9_]+)")
_URL_RE = re.compile(r"https?://")
_TIME_WINDOW_RE = re.compile(r"^(\d+)([dwmy])$")
_MONTH_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")

DECISION_KEYWORDS = (
    "decided",
    "chose",
    "selected",
    "picked",
    "because",
    "rationale",
    "reason",
    "tradeoff",
    "pros",
    "cons",
    "alternative",
    "option",
    "instead of",
    "rather than",
    "over",
)

_WINDOW_DAYS = {"d": 1, "w": 7, "m": 30, "y": 365}
_NAMED_WINDOWS = {"week": 7, "month": 30, "year": 365}


def strip_control_chars(text: str) -> str:
    return _CONTROL_CHARS.sub("", text)


def clean_text(text: str | None) -> str:
    """Strip control characters and enforce the length bounds."""
    if text is None:
        raise ValidationError("text is required")
    cleaned = strip_control_chars(text)
    if not cleaned.strip():
        raise ValidationError("text must not be empty")
    if len(cleaned) > settings.max_text_length:
        raise ValidationError(
            f"text exceeds maximum length of {settings.max_text_length} characters"
        )
    return cleaned


def extract_hashtags(text: str) -> list[str]:
    found: list[str] = []
    for match in _HASHTAG_RE.finditer(text):
        tag = match.group(1).lower()
        if tag not in found:
            found.append(tag)
    return found


def strip_hashtags(text: str) -> str:
    return " ".join(_HASHTAG_RE.sub(" ", text).split())


def normalize_tags(tags: Iterable[str] | None, *, text: str | None = None) -> list[str]:
    """Validate user tags and merge in hashtags from `text`.

    Tags are lower-cased and de-duplicated, preserving first-seen order.
    """
    provided = list(tags or [])
    for tag in provided:
        if not isinstance(tag, str) or not (1 <= len(tag) <= MAX_TAG_LENGTH):
            raise ValidationError(f"tags must be 1-{MAX_TAG_LENGTH} characters")
        if not _TAG_RE.match(tag):
            raise ValidationError("tags may only contain letters, digits, '_' and '-'")

    merged: list[str] = []
    for tag in [*provided, *(extract_hashtags(text) if text else [])]:
        lowered = tag.lower()
        if len(lowered) > MAX_TAG_LENGTH:
            continue
        if lowered not in merged:
            merged.append(lowered)
    if len(merged) > MAX_TAGS:
        raise ValidationError(f"at most {MAX_TAGS} tags are allowed")
    return merged


def detect_type(text: str) -> str:
    if "```" in text:
        return "code"
    if _URL_RE.search(text):
        return "link"
    if "!todo" in text:
        return "todo"
    if "!decision" in text:
        return "decision"
    return "note"


def resolve_type(type_: str | None, text: str) -> str:
    if type_ is None or type_ == "":
        return detect_type(text)
    if type_ not in THOUGHT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(THOUGHT_TYPES)}")
    return type_


def decision_score(text: str) -> float:
    lowered = text.lower()
    score = sum(0.1 for keyword in DECISION_KEYWORDS if keyword in lowered)
    if "!decision" in text:
        score += 0.3
    if "!rationale" in text:
        score += 0.2
    return round(min(score, 1.0), 4)


def parse_time_window(window: str | None, *, now: datetime | None = None) -> datetime | None:
    """Return the inclusive lower bound for a time-window expression.

    Accepts `today`, `week`, `month`, `year` and `<n><d|w|m|y>`.
    """
    if window is None or not window.strip():
        return None
    now = now or utcnow()
    value = window.strip().lower()
    if value == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if value in _NAMED_WINDOWS:
        return now - timedelta(days=_NAMED_WINDOWS[value])
    match = _TIME_WINDOW_RE.match(value)
    if not match:
        raise ValidationError(
            "timeWindow must be today, week, month, year or a count like 7d, 2w, 3m, 1y"
        )
    amount, unit = int(match.group(1)), match.group(2)
    return now - timedelta(days=amount * _WINDOW_DAYS[unit])


def parse_month(month: str | None) -> tuple[datetime, datetime] | None:
    """Return `[start, end)` for a `YYYY-MM` month filter."""
    if month is None or not month.strip():
        return None
    match = _MONTH_RE.match(month.strip())
    if not match:
        raise ValidationError("month must be formatted as YYYY-MM")
    year, mon = int(match.group(1)), int(match.group(2))
    start = datetime(year, mon, 1)
    end = datetime(year + 1, 1, 1) if mon == 12 else datetime(year, mon + 1, 1)
    return start, end


def validate_query(query: str | None) -> str:
    if query is None or not strip_control_chars(query).strip():
        raise ValidationError("query is required")
    cleaned = strip_control_chars(query).strip()
    if len(cleaned) > MAX_QUERY_LENGTH:
        raise ValidationError(f"query exceeds maximum length of {MAX_QUERY_LENGTH} characters")
    return cleaned


__all__ = [
    "DECISION_KEYWORDS",
    "MAX_QUERY_LENGTH",
    "MAX_TAGS",
    "clean_text",
    "decision_score",
    "detect_type",
    "extract_hashtags",
    "normalize_tags",
    "parse_month",
    "parse_time_window",
    "resolve_type",
    "strip_control_chars",
    "strip_hashtags",
    "validate_query",
]
