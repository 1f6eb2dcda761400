from __future__ import annotations

from datetime import datetime, timedelta, timezone

_EPOCH = datetime(1970, 1, 1)
_ONE_MS = timedelta(milliseconds=1)


def utcnow() -> datetime:
    """Return the current time as a naive UTC datetime truncated to milliseconds.

    Stored timestamps share the millisecond resolution of sync checkpoints, so a
    checkpoint taken after a write always compares >= that write.
    """

    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def to_ms(value: datetime | None) -> int:
    """Epoch milliseconds for a naive UTC datetime (0 for None)."""

    if value is None:
        return 0
    return (value - _EPOCH) // _ONE_MS


def from_ms(ms: int) -> datetime:
    """Naive UTC datetime for epoch milliseconds."""

    return _EPOCH + timedelta(milliseconds=int(ms))


def now_ms() -> int:
    return to_ms(utcnow())


def clamp_int(val: int, *, lo: int, hi: int) -> int:
    """Clamp `val` into the inclusive range [`lo`, `hi`]."""

    return max(lo, min(hi, int(val)))


def truncate(text: str, limit: int) -> str:
    """Shorten `text` to `limit` characters, marking the cut with an ellipsis."""

    if len(text) <= limit:
        return text
    return text[: max(0, limit - 3)].rstrip() + "..."


__all__ = ["clamp_int", "from_ms", "now_ms", "to_ms", "truncate", "utcnow"]
