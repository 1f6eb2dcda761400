from __future__ import annotations

from math import sqrt
from typing import Iterable, Sequence, TypeVar

T = TypeVar("T")


def cosine_similarity(a: Iterable[float], b: Iterable[float]) -> float:
    a_list = list(a)
    b_list = list(b)
    if not a_list or not b_list or len(a_list) != len(b_list):
        return 0.0
    dot = sum(x * y for x, y in zip(a_list, b_list))
    norm_a = sqrt(sum(x * x for x in a_list))
    norm_b = sqrt(sum(y * y for y in b_list))
    denom = norm_a * norm_b
    if denom == 0:
        return 0.0
    return dot / denom


def unit_similarity(a: Iterable[float], b: Iterable[float]) -> float:
    """Cosine similarity clamped into [0, 1]."""
    return max(0.0, min(1.0, cosine_similarity(a, b)))


def nearest(
    query: Sequence[float],
    candidates: Iterable[tuple[T, Sequence[float] | None]],
    *,
    limit: int,
) -> list[tuple[T, float]]:
    """Top `limit` candidates by cosine similarity; candidates without vectors are skipped."""
    scored = [
        (item, cosine_similarity(query, vector)) for item, vector in candidates if vector
    ]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored[:limit]


__all__ = ["cosine_similarity", "nearest", "unit_similarity"]
