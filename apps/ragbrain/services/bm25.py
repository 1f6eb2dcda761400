"""Field-weighted BM25 over a small in-memory corpus.

The corpus is whatever survived the pre-filters for a single query, so the index
is rebuilt per call and never persisted. Each field keeps its own postings and
average length; a document's score is the weighted sum of per-field BM25.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Hashable, Iterable, Mapping

_TOKEN_RE = re.compile(r"[a-z0-9]+(?:[-_][a-z0-9]+)*")

STOPWORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "did", "do", "does", "for",
        "from", "has", "have", "i", "in", "is", "it", "its", "me", "my", "of", "on",
        "or", "that", "the", "this", "to", "was", "we", "were", "with", "you",
    }
)  # fmt: skip


def tokenize(text: str | None) -> list[str]:
    if not text:
        return []
    return [tok for tok in _TOKEN_RE.findall(text.lower()) if tok not in STOPWORDS]


@dataclass
class _FieldIndex:
    postings: dict[str, list[tuple[Hashable, int]]] = field(default_factory=dict)
    doc_len: dict[Hashable, int] = field(default_factory=dict)
    avgdl: float = 0.0


@dataclass
class BM25Index:
    """Build with `add`, then `search`.

    `weights` maps field name to its boost, e.g. ``{"text": 2.0, "summary": 1.5}``.
    """

    weights: Mapping[str, float]
    k1: float = 1.2
    b: float = 0.75
    _fields: dict[str, _FieldIndex] = field(default_factory=dict, init=False)
    _docs: set[Hashable] = field(default_factory=set, init=False)
    _df: dict[str, set[Hashable]] = field(default_factory=dict, init=False)
    _dirty: bool = field(default=True, init=False)

    def add(self, doc_id: Hashable, fields: Mapping[str, str | Iterable[str] | None]) -> None:
        self._docs.add(doc_id)
        for name in self.weights:
            raw = fields.get(name)
            if raw is None:
                continue
            text = raw if isinstance(raw, str) else " ".join(raw)
            tokens = tokenize(text)
            if not tokens:
                continue
            index = self._fields.setdefault(name, _FieldIndex())
            index.doc_len[doc_id] = len(tokens)
            tf: dict[str, int] = {}
            for tok in tokens:
                tf[tok] = tf.get(tok, 0) + 1
            for tok, count in tf.items():
                index.postings.setdefault(tok, []).append((doc_id, count))
                self._df.setdefault(tok, set()).add(doc_id)
        self._dirty = True

    def _finalize(self) -> None:
        if not self._dirty:
            return
        for index in self._fields.values():
            total = sum(index.doc_len.values())
            index.avgdl = (total / len(index.doc_len)) if index.doc_len else 0.0
        self._dirty = False

    def search(self, query: str) -> dict[Hashable, float]:
        """Return raw (unnormalized) scores for every document matching any query term."""
        tokens = tokenize(query)
        if not tokens or not self._docs:
            return {}
        self._finalize()

        qtf: dict[str, int] = {}
        for tok in tokens:
            qtf[tok] = qtf.get(tok, 0) + 1

        n_docs = len(self._docs)
        scores: dict[Hashable, float] = {}
        for tok, q_count in qtf.items():
            df = len(self._df.get(tok, ()))
            if df == 0:
                continue
            idf = math.log((n_docs - df + 0.5) / (df + 0.5) + 1.0)
            for name, weight in self.weights.items():
                index = self._fields.get(name)
                if index is None:
                    continue
                avgdl = index.avgdl if index.avgdl > 0 else 1.0
                for doc_id, tf in index.postings.get(tok, ()):
                    dl = float(index.doc_len.get(doc_id, 0))
                    denom = tf + self.k1 * (1.0 - self.b + self.b * (dl / avgdl))
                    part = idf * (tf * (self.k1 + 1.0) / denom)
                    scores[doc_id] = scores.get(doc_id, 0.0) + weight * part * q_count
        return scores


__all__ = ["BM25Index", "STOPWORDS", "tokenize"]
