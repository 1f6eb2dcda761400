"""Hybrid keyword + embedding search with cited answers.

Ranking
-------
Two candidate sets are built independently over the pre-filtered corpus:

* keyword: field-weighted BM25 over text (2.0), summary (1.5) and tags (1.0),
  using the synonym-expanded query;
* semantic: cosine similarity between the query embedding and stored item
  embeddings.

Scores are fused as ``0.4 * bm25/max_bm25 + 0.6 * cosine + 0.1 * recency +
0.05 * decision_score`` where ``recency = exp(-age_days / 30)``. Anything below
``ask_min_citation_score`` is dropped, the rest is ordered by fused score with
newer items first on ties. Conversations are ranked separately and never affect
thought citations.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Sequence

from langchain_core.embeddings import Embeddings
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from sqlmodel import Session, select

from ragbrain.core.crypto import MessageCodec, get_message_codec
from ragbrain.core.settings import settings
from ragbrain.core.utils import to_ms, truncate, utcnow
from ragbrain.models.conversation import Conversation, ConversationMessage
from ragbrain.models.thought import Thought
from ragbrain.schemas.ask import AskResponse, Citation, ConversationHit
from ragbrain.services.bm25 import BM25Index, tokenize
from ragbrain.services.similarity import unit_similarity
from ragbrain.services.text_rules import (
    extract_hashtags,
    normalize_tags,
    parse_time_window,
    strip_hashtags,
    validate_query,
)

logger = logging.getLogger(__name__)

BM25_WEIGHT = 0.4
VECTOR_WEIGHT = 0.6
RECENCY_WEIGHT = 0.1
DECISION_WEIGHT = 0.05
RECENCY_HALF_LIFE_DAYS = 30.0
SEMANTIC_CANDIDATES = 50
PREVIEW_CHARS = 200

NO_RESULTS_ANSWER = "I couldn't find relevant information in your notes to answer this question."
NO_RESULTS_CONFIDENCE = 0.1
MAX_CONFIDENCE = 0.95

THOUGHT_FIELDS = {"text": 2.0, "summary": 1.5, "tags": 1.0}
CONVERSATION_FIELDS = {"title": 1.5, "summary": 1.5, "body": 1.0}

SYNONYMS: dict[str, tuple[str, ...]] = {
    "why": ("reason", "rationale", "because", "decision", "chose"),
    "how": ("method", "approach", "implementation", "process"),
    "what": ("definition", "meaning", "description"),
    "bug": ("error", "issue", "problem", "broken", "fix"),
    "performance": ("speed", "slow", "optimize", "fast", "latency"),
}

ANSWER_SYSTEM_PROMPT = (
    "You answer questions using only the user's own notes. Cite sources inline as [1], [2] "
    "matching the numbered notes. If the notes do not answer the question, say so briefly."
)


@dataclass
class RewrittenQuery:
    text: str
    expanded: str
    tags: list[str] = field(default_factory=list)


def rewrite_query(query: str) -> RewrittenQuery:
    """Pull `#tags` out as filters and expand known question words with synonyms."""
    tags = extract_hashtags(query)
    text = strip_hashtags(query) or " ".join(tags)
    extra: list[str] = []
    for word in tokenize(text):
        for synonym in SYNONYMS.get(word, ()):
            if synonym not in extra:
                extra.append(synonym)
    expanded = f"{text} {' '.join(extra)}".strip()
    return RewrittenQuery(text=text, expanded=expanded, tags=tags)


def recency_score(created_at: datetime, *, now: datetime) -> float:
    age_days = max(0.0, (now - created_at).total_seconds() / 86400.0)
    return math.exp(-age_days / RECENCY_HALF_LIFE_DAYS)


def fuse(
    *,
    bm25_norm: float,
    vector: float,
    recency: float,
    decision: float,
) -> float:
    return (
        BM25_WEIGHT * bm25_norm
        + VECTOR_WEIGHT * vector
        + RECENCY_WEIGHT * recency
        + DECISION_WEIGHT * decision
    )


def confidence_for(citations: Sequence[Citation]) -> float:
    if not citations:
        return NO_RESULTS_CONFIDENCE
    mean = sum(min(1.0, c.score) for c in citations) / len(citations)
    return round(max(0.0, min(MAX_CONFIDENCE, mean)), 4)


def _normalized(scores: dict[Any, float]) -> dict[Any, float]:
    top = max(scores.values(), default=0.0)
    if top <= 0:
        return {}
    return {key: value / top for key, value in scores.items()}


@dataclass
class AskService:
    """Answers questions over captured thoughts and conversations."""

    session: Session
    embedder: Embeddings | None = None
    chat_model: BaseChatModel | None = None
    codec: MessageCodec | None = None

    # ---------------
    # Public API
    # ---------------
    def ask(
        self,
        query: str | None,
        *,
        time_window: str | None = None,
        tags: list[str] | None = None,
    ) -> AskResponse:
        started = time.perf_counter()
        cleaned = validate_query(query)
        since = parse_time_window(time_window)
        rewritten = rewrite_query(cleaned)
        tag_filter = normalize_tags([*(tags or []), *rewritten.tags])

        query_vector = self._embed_query(rewritten.text)
        citations = self.search_thoughts(
            rewritten.expanded, query_vector=query_vector, since=since, tags=tag_filter
        )
        conversation_hits = self.search_conversations(
            rewritten.expanded, query_vector=query_vector, since=since
        )

        if citations:
            answer = self._answer(cleaned, citations)
        else:
            answer = NO_RESULTS_ANSWER

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "ask answered with %d citations, %d conversation hits in %dms",
            len(citations),
            len(conversation_hits),
            elapsed_ms,
        )
        return AskResponse(
            answer=answer,
            citations=citations,
            conversation_hits=conversation_hits,
            confidence=confidence_for(citations),
            processing_time=elapsed_ms,
        )

    def search_thoughts(
        self,
        query: str,
        *,
        query_vector: Sequence[float] | None,
        since: datetime | None = None,
        tags: Sequence[str] = (),
        limit: int | None = None,
    ) -> list[Citation]:
        limit = limit or settings.ask_top_k
        candidates = self._thought_candidates(since=since, tags=tags)
        if not candidates:
            return []
        by_id = {t.id: t for t in candidates}

        index = BM25Index(weights=THOUGHT_FIELDS)
        for thought in candidates:
            index.add(
                thought.id,
                {"text": thought.text, "summary": thought.summary, "tags": thought.all_tags()},
            )
        keyword = _normalized(index.search(query))

        semantic: dict[str, float] = {}
        if query_vector:
            scored = [
                (t.id, unit_similarity(query_vector, t.embedding))
                for t in candidates
                if t.embedding
            ]
            scored.sort(key=lambda pair: pair[1], reverse=True)
            semantic = dict(scored[:SEMANTIC_CANDIDATES])

        now = utcnow()
        ranked: list[tuple[float, Thought]] = []
        for thought_id in set(keyword) | set(semantic):
            thought = by_id[thought_id]
            score = fuse(
                bm25_norm=keyword.get(thought_id, 0.0),
                vector=semantic.get(thought_id, 0.0),
                recency=recency_score(thought.created_at, now=now),
                decision=thought.decision_score,
            )
            if score >= settings.ask_min_citation_score:
                ranked.append((score, thought))

        ranked.sort(key=lambda pair: (-pair[0], -to_ms(pair[1].created_at), pair[1].id))
        return [
            Citation(
                id=thought.id,
                preview=truncate(thought.summary or thought.text, PREVIEW_CHARS),
                score=round(score, 4),
                created_at=thought.created_at,
                type=thought.type,
                tags=thought.all_tags(),
            )
            for score, thought in ranked[:limit]
        ]

    def search_conversations(
        self,
        query: str,
        *,
        query_vector: Sequence[float] | None,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[ConversationHit]:
        limit = settings.ask_conversation_hits if limit is None else limit
        if limit <= 0:
            return []
        stmt = select(Conversation).where(Conversation.deleted_at.is_(None))
        if since is not None:
            stmt = stmt.where(Conversation.created_at >= since)
        conversations = list(self.session.exec(stmt))
        if not conversations:
            return []

        codec = self.codec or get_message_codec()
        bodies = self._conversation_bodies([c.id for c in conversations], codec)

        index = BM25Index(weights=CONVERSATION_FIELDS)
        for conv in conversations:
            index.add(
                conv.id,
                {"title": conv.title, "summary": conv.summary, "body": bodies.get(conv.id, [])},
            )
        keyword = _normalized(index.search(query))

        scored: list[tuple[float, Conversation]] = []
        for conv in conversations:
            vector = (
                unit_similarity(query_vector, conv.embedding)
                if query_vector and conv.embedding
                else 0.0
            )
            score = BM25_WEIGHT * keyword.get(conv.id, 0.0) + VECTOR_WEIGHT * vector
            if score >= settings.ask_min_citation_score:
                scored.append((score, conv))

        scored.sort(key=lambda pair: (-pair[0], -to_ms(pair[1].created_at), pair[1].id))
        hits: list[ConversationHit] = []
        for score, conv in scored[:limit]:
            first = (bodies.get(conv.id) or [""])[0]
            hits.append(
                ConversationHit(
                    id=conv.id,
                    title=conv.title,
                    preview=truncate(conv.summary or first, 150),
                    message_count=conv.message_count,
                    score=round(score, 4),
                    created_at=conv.created_at,
                )
            )
        return hits

    # ---------------
    # Internals
    # ---------------
    def _thought_candidates(
        self, *, since: datetime | None, tags: Sequence[str]
    ) -> list[Thought]:
        stmt = select(Thought).where(Thought.deleted_at.is_(None))
        if since is not None:
            stmt = stmt.where(Thought.created_at >= since)
        thoughts = list(self.session.exec(stmt))
        if tags:
            wanted = set(tags)
            thoughts = [t for t in thoughts if wanted.intersection(t.all_tags())]
        return thoughts

    def _conversation_bodies(
        self, conversation_ids: list[str], codec: MessageCodec
    ) -> dict[str, list[str]]:
        stmt = (
            select(ConversationMessage)
            .where(ConversationMessage.conversation_id.in_(conversation_ids))
            .order_by(ConversationMessage.conversation_id, ConversationMessage.seq)
        )
        bodies: dict[str, list[str]] = {}
        for message in self.session.exec(stmt):
            bodies.setdefault(message.conversation_id, []).append(codec.decode(message.content))
        return bodies

    def _embed_query(self, text: str) -> list[float] | None:
        try:
            embedder = self.embedder
            if embedder is None:
                from ragbrain.core.llm_factory import get_embedding_model  # noqa: PLC0415

                embedder = get_embedding_model()
            return list(embedder.embed_query(text))
        except Exception as exc:  # keyword ranking still answers
            logger.warning("Query embedding unavailable, using keyword ranking only: %s", exc)
            return None

    def _answer(self, question: str, citations: list[Citation]) -> str:
        fallback = f"Based on your notes: {citations[0].preview}"
        if not settings.enable_llm_answers:
            return fallback
        notes = "\n".join(f"[{i}] {c.preview}" for i, c in enumerate(citations, start=1))
        try:
            model = self.chat_model
            if model is None:
                from ragbrain.core.llm_factory import get_chat_model  # noqa: PLC0415

                model = get_chat_model()
            result = model.invoke(
                [
                    SystemMessage(content=ANSWER_SYSTEM_PROMPT),
                    HumanMessage(content=f"Notes:\n{notes}\n\nQuestion: {question}"),
                ]
            )
        except Exception as exc:
            logger.warning("Answer synthesis failed, returning extractive answer: %s", exc)
            return fallback
        content = getattr(result, "content", "")
        text = content if isinstance(content, str) else ""
        return text.strip() or fallback


__all__ = [
    "AskService",
    "NO_RESULTS_ANSWER",
    "RewrittenQuery",
    "confidence_for",
    "fuse",
    "recency_score",
    "rewrite_query",
]
