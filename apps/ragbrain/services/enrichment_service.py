"""Consumer side of enrichment: compute derived fields and merge them back.

Every message carries the enqueue timestamp of the write that produced it. The
merge is a single conditional UPDATE guarded by that timestamp (the `derived_at`
watermark), so duplicate, late or concurrent deliveries can never overwrite the
results of a newer message, and a deleted item is never resurrected.

Only the embedding is mandatory; summary, classification and related ids are
best-effort and are simply omitted when they cannot be computed.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Sequence

from langchain_core.embeddings import Embeddings
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from sqlalchemy import or_, update
from sqlmodel import Session, select

from ragbrain.core.crypto import MessageCodec, get_message_codec
from ragbrain.core.exceptions import NotFoundError, TransientUpstreamError, scrub
from ragbrain.core.settings import settings
from ragbrain.core.utils import now_ms, utcnow
from ragbrain.models.conversation import Conversation, ConversationMessage
from ragbrain.models.sync import EnrichmentDeadLetter
from ragbrain.models.thought import Thought
from ragbrain.services.enrichment_queue import enqueue_enrichment
from ragbrain.services.similarity import nearest
from ragbrain.services.smart_id import split_id

logger = logging.getLogger(__name__)

SHORT_TEXT_CHARS = 100
RELATED_LIMIT = 5
MAX_AUTO_TAGS = 5
MAX_ENTITIES = 3
ERROR_CHARS = 500

CATEGORIES = ("engineering", "design", "product", "personal", "learning", "decision", "other")
INTENTS = (
    "note",
    "question",
    "decision",
    "todo",
    "idea",
    "bug-report",
    "feature-request",
    "rationale",
)

# keyword -> tag, checked on word boundaries
_TAG_HEURISTICS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("aws", "azure", "gcp"), "cloud"),
    (("react", "vue", "angular"), "frontend"),
    (("api", "rest", "graphql"), "api"),
    (("bug",), "bug"),
    (("feature",), "feature"),
)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_TAG_CLEAN = re.compile(r"[^a-z0-9-]+")

SUMMARY_PROMPT = (
    "Summarize the following note in one sentence of at most 15 words. "
    "Reply with the sentence only.\n\n{text}"
)
CLASSIFY_SYSTEM_PROMPT = (
    "You classify short personal notes. Respond with a single JSON object and nothing else."
)
CLASSIFY_PROMPT = (
    "Classify this note.\n"
    'Return JSON: {{"tags": [3-5 lower-case hyphenated tags], '
    '"category": one of {categories}, "intent": one of {intents}, '
    '"entities": [1-3 named things it mentions]}}\n\n'
    "Note:\n{text}"
)

STATUS_SKIPPED = "skipped"
STATUS_STALE = "stale"
STATUS_APPLIED = "applied"
STATUS_SUPERSEDED = "superseded"


@dataclass
class EnrichmentOutcome:
    item_id: str
    status: str
    fields: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {"item_id": self.item_id, "status": self.status, "fields": self.fields}


def _word_in(text: str, word: str) -> bool:
    return re.search(rf"\b{re.escape(word)}\b", text) is not None


def heuristic_tags(text: str) -> list[str]:
    lowered = text.lower()
    tags: list[str] = []
    for keywords, tag in _TAG_HEURISTICS:
        if any(_word_in(lowered, kw) for kw in keywords) and tag not in tags:
            tags.append(tag)
    return tags


def heuristic_intent(text: str) -> str | None:
    lowered = text.lower()
    if "?" in text:
        return "question"
    if "decided" in lowered or "decision" in lowered:
        return "decision"
    if "todo" in lowered or "need to" in lowered:
        return "todo"
    if _word_in(lowered, "bug") or _word_in(lowered, "error"):
        return "bug-report"
    return None


def _clean_tags(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    tags: list[str] = []
    for item in raw:
        if not isinstance(item, str):
            continue
        tag = _TAG_CLEAN.sub("-", item.strip().lower()).strip("-")[:50]
        if tag and tag not in tags:
            tags.append(tag)
    return tags[:MAX_AUTO_TAGS]


def parse_classification(content: str) -> dict[str, Any]:
    """Pull the supported fields out of a model reply; unknown values are dropped."""
    match = _JSON_OBJECT.search(content or "")
    if not match:
        return {}
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return {}
    if not isinstance(data, dict):
        return {}

    parsed: dict[str, Any] = {}
    tags = _clean_tags(data.get("tags"))
    if tags:
        parsed["auto_tags"] = tags
    category = str(data.get("category") or "").strip().lower()
    if category in CATEGORIES:
        parsed["category"] = category
    intent = str(data.get("intent") or "").strip().lower()
    if intent in INTENTS:
        parsed["intent"] = intent
    entities = data.get("entities")
    if isinstance(entities, list):
        names = [str(e).strip() for e in entities if isinstance(e, str) and e.strip()]
        if names:
            parsed["entities"] = names[:MAX_ENTITIES]
    return parsed


def transcript(messages: Sequence[str], roles: Sequence[str]) -> str:
    lines = []
    for role, content in zip(roles, messages):
        prefix = "Q:" if role == "user" else "A:"
        lines.append(f"{prefix} {content}")
    return "\n".join(lines)


@dataclass
class EnrichmentService:
    """Derives summary, tags, classification, embedding and related ids."""

    session: Session
    embedder: Embeddings | None = None
    chat_model: BaseChatModel | None = None
    codec: MessageCodec | None = None

    # ---------------
    # Public API
    # ---------------
    def enrich(self, item_id: str, enqueued_at: int) -> EnrichmentOutcome:
        kind, _ = split_id(item_id)
        if kind == "conv":
            return self._enrich_conversation(item_id, int(enqueued_at))
        return self._enrich_thought(item_id, int(enqueued_at))

    def record_dead_letter(
        self, item_id: str, enqueued_at: int, *, attempts: int, error: BaseException | str
    ) -> EnrichmentDeadLetter:
        message = " ".join(scrub(str(error)).split())[:ERROR_CHARS]
        entry = EnrichmentDeadLetter(
            item_id=item_id, enqueued_at=int(enqueued_at), attempts=attempts, error=message
        )
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(entry)
        logger.error(
            "Enrichment for %s dead-lettered after %d attempts: %s", item_id, attempts, message
        )
        return entry

    def list_dead_letters(self, *, include_replayed: bool = False) -> list[EnrichmentDeadLetter]:
        stmt = select(EnrichmentDeadLetter)
        if not include_replayed:
            stmt = stmt.where(EnrichmentDeadLetter.replayed_at.is_(None))
        stmt = stmt.order_by(EnrichmentDeadLetter.created_at.desc(), EnrichmentDeadLetter.id.desc())
        return list(self.session.exec(stmt))

    def replay_dead_letter(self, dead_letter_id: int) -> EnrichmentDeadLetter:
        entry = self.session.get(EnrichmentDeadLetter, dead_letter_id)
        if entry is None:
            raise NotFoundError("Dead letter not found")
        if enqueue_enrichment(entry.item_id, enqueued_at=now_ms()) is None:
            raise TransientUpstreamError("Enrichment queue unavailable")
        entry.replayed_at = utcnow()
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(entry)
        logger.info("Replayed dead letter %s for %s", entry.id, entry.item_id)
        return entry

    # ---------------
    # Thoughts
    # ---------------
    def _enrich_thought(self, item_id: str, enqueued_at: int) -> EnrichmentOutcome:
        thought = self.session.get(Thought, item_id)
        if thought is None or thought.is_deleted:
            logger.info("Skipping enrichment for missing or deleted %s", item_id)
            return EnrichmentOutcome(item_id, STATUS_SKIPPED)
        if thought.derived_at is not None and enqueued_at <= thought.derived_at:
            logger.info("Skipping stale enrichment message for %s", item_id)
            return EnrichmentOutcome(item_id, STATUS_STALE)

        text = thought.text
        values: dict[str, Any] = {"embedding": self._embed(text)}
        summary = self._summarize(text)
        if summary:
            values["summary"] = summary
        values.update(self._classify(text))
        related = self._related_ids(thought.id, values["embedding"])
        if related is not None:
            values["related_ids"] = related

        return self._write_back(Thought, item_id, enqueued_at, values)

    def _related_ids(self, thought_id: str, vector: list[float]) -> list[str] | None:
        try:
            stmt = (
                select(Thought)
                .where(Thought.deleted_at.is_(None))
                .where(Thought.id != thought_id)
            )
            ranked = nearest(
                vector,
                ((t.id, t.embedding) for t in self.session.exec(stmt)),
                limit=RELATED_LIMIT,
            )
        except Exception as exc:
            logger.warning("Related lookup failed for %s: %s", thought_id, exc)
            return None
        return [item_id for item_id, _ in ranked]

    # ---------------
    # Conversations
    # ---------------
    def _enrich_conversation(self, item_id: str, enqueued_at: int) -> EnrichmentOutcome:
        conversation = self.session.get(Conversation, item_id)
        if conversation is None or conversation.is_deleted:
            logger.info("Skipping enrichment for missing or deleted %s", item_id)
            return EnrichmentOutcome(item_id, STATUS_SKIPPED)
        if conversation.derived_at is not None and enqueued_at <= conversation.derived_at:
            logger.info("Skipping stale enrichment message for %s", item_id)
            return EnrichmentOutcome(item_id, STATUS_STALE)

        codec = self.codec or get_message_codec()
        stmt = (
            select(ConversationMessage)
            .where(ConversationMessage.conversation_id == item_id)
            .order_by(ConversationMessage.seq)
        )
        messages = list(self.session.exec(stmt))
        if not messages:
            return EnrichmentOutcome(item_id, STATUS_SKIPPED)
        body = transcript([codec.decode(m.content) for m in messages], [m.role for m in messages])

        values: dict[str, Any] = {"embedding": self._embed(body)}
        summary = self._summarize(body)
        if summary:
            values["summary"] = summary
        tags = self._classify(body).get("auto_tags")
        if tags:
            values["auto_tags"] = tags

        return self._write_back(Conversation, item_id, enqueued_at, values)

    # ---------------
    # Internals
    # ---------------
    def _write_back(
        self,
        model: type[Thought] | type[Conversation],
        item_id: str,
        enqueued_at: int,
        values: dict[str, Any],
    ) -> EnrichmentOutcome:
        stmt = (
            update(model)
            .where(model.id == item_id)
            .where(model.deleted_at.is_(None))
            .where(or_(model.derived_at.is_(None), model.derived_at < enqueued_at))
            .values(**values, derived_at=enqueued_at, updated_at=utcnow())
        )
        result = self.session.execute(stmt)
        self.session.commit()
        if result.rowcount == 0:
            logger.info("Enrichment for %s superseded or item deleted; nothing written", item_id)
            return EnrichmentOutcome(item_id, STATUS_SUPERSEDED)
        fields = sorted(values)
        logger.info("Enriched %s (%s)", item_id, ", ".join(fields))
        return EnrichmentOutcome(item_id, STATUS_APPLIED, fields)

    def _embed(self, text: str) -> list[float]:
        try:
            embedder = self.embedder
            if embedder is None:
                from ragbrain.core.llm_factory import get_embedding_model  # noqa: PLC0415

                embedder = get_embedding_model()
            vector = embedder.embed_query(text[: settings.embedding_max_chars])
        except Exception as exc:
            raise TransientUpstreamError(f"Embedding failed: {scrub(str(exc))}") from exc
        if not vector:
            raise TransientUpstreamError("Embedding model returned an empty vector")
        return [float(v) for v in vector]

    def _chat(self) -> BaseChatModel:
        if self.chat_model is not None:
            return self.chat_model
        from ragbrain.core.llm_factory import get_chat_model  # noqa: PLC0415

        return get_chat_model()

    def _summarize(self, text: str) -> str | None:
        stripped = text.strip()
        if len(stripped) < SHORT_TEXT_CHARS:
            return stripped
        try:
            reply = self._chat().invoke(
                [HumanMessage(content=SUMMARY_PROMPT.format(text=stripped[:4000]))]
            )
        except Exception as exc:
            logger.warning("Summary generation failed: %s", exc)
            return None
        content = reply.content if isinstance(reply.content, str) else ""
        summary = " ".join(content.split())
        return summary or None

    def _classify(self, text: str) -> dict[str, Any]:
        prompt = CLASSIFY_PROMPT.format(
            categories=", ".join(CATEGORIES), intents=", ".join(INTENTS), text=text[:4000]
        )
        try:
            reply = self._chat().invoke(
                [SystemMessage(content=CLASSIFY_SYSTEM_PROMPT), HumanMessage(content=prompt)]
            )
        except Exception as exc:
            logger.warning("Classification failed, using keyword heuristics: %s", exc)
            fallback: dict[str, Any] = {}
            tags = heuristic_tags(text)
            if tags:
                fallback["auto_tags"] = tags
            intent = heuristic_intent(text)
            if intent:
                fallback["intent"] = intent
            return fallback
        return parse_classification(reply.content if isinstance(reply.content, str) else "")


__all__ = [
    "CATEGORIES",
    "EnrichmentOutcome",
    "EnrichmentService",
    "INTENTS",
    "STATUS_APPLIED",
    "STATUS_SKIPPED",
    "STATUS_STALE",
    "STATUS_SUPERSEDED",
    "heuristic_intent",
    "heuristic_tags",
    "parse_classification",
    "transcript",
]
