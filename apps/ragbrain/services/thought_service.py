"""Capture store for thoughts.

Writes are synchronous and committed before any enrichment message is sent, so a
captured thought is readable by id the moment `capture` returns.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import and_, or_
from sqlmodel import Session, select

from ragbrain.core.exceptions import NotFoundError, ValidationError
from ragbrain.core.utils import from_ms, now_ms, to_ms, utcnow
from ragbrain.models.sync import Tombstone
from ragbrain.models.thought import THOUGHT_TYPES, Thought
from ragbrain.services.enrichment_queue import enqueue_enrichment
from ragbrain.services.smart_id import new_id
from ragbrain.services.text_rules import clean_text, decision_score, normalize_tags, resolve_type

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100
CONTEXT_KEYS = ("app", "repo", "file", "branch")


def _clean_context(context: dict[str, Any] | None) -> dict[str, str] | None:
    if not context:
        return None
    cleaned = {k: str(v) for k, v in context.items() if k in CONTEXT_KEYS and v is not None}
    return cleaned or None


def encode_cursor(created_at: datetime, item_id: str) -> str:
    raw = json.dumps({"c": to_ms(created_at), "i": item_id}).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_cursor(cursor: str) -> tuple[datetime, str]:
    try:
        data = json.loads(base64.urlsafe_b64decode(cursor.encode("ascii")))
        return from_ms(int(data["c"])), str(data["i"])
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError) as exc:
        raise ValidationError("cursor is invalid") from exc


@dataclass
class ThoughtPage:
    thoughts: list[Thought]
    cursor: str | None
    has_more: bool


@dataclass
class ThoughtService:
    """Domain service for capturing, reading, editing and deleting thoughts."""

    session: Session

    def capture(
        self,
        *,
        text: str,
        type: str | None = None,
        tags: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ) -> Thought:
        cleaned = clean_text(text)
        thought = Thought(
            id=new_id("t"),
            text=cleaned,
            type=resolve_type(type, cleaned),
            tags=normalize_tags(tags, text=cleaned),
            context=_clean_context(context),
            decision_score=decision_score(cleaned),
        )
        self.session.add(thought)
        self.session.commit()
        self.session.refresh(thought)
        logger.info("Captured thought %s (type=%s)", thought.id, thought.type)

        enqueue_enrichment(thought.id, enqueued_at=to_ms(thought.created_at))
        return thought

    def get(self, thought_id: str) -> Thought:
        thought = self.session.get(Thought, thought_id)
        if thought is None or thought.is_deleted:
            raise NotFoundError("Thought not found")
        return thought

    def list_thoughts(
        self,
        *,
        type: str | None = None,
        tag: str | None = None,
        cursor: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> ThoughtPage:
        if not 1 <= int(limit) <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if type is not None and type not in THOUGHT_TYPES:
            raise ValidationError(f"type must be one of: {', '.join(THOUGHT_TYPES)}")

        stmt = select(Thought).where(Thought.deleted_at.is_(None))
        if type:
            stmt = stmt.where(Thought.type == type)
        if cursor:
            after_created, after_id = decode_cursor(cursor)
            stmt = stmt.where(
                or_(
                    Thought.created_at < after_created,
                    and_(Thought.created_at == after_created, Thought.id < after_id),
                )
            )
        stmt = stmt.order_by(Thought.created_at.desc(), Thought.id.desc())

        wanted_tag = tag.strip().lower() if tag else None
        page: list[Thought] = []
        has_more = False
        # Tags live in a JSON column, so the tag filter runs in Python over ordered rows.
        for thought in self.session.exec(stmt):
            if wanted_tag and wanted_tag not in thought.all_tags():
                continue
            if len(page) == limit:
                has_more = True
                break
            page.append(thought)

        next_cursor = encode_cursor(page[-1].created_at, page[-1].id) if has_more else None
        return ThoughtPage(thoughts=page, cursor=next_cursor, has_more=has_more)

    def update(
        self,
        thought_id: str,
        *,
        text: str | None = None,
        type: str | None = None,
        tags: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ) -> Thought:
        thought = self.get(thought_id)
        text_changed = False
        if text is not None:
            cleaned = clean_text(text)
            text_changed = cleaned != thought.text
            thought.text = cleaned
            thought.decision_score = decision_score(cleaned)
        if type is not None:
            thought.type = resolve_type(type, thought.text)
        if tags is not None or text_changed:
            base_tags = tags if tags is not None else thought.tags
            thought.tags = normalize_tags(base_tags, text=thought.text)
        if context is not None:
            thought.context = _clean_context(context)
        # Strictly newer than the capture, earlier edits and any applied enrichment,
        # so a same-millisecond edit is never judged stale.
        stamp = max(now_ms(), to_ms(thought.updated_at) + 1, (thought.derived_at or 0) + 1)
        thought.updated_at = from_ms(stamp)
        self.session.add(thought)
        self.session.commit()
        self.session.refresh(thought)

        if text_changed:
            # Derived fields stay until the new message recomputes them.
            enqueue_enrichment(thought.id, enqueued_at=stamp)
        return thought

    def delete(self, thought_id: str) -> None:
        thought = self.get(thought_id)
        now = utcnow()
        thought.deleted_at = now
        thought.updated_at = now
        self.session.add(thought)
        self.session.merge(Tombstone(item_id=thought.id, kind="thought", deleted_at=now))
        self.session.commit()
        logger.info("Deleted thought %s", thought.id)


__all__ = ["ThoughtPage", "ThoughtService", "decode_cursor", "encode_cursor"]
