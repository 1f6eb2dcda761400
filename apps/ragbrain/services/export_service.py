"""Incremental export feed for file-based mirrors.

A client keeps the `sync_timestamp` of its last export and passes it back as
`since`. The timestamp is taken before any row is read and all stored times have
millisecond resolution, so a write committed before the reads is visible in this
export and a write stamped after the checkpoint is strictly newer than it.

Rows are stamped when the write is built, not when it commits. A write stamped
at or before the checkpoint that commits after the reads is missed by this
export and by every later incremental one; `since=0` recovers it.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from sqlalchemy import or_
from sqlmodel import Session, select

from ragbrain.core.crypto import MessageCodec, get_message_codec
from ragbrain.core.exceptions import ValidationError
from ragbrain.core.utils import from_ms, now_ms, to_ms
from ragbrain.models.conversation import Conversation, ConversationMessage
from ragbrain.models.sync import Tombstone
from ragbrain.models.thought import Thought
from ragbrain.schemas.export import (
    ExportedConversation,
    ExportedMessage,
    ExportedThought,
    ExportResponse,
)
from ragbrain.services.smart_id import generate_smart_id

logger = logging.getLogger(__name__)


def export_thought(thought: Thought) -> ExportedThought:
    return ExportedThought(
        id=thought.id,
        smart_id=generate_smart_id(thought.text, thought.id),
        text=thought.text,
        type=thought.type,
        tags=thought.all_tags(),
        category=thought.category,
        intent=thought.intent,
        summary=thought.summary,
        context=thought.context,
        related_ids=list(thought.related_ids or []),
        created_at=thought.created_at,
        updated_at=thought.updated_at,
    )


@dataclass
class ExportService:
    session: Session
    codec: MessageCodec | None = None

    def export(self, since: int | None = 0) -> ExportResponse:
        sync_timestamp = now_ms()
        # Reads start on a later millisecond than the checkpoint, so any write made
        # after them is stamped strictly newer.
        while now_ms() <= sync_timestamp:
            time.sleep(0.0005)
        since = 0 if since is None else int(since)
        if since < 0:
            raise ValidationError("since must not be negative")
        if since > sync_timestamp:
            raise ValidationError("since must not be in the future")
        cutoff = from_ms(since)

        thoughts = self._changed_thoughts(cutoff)
        conversations = self._changed_conversations(cutoff)
        deleted_stmt = (
            select(Tombstone)
            .where(Tombstone.deleted_at > cutoff)
            .order_by(Tombstone.deleted_at, Tombstone.item_id)
        )
        deleted = [t.item_id for t in self.session.exec(deleted_stmt)]

        logger.info(
            "Export since=%d: %d thoughts, %d conversations, %d deleted",
            since,
            len(thoughts),
            len(conversations),
            len(deleted),
        )
        return ExportResponse(
            thoughts=thoughts,
            conversations=conversations,
            deleted=deleted,
            sync_timestamp=sync_timestamp,
        )

    def _changed_thoughts(self, cutoff) -> list[ExportedThought]:  # noqa: ANN001
        stmt = (
            select(Thought)
            .where(Thought.deleted_at.is_(None))
            .where(or_(Thought.created_at > cutoff, Thought.updated_at > cutoff))
        )
        rows = sorted(self.session.exec(stmt), key=lambda t: (to_ms(t.updated_at), t.id))
        return [export_thought(t) for t in rows]

    def _changed_conversations(self, cutoff) -> list[ExportedConversation]:  # noqa: ANN001
        stmt = (
            select(Conversation)
            .where(Conversation.deleted_at.is_(None))
            .where(or_(Conversation.created_at > cutoff, Conversation.updated_at > cutoff))
        )
        rows = sorted(self.session.exec(stmt), key=lambda c: (to_ms(c.updated_at), c.id))
        if not rows:
            return []

        codec = self.codec or get_message_codec()
        msg_stmt = (
            select(ConversationMessage)
            .where(ConversationMessage.conversation_id.in_([c.id for c in rows]))
            .order_by(ConversationMessage.conversation_id, ConversationMessage.seq)
        )
        messages: dict[str, list[ExportedMessage]] = {}
        for message in self.session.exec(msg_stmt):
            messages.setdefault(message.conversation_id, []).append(
                ExportedMessage(
                    role=message.role,
                    content=codec.decode(message.content),
                    citations=message.citations,
                    created_at=message.created_at,
                )
            )

        return [
            ExportedConversation(
                id=c.id,
                smart_id=generate_smart_id(c.title, c.id),
                title=c.title,
                status=c.status,
                summary=c.summary,
                tags=list(c.auto_tags or []),
                messages=messages.get(c.id, []),
                created_at=c.created_at,
                updated_at=c.updated_at,
            )
            for c in rows
        ]


__all__ = ["ExportService", "export_thought"]
