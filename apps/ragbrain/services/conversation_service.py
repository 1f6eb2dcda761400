"""Conversations: create, converse, list, update, delete.

Message bodies are encoded by the message codec before they reach the database
and decoded on every read, so callers only ever see plaintext.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import and_, func, or_
from sqlmodel import Session, select

from ragbrain.core.crypto import MessageCodec, get_message_codec
from ragbrain.core.exceptions import NotFoundError, ValidationError
from ragbrain.core.settings import settings
from ragbrain.core.utils import now_ms, utcnow
from ragbrain.models.conversation import (
    CONVERSATION_STATUSES,
    Conversation,
    ConversationMessage,
    default_title,
)
from ragbrain.models.sync import Tombstone
from ragbrain.schemas.ask import AskResponse
from ragbrain.schemas.conversations import (
    ConversationOut,
    ConversationPage,
    ConversationSummaryOut,
    MessageExchangeOut,
    MessageOut,
)
from ragbrain.services.ask_service import AskService
from ragbrain.services.enrichment_queue import enqueue_enrichment
from ragbrain.services.smart_id import new_id
from ragbrain.services.text_rules import clean_text
from ragbrain.services.thought_service import decode_cursor, encode_cursor

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def message_out(message: ConversationMessage, codec: MessageCodec) -> MessageOut:
    return MessageOut(
        id=message.id,
        role=message.role,  # type: ignore[arg-type]
        content=codec.decode(message.content),
        citations=message.citations,
        created_at=message.created_at,
    )


def summary_out(conversation: Conversation) -> ConversationSummaryOut:
    return ConversationSummaryOut.model_validate(conversation)


@dataclass
class ConversationService:
    """Domain service for conversations and their append-only messages."""

    session: Session
    ask_service: AskService | None = None
    codec: MessageCodec | None = None

    def __post_init__(self) -> None:
        if self.codec is None:
            self.codec = get_message_codec()
        if self.ask_service is None:
            self.ask_service = AskService(self.session, codec=self.codec)

    # ---------------
    # Conversations
    # ---------------
    def create_conversation(
        self, *, title: str | None = None, initial_message: str | None = None
    ) -> ConversationOut:
        now = utcnow()
        conversation = Conversation(
            id=new_id("conv"),
            title=(title or "").strip() or default_title(now),
            created_at=now,
            updated_at=now,
        )
        self.session.add(conversation)
        self.session.commit()
        self.session.refresh(conversation)
        logger.info("Created conversation %s", conversation.id)

        if initial_message is not None and initial_message.strip():
            self.send_message(conversation.id, content=initial_message)
        return self.get_conversation(conversation.id)

    def get(self, conversation_id: str) -> Conversation:
        conversation = self.session.get(Conversation, conversation_id)
        if conversation is None or conversation.is_deleted:
            raise NotFoundError("Conversation not found")
        return conversation

    def get_conversation(self, conversation_id: str) -> ConversationOut:
        conversation = self.get(conversation_id)
        messages = self.messages(conversation.id)
        return ConversationOut(
            **summary_out(conversation).model_dump(),
            messages=[message_out(m, self.codec) for m in messages],
        )

    def messages(self, conversation_id: str) -> list[ConversationMessage]:
        stmt = (
            select(ConversationMessage)
            .where(ConversationMessage.conversation_id == conversation_id)
            .order_by(ConversationMessage.seq)
        )
        return list(self.session.exec(stmt))

    def list_conversations(
        self,
        *,
        status: str | None = None,
        cursor: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> ConversationPage:
        if not 1 <= int(limit) <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if status is not None and status not in ("active", "archived"):
            raise ValidationError("status must be active or archived")

        stmt = select(Conversation).where(Conversation.deleted_at.is_(None))
        if status:
            stmt = stmt.where(Conversation.status == status)
        if cursor:
            after_updated, after_id = decode_cursor(cursor)
            stmt = stmt.where(
                or_(
                    Conversation.updated_at < after_updated,
                    and_(Conversation.updated_at == after_updated, Conversation.id < after_id),
                )
            )
        stmt = stmt.order_by(Conversation.updated_at.desc(), Conversation.id.desc()).limit(
            limit + 1
        )
        rows = list(self.session.exec(stmt))
        has_more = len(rows) > limit
        page = rows[:limit]
        next_cursor = encode_cursor(page[-1].updated_at, page[-1].id) if has_more else None
        return ConversationPage(
            conversations=[summary_out(c) for c in page], cursor=next_cursor, has_more=has_more
        )

    def update_conversation(
        self, conversation_id: str, *, title: str | None = None, status: str | None = None
    ) -> ConversationSummaryOut:
        if status is not None and status not in CONVERSATION_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(CONVERSATION_STATUSES)}")
        if status == "deleted":
            return summary_out(self.delete_conversation(conversation_id))

        conversation = self.get(conversation_id)
        if title is not None:
            if not title.strip():
                raise ValidationError("title must not be empty")
            conversation.title = title.strip()
        if status is not None:
            conversation.status = status
        conversation.updated_at = utcnow()
        self.session.add(conversation)
        self.session.commit()
        self.session.refresh(conversation)
        return summary_out(conversation)

    def delete_conversation(self, conversation_id: str) -> Conversation:
        conversation = self.get(conversation_id)
        now = utcnow()
        conversation.status = "deleted"
        conversation.deleted_at = now
        conversation.updated_at = now
        self.session.add(conversation)
        self.session.merge(Tombstone(item_id=conversation.id, kind="conversation", deleted_at=now))
        self.session.commit()
        self.session.refresh(conversation)
        logger.info("Deleted conversation %s", conversation.id)
        return conversation

    # ---------------
    # Messages
    # ---------------
    def send_message(self, conversation_id: str, *, content: str | None) -> MessageExchangeOut:
        conversation = self.get(conversation_id)
        if conversation.status == "archived":
            raise ValidationError("Conversation is archived")
        question = clean_text(content)

        result: AskResponse = self.ask_service.ask(question)  # type: ignore[union-attr]
        citations: list[dict[str, Any]] = [
            c.model_dump(mode="json", by_alias=True, include={"id", "preview", "created_at"})
            for c in result.citations
        ]

        user_message = self._append(conversation, role="user", content=question)
        assistant_message = self._append(
            conversation, role="assistant", content=result.answer, citations=citations
        )
        conversation.updated_at = assistant_message.created_at
        self.session.add(conversation)
        self.session.commit()
        self.session.refresh(conversation)

        self._schedule_indexing(conversation)
        return MessageExchangeOut(
            conversation_id=conversation.id,
            user_message=message_out(user_message, self.codec),
            assistant_message=message_out(assistant_message, self.codec),
            confidence=result.confidence,
        )

    def _append(
        self,
        conversation: Conversation,
        *,
        role: str,
        content: str,
        citations: list[dict[str, Any]] | None = None,
    ) -> ConversationMessage:
        next_seq = self.session.exec(
            select(func.coalesce(func.max(ConversationMessage.seq), -1)).where(
                ConversationMessage.conversation_id == conversation.id
            )
        ).one()
        message = ConversationMessage(
            id=new_id("msg"),
            conversation_id=conversation.id,
            seq=int(next_seq) + 1,
            role=role,
            content=self.codec.encode(content),  # type: ignore[union-attr]
            citations=citations,
        )
        conversation.message_count = int(conversation.message_count or 0) + 1
        self.session.add(message)
        self.session.add(conversation)
        self.session.commit()
        self.session.refresh(message)
        return message

    def _schedule_indexing(self, conversation: Conversation) -> None:
        """Enqueue re-indexing at most once per debounce window.

        The message is delayed by the window, so turns that arrive inside it are
        picked up when the worker reads the conversation.
        """
        now = now_ms()
        window = settings.conversation_index_debounce_ms
        last = conversation.last_enqueued_at
        if last is not None and now - last < window:
            return
        stamp = enqueue_enrichment(conversation.id, enqueued_at=now, countdown=window // 1000)
        if stamp is None:
            return
        conversation.last_enqueued_at = stamp
        self.session.add(conversation)
        self.session.commit()


__all__ = ["ConversationService", "message_out", "summary_out"]
