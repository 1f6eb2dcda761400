"""Conversations and their append-only messages."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, Column, ForeignKey, Index, Integer, String, Text
from sqlmodel import Field

from ragbrain.core.utils import utcnow
from ragbrain.models.base import Model, SoftDeleteMixin

CONVERSATION_STATUSES = ("active", "archived", "deleted")
MESSAGE_ROLES = ("user", "assistant")


class Conversation(Model, SoftDeleteMixin, table=True):
    __tablename__ = "conversations"
    __table_args__ = (Index("ix_conversations_status", "status"),)

    title: str = Field(sa_column=Column(String(255), nullable=False))
    status: str = Field(default="active", sa_column=Column(String(16), nullable=False))
    message_count: int = Field(default=0, sa_column=Column(Integer, nullable=False))

    # --- derived ---
    summary: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    auto_tags: list[str] | None = Field(default=None, sa_column=Column(JSON, nullable=True))
    embedding: list[float] | None = Field(default=None, sa_column=Column(JSON, nullable=True))
    derived_at: int | None = Field(default=None, sa_column=Column(BigInteger, nullable=True))
    last_enqueued_at: int | None = Field(
        default=None, sa_column=Column(BigInteger, nullable=True)
    )


class ConversationMessage(Model, table=True):
    """One turn. `content` holds the codec's stored form, never read directly."""

    __tablename__ = "conversation_messages"
    __table_args__ = (
        Index("ix_conversation_messages_conv_seq", "conversation_id", "seq", unique=True),
    )

    conversation_id: str = Field(
        sa_column=Column(String(64), ForeignKey("conversations.id"), nullable=False)
    )
    seq: int = Field(sa_column=Column(Integer, nullable=False))
    role: str = Field(sa_column=Column(String(16), nullable=False))
    content: str = Field(sa_column=Column(Text, nullable=False))
    citations: list[dict[str, Any]] | None = Field(
        default=None, sa_column=Column(JSON, nullable=True)
    )


def default_title(now: datetime | None = None) -> str:
    return f"Conversation {(now or utcnow()).date().isoformat()}"
