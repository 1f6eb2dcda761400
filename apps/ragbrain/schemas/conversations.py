from __future__ import annotations

from typing import Literal

from pydantic import Field

from ragbrain.schemas.common import CamelModel, UtcDatetime


class ConversationCreate(CamelModel):
    title: str | None = Field(default=None, max_length=255)
    initial_message: str | None = None


class ConversationUpdate(CamelModel):
    title: str | None = Field(default=None, max_length=255)
    status: Literal["active", "archived", "deleted"] | None = None


class MessageCreate(CamelModel):
    content: str | None = None


class MessageCitation(CamelModel):
    id: str
    preview: str
    created_at: UtcDatetime


class MessageOut(CamelModel):
    id: str
    role: Literal["user", "assistant"]
    content: str
    citations: list[MessageCitation] | None = None
    created_at: UtcDatetime


class ConversationSummaryOut(CamelModel):
    id: str
    title: str
    status: str
    message_count: int
    summary: str | None = None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class ConversationOut(ConversationSummaryOut):
    messages: list[MessageOut] = Field(default_factory=list)


class ConversationPage(CamelModel):
    conversations: list[ConversationSummaryOut] = Field(default_factory=list)
    cursor: str | None = None
    has_more: bool = False


class MessageExchangeOut(CamelModel):
    conversation_id: str
    user_message: MessageOut
    assistant_message: MessageOut
    confidence: float = Field(ge=0.0, le=1.0)
