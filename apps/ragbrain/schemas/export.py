from __future__ import annotations

from typing import Any

from pydantic import Field

from ragbrain.schemas.common import CamelModel, UtcDatetime
from ragbrain.schemas.conversations import MessageCitation


class ExportedThought(CamelModel):
    id: str
    smart_id: str
    text: str
    type: str
    tags: list[str] = Field(default_factory=list)
    category: str | None = None
    intent: str | None = None
    summary: str | None = None
    context: dict[str, Any] | None = None
    related_ids: list[str] = Field(default_factory=list)
    created_at: UtcDatetime
    updated_at: UtcDatetime


class ExportedMessage(CamelModel):
    role: str
    content: str
    citations: list[MessageCitation] | None = None
    created_at: UtcDatetime


class ExportedConversation(CamelModel):
    id: str
    smart_id: str
    title: str
    status: str
    summary: str | None = None
    tags: list[str] = Field(default_factory=list)
    messages: list[ExportedMessage] = Field(default_factory=list)
    created_at: UtcDatetime
    updated_at: UtcDatetime


class ExportResponse(CamelModel):
    thoughts: list[ExportedThought] = Field(default_factory=list)
    conversations: list[ExportedConversation] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
    sync_timestamp: int = Field(description="Pass back as `since` on the next call.")
