from __future__ import annotations

from pydantic import Field

from ragbrain.schemas.common import CamelModel, UtcDatetime


class AskRequest(CamelModel):
    # Emptiness and length are checked by the service so they map to ValidationError.
    query: str | None = None
    time_window: str | None = None
    tags: list[str] | None = None


class Citation(CamelModel):
    id: str
    preview: str
    score: float
    created_at: UtcDatetime
    type: str | None = None
    tags: list[str] | None = None


class ConversationHit(CamelModel):
    id: str
    title: str
    preview: str
    message_count: int
    score: float
    created_at: UtcDatetime


class AskResponse(CamelModel):
    answer: str
    citations: list[Citation] = Field(default_factory=list)
    conversation_hits: list[ConversationHit] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    processing_time: int = Field(description="Milliseconds spent answering.")
