from __future__ import annotations

from typing import Literal

from pydantic import Field

from ragbrain.schemas.common import CamelModel, UtcDatetime

ThoughtType = Literal["note", "decision", "insight", "code", "todo", "link"]


class ThoughtContext(CamelModel):
    app: str | None = None
    repo: str | None = None
    file: str | None = None
    branch: str | None = None


class ThoughtCreate(CamelModel):
    # Emptiness/length and tag rules are enforced by the service (ValidationError).
    text: str | None = None
    type: str | None = None
    tags: list[str] | None = None
    context: ThoughtContext | None = None


class ThoughtUpdate(CamelModel):
    text: str | None = None
    type: str | None = None
    tags: list[str] | None = None
    context: ThoughtContext | None = None


class CaptureResponse(CamelModel):
    id: str
    smart_id: str
    type: str
    tags: list[str] = Field(default_factory=list)
    created_at: UtcDatetime


class ThoughtOut(CamelModel):
    id: str
    smart_id: str
    text: str
    type: str
    tags: list[str] = Field(default_factory=list)
    context: ThoughtContext | None = None
    decision_score: float = 0.0
    created_at: UtcDatetime
    updated_at: UtcDatetime

    summary: str | None = None
    auto_tags: list[str] | None = None
    category: str | None = None
    intent: str | None = None
    entities: list[str] | None = None
    related_ids: list[str] | None = None
    enriched: bool = False


class ThoughtPageOut(CamelModel):
    thoughts: list[ThoughtOut] = Field(default_factory=list)
    cursor: str | None = None
    has_more: bool = False
