from __future__ import annotations

from pydantic import Field

from ragbrain.schemas.common import CamelModel, UtcDatetime


class DeadLetterOut(CamelModel):
    id: int
    item_id: str
    enqueued_at: int
    attempts: int
    error: str
    created_at: UtcDatetime
    replayed_at: UtcDatetime | None = None


class DeadLetterList(CamelModel):
    dead_letters: list[DeadLetterOut] = Field(default_factory=list)
    count: int = 0
