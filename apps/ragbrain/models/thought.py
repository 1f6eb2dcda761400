"""Captured thoughts and their asynchronously derived fields.

Capture owns `text`, `type`, `tags` and `context`. Everything below the derived
marker is written only by the enrichment worker's watermark-guarded merge.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, BigInteger, Column, Float, Index, String, Text
from sqlmodel import Field

from ragbrain.models.base import Model, SoftDeleteMixin

THOUGHT_TYPES = ("note", "decision", "insight", "code", "todo", "link")


class Thought(Model, SoftDeleteMixin, table=True):
    __tablename__ = "thoughts"
    __table_args__ = (
        Index("ix_thoughts_type", "type"),
        Index("ix_thoughts_live_created", "deleted_at", "created_at"),
    )

    text: str = Field(sa_column=Column(Text, nullable=False))
    type: str = Field(default="note", sa_column=Column(String(16), nullable=False))
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    context: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON, nullable=True))
    decision_score: float = Field(default=0.0, sa_column=Column(Float, nullable=False))

    # --- derived ---
    summary: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    auto_tags: list[str] | None = Field(default=None, sa_column=Column(JSON, nullable=True))
    category: str | None = Field(default=None, sa_column=Column(String(32), nullable=True))
    intent: str | None = Field(default=None, sa_column=Column(String(32), nullable=True))
    entities: list[str] | None = Field(default=None, sa_column=Column(JSON, nullable=True))
    embedding: list[float] | None = Field(default=None, sa_column=Column(JSON, nullable=True))
    related_ids: list[str] | None = Field(default=None, sa_column=Column(JSON, nullable=True))
    derived_at: int | None = Field(default=None, sa_column=Column(BigInteger, nullable=True))

    @property
    def has_derived(self) -> bool:
        return self.embedding is not None

    def all_tags(self) -> list[str]:
        """User tags followed by auto tags, without duplicates."""
        merged: list[str] = []
        for tag in [*(self.tags or []), *(self.auto_tags or [])]:
            if tag not in merged:
                merged.append(tag)
        return merged
