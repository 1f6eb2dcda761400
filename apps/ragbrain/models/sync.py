"""Bookkeeping tables for sync (tombstones) and enrichment (dead letters)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Column, DateTime, Index, Integer, String, Text
from sqlmodel import Field, SQLModel

from ragbrain.core.utils import utcnow


class Tombstone(SQLModel, table=True):
    """Marks a deleted thought or conversation for incremental sync clients."""

    __tablename__ = "tombstones"
    __table_args__ = (Index("ix_tombstones_deleted_at", "deleted_at"),)

    item_id: str = Field(sa_column=Column(String(64), primary_key=True))
    kind: str = Field(sa_column=Column(String(16), nullable=False))
    deleted_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False))


class EnrichmentDeadLetter(SQLModel, table=True):
    """An enrichment message that exhausted its retry budget."""

    __tablename__ = "enrichment_dead_letters"
    __table_args__ = (
        Index("ix_enrichment_dead_letters_item", "item_id"),
        Index("ix_enrichment_dead_letters_open", "replayed_at", "created_at"),
    )

    id: int | None = Field(default=None, sa_column=Column(Integer, primary_key=True))
    item_id: str = Field(sa_column=Column(String(64), nullable=False))
    enqueued_at: int = Field(sa_column=Column(BigInteger, nullable=False))
    attempts: int = Field(default=0, sa_column=Column(Integer, nullable=False))
    error: str = Field(default="", sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False))
    replayed_at: datetime | None = Field(default=None, sa_column=Column(DateTime, nullable=True))
