"""SQLModel base classes and mixins for ORM models."""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field, SQLModel

from ragbrain.core.utils import utcnow


class TimestampMixin(SQLModel):
    """Adds created/updated timestamps (app-managed, millisecond precision)."""

    created_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)


class SoftDeleteMixin(SQLModel):
    """Rows are never removed; `deleted_at` hides them from every read path."""

    deleted_at: datetime | None = Field(default=None, nullable=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class Model(TimestampMixin, SQLModel):
    """Base with a prefixed string `id` and timestamps.

    Inherit this along with `table=True` on concrete models.
    """

    id: str = Field(primary_key=True, max_length=64)
