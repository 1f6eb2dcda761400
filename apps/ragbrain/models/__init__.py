"""Convenient exports for writing ORM models (SQLModel)."""

from sqlmodel import Field, SQLModel

from ragbrain.models.base import Model, SoftDeleteMixin, TimestampMixin
from ragbrain.models.conversation import Conversation, ConversationMessage
from ragbrain.models.sync import EnrichmentDeadLetter, Tombstone
from ragbrain.models.thought import Thought

__all__ = [
    "Model",
    "SoftDeleteMixin",
    "TimestampMixin",
    "Thought",
    "Conversation",
    "ConversationMessage",
    "Tombstone",
    "EnrichmentDeadLetter",
    "Field",
    "SQLModel",
]
