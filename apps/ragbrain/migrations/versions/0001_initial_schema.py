"""Initial database schema for ragbrain."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "thoughts",
        sa.Column("id", sa.String(length=64), primary_key=True),
        *_timestamps(),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("context", sa.JSON(), nullable=True),
        sa.Column("decision_score", sa.Float(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("auto_tags", sa.JSON(), nullable=True),
        sa.Column("category", sa.String(length=32), nullable=True),
        sa.Column("intent", sa.String(length=32), nullable=True),
        sa.Column("entities", sa.JSON(), nullable=True),
        sa.Column("embedding", sa.JSON(), nullable=True),
        sa.Column("related_ids", sa.JSON(), nullable=True),
        sa.Column("derived_at", sa.BigInteger(), nullable=True),
    )
    op.create_index("ix_thoughts_created_at", "thoughts", ["created_at"])
    op.create_index("ix_thoughts_updated_at", "thoughts", ["updated_at"])
    op.create_index("ix_thoughts_type", "thoughts", ["type"])
    op.create_index("ix_thoughts_live_created", "thoughts", ["deleted_at", "created_at"])

    op.create_table(
        "conversations",
        sa.Column("id", sa.String(length=64), primary_key=True),
        *_timestamps(),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("message_count", sa.Integer(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("auto_tags", sa.JSON(), nullable=True),
        sa.Column("embedding", sa.JSON(), nullable=True),
        sa.Column("derived_at", sa.BigInteger(), nullable=True),
        sa.Column("last_enqueued_at", sa.BigInteger(), nullable=True),
    )
    op.create_index("ix_conversations_created_at", "conversations", ["created_at"])
    op.create_index("ix_conversations_updated_at", "conversations", ["updated_at"])
    op.create_index("ix_conversations_status", "conversations", ["status"])

    op.create_table(
        "conversation_messages",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column(
            "conversation_id",
            sa.String(length=64),
            sa.ForeignKey("conversations.id"),
            nullable=False,
        ),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("citations", sa.JSON(), nullable=True),
    )
    op.create_index(
        "ix_conversation_messages_created_at", "conversation_messages", ["created_at"]
    )
    op.create_index(
        "ix_conversation_messages_updated_at", "conversation_messages", ["updated_at"]
    )
    op.create_index(
        "ix_conversation_messages_conv_seq",
        "conversation_messages",
        ["conversation_id", "seq"],
        unique=True,
    )

    op.create_table(
        "tombstones",
        sa.Column("item_id", sa.String(length=64), primary_key=True),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_tombstones_deleted_at", "tombstones", ["deleted_at"])

    op.create_table(
        "enrichment_dead_letters",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("item_id", sa.String(length=64), nullable=False),
        sa.Column("enqueued_at", sa.BigInteger(), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("error", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("replayed_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_enrichment_dead_letters_item", "enrichment_dead_letters", ["item_id"])
    op.create_index(
        "ix_enrichment_dead_letters_open",
        "enrichment_dead_letters",
        ["replayed_at", "created_at"],
    )


def downgrade() -> None:
    op.drop_table("enrichment_dead_letters")
    op.drop_table("tombstones")
    op.drop_table("conversation_messages")
    op.drop_table("conversations")
    op.drop_table("thoughts")
