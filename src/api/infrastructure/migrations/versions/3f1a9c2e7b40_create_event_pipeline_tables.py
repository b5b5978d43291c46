"""create_event_pipeline_tables

Create the outbox_events, event_log, consumer_events and dlq_messages
tables for the outbox relay and consumer pipeline.

Revision ID: 3f1a9c2e7b40
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "3f1a9c2e7b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "outbox_events",
        sa.Column(
            "id",
            sa.UUID(),
            nullable=False,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("tenant_id", sa.String(length=255), nullable=False),
        sa.Column(
            "event_type", sa.String(length=255), nullable=False
        ),  # e.g., "foundation.user.created.v1"
        sa.Column("aggregate_id", sa.String(length=255), nullable=True),
        sa.Column("payload", postgresql.JSONB(), nullable=False),
        sa.Column(
            "dedupe_key", sa.String(length=512), nullable=True
        ),  # Published as the event id when set
        sa.Column(
            "status", sa.String(length=32), nullable=False, server_default="pending"
        ),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_outbox_events"),
    )
    op.create_index(
        "ix_outbox_events_tenant_id", "outbox_events", ["tenant_id"], unique=False
    )
    # Index for fetching pending rows in creation order
    op.create_index(
        "idx_outbox_events_pending",
        "outbox_events",
        ["created_at"],
        unique=False,
        postgresql_where=sa.text("status = 'pending'"),
    )
    # Index for metrics counts and lag sampling
    op.create_index(
        "idx_outbox_events_status_published_at",
        "outbox_events",
        ["status", "published_at"],
        unique=False,
    )

    op.create_table(
        "event_log",
        sa.Column(
            "sequence", sa.BigInteger(), autoincrement=False, nullable=False
        ),  # Assigned by the relay, gapless
        sa.Column("event_id", sa.String(length=512), nullable=False),
        sa.Column("tenant_id", sa.String(length=255), nullable=False),
        sa.Column("schema_id", sa.String(length=255), nullable=False),
        sa.Column("schema_version", sa.String(length=32), nullable=False),
        sa.Column("headers", postgresql.JSONB(), nullable=False),
        sa.Column("payload_redacted", postgresql.JSONB(), nullable=False),
        sa.Column("payload_hash", sa.String(length=64), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("sequence", name="pk_event_log"),
        sa.UniqueConstraint("event_id", name="uq_event_log_event_id"),
    )
    op.create_index(
        "idx_event_log_schema_sequence",
        "event_log",
        ["schema_id", "sequence"],
        unique=False,
    )
    op.create_index(
        "idx_event_log_tenant_sequence",
        "event_log",
        ["tenant_id", "sequence"],
        unique=False,
    )

    op.create_table(
        "consumer_events",
        sa.Column(
            "id",
            sa.UUID(),
            nullable=False,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("consumer_name", sa.String(length=255), nullable=False),
        sa.Column("event_id", sa.String(length=512), nullable=False),
        sa.Column("sequence", sa.BigInteger(), nullable=False),
        sa.Column(
            "status", sa.String(length=32), nullable=False, server_default="pending"
        ),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_consumer_events"),
        sa.UniqueConstraint(
            "consumer_name", "event_id", name="uq_consumer_events_consumer_event"
        ),
    )
    # Index for checkpoint lookups (max completed sequence per consumer)
    op.create_index(
        "idx_consumer_events_consumer_status_sequence",
        "consumer_events",
        ["consumer_name", "status", "sequence"],
        unique=False,
    )

    op.create_table(
        "dlq_messages",
        sa.Column(
            "id",
            sa.UUID(),
            nullable=False,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "consumer_name", sa.String(length=255), nullable=False
        ),  # "outbox-relay" for relay failures
        sa.Column("event_id", sa.String(length=512), nullable=False),
        sa.Column("sequence", sa.BigInteger(), nullable=False),
        sa.Column("failure_reason", sa.Text(), nullable=False),
        sa.Column("payload_snapshot", postgresql.JSONB(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_dlq_messages"),
    )
    op.create_index(
        "idx_dlq_messages_consumer_created",
        "dlq_messages",
        ["consumer_name", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("idx_dlq_messages_consumer_created", table_name="dlq_messages")
    op.drop_table("dlq_messages")
    op.drop_index(
        "idx_consumer_events_consumer_status_sequence", table_name="consumer_events"
    )
    op.drop_table("consumer_events")
    op.drop_index("idx_event_log_tenant_sequence", table_name="event_log")
    op.drop_index("idx_event_log_schema_sequence", table_name="event_log")
    op.drop_table("event_log")
    op.drop_index("idx_outbox_events_status_published_at", table_name="outbox_events")
    op.drop_index("idx_outbox_events_pending", table_name="outbox_events")
    op.drop_index("ix_outbox_events_tenant_id", table_name="outbox_events")
    op.drop_table("outbox_events")
