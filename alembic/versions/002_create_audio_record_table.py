"""Create audio_record table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "audio_record",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("permlink", sa.String(length=16), nullable=False),
        sa.Column("owner", sa.String(length=256), nullable=False),
        sa.Column("content_id", sa.String(length=128), nullable=False),
        sa.Column("pinned_nodes", sa.JSON(), nullable=False),
        sa.Column("ipfs_status", sa.String(length=32), nullable=False, server_default="pinned_local"),
        sa.Column("migration_status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("migration_queued_at", sa.DateTime(), nullable=True),
        sa.Column("migration_completed_at", sa.DateTime(), nullable=True),
        sa.Column("pin_until", sa.DateTime(), nullable=True),
        sa.Column("last_gc_check", sa.DateTime(), nullable=True),
        sa.Column("original_filename", sa.String(length=512), nullable=True),
        sa.Column("format", sa.String(length=32), nullable=False),
        sa.Column("codec", sa.String(length=64), nullable=True),
        sa.Column("size_bytes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration", sa.Float(), nullable=False),
        sa.Column("bitrate", sa.Integer(), nullable=True),
        sa.Column("sample_rate", sa.Integer(), nullable=True),
        sa.Column("channels", sa.Integer(), nullable=True),
        sa.Column("waveform", sa.JSON(), nullable=True),
        sa.Column("title", sa.String(length=512), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("context_type", sa.String(length=64), nullable=False, server_default="voice_message"),
        sa.Column("context_id", sa.String(length=256), nullable=True),
        sa.Column("reply_to", sa.String(length=256), nullable=True),
        sa.Column("api_key_used", sa.String(length=16), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="published"),
        sa.Column("visibility", sa.String(length=32), nullable=False, server_default="public"),
        sa.Column("plays", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("likes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_played", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audio_record_permlink"), "audio_record", ["permlink"], unique=True)
    op.create_index(op.f("ix_audio_record_content_id"), "audio_record", ["content_id"])
    op.create_index(op.f("ix_audio_record_ipfs_status"), "audio_record", ["ipfs_status"])
    op.create_index(op.f("ix_audio_record_pin_until"), "audio_record", ["pin_until"])
    op.create_index(op.f("ix_audio_record_created_at"), "audio_record", ["created_at"])
    op.create_index("ix_audio_record_migration_queue", "audio_record", ["migration_status", "migration_queued_at"])
    op.create_index("ix_audio_record_owner_created", "audio_record", ["owner", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_audio_record_owner_created", table_name="audio_record")
    op.drop_index("ix_audio_record_migration_queue", table_name="audio_record")
    op.drop_index(op.f("ix_audio_record_created_at"), table_name="audio_record")
    op.drop_index(op.f("ix_audio_record_pin_until"), table_name="audio_record")
    op.drop_index(op.f("ix_audio_record_ipfs_status"), table_name="audio_record")
    op.drop_index(op.f("ix_audio_record_content_id"), table_name="audio_record")
    op.drop_index(op.f("ix_audio_record_permlink"), table_name="audio_record")
    op.drop_table("audio_record")
