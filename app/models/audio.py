"""Audio record model."""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Float, Index, Integer, String, Text

from app.database import Base
from app.lifecycle import IpfsStatus, MigrationStatus


class AudioRecord(Base):
    """One pinned audio clip and its storage lifecycle."""

    __tablename__ = "audio_record"
    __table_args__ = (
        Index("ix_audio_record_migration_queue", "migration_status", "migration_queued_at"),
        Index("ix_audio_record_owner_created", "owner", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    permlink = Column(String(16), nullable=False, unique=True, index=True)
    owner = Column(String(256), nullable=False)

    # IPFS storage
    content_id = Column(String(128), nullable=False, index=True)
    pinned_nodes = Column(JSON, nullable=False, default=lambda: ["local"])
    ipfs_status = Column(String(32), nullable=False, default=IpfsStatus.PINNED_LOCAL.value, index=True)
    migration_status = Column(String(32), nullable=False, default=MigrationStatus.PENDING.value)
    migration_queued_at = Column(DateTime, nullable=True)
    migration_completed_at = Column(DateTime, nullable=True)
    pin_until = Column(DateTime, nullable=True, index=True)
    last_gc_check = Column(DateTime, nullable=True)

    # File info, as declared by the client
    original_filename = Column(String(512), nullable=True)
    format = Column(String(32), nullable=False)
    codec = Column(String(64), nullable=True)
    size_bytes = Column(Integer, nullable=False, default=0)
    duration = Column(Float, nullable=False)
    bitrate = Column(Integer, nullable=True)
    sample_rate = Column(Integer, nullable=True)
    channels = Column(Integer, nullable=True)
    waveform = Column(JSON, nullable=True)

    title = Column(String(512), nullable=True)
    description = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    context_type = Column(String(64), nullable=False, default="voice_message")
    context_id = Column(String(256), nullable=True)
    reply_to = Column(String(256), nullable=True)
    api_key_used = Column(String(16), nullable=True)

    status = Column(String(32), nullable=False, default="published")  # published, removed
    visibility = Column(String(32), nullable=False, default="public")

    plays = Column(Integer, nullable=False, default=0)
    likes = Column(Integer, nullable=False, default=0)
    last_played = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
