"""Audio record service: public reads, play tracking, lifecycle queries and moderation."""

import logging
from datetime import datetime

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from app.cid import is_valid_cid
from app.errors import NotFoundError, ValidationError
from app.gateways import GatewayConfig, direct_gateways, resolve_gateways
from app.lifecycle import (
    MIGRATION_SCAN_STATUSES,
    IpfsStatus,
    MigrationStatus,
    apply_migration_status,
    mark_expired,
)
from app.models.audio import AudioRecord

logger = logging.getLogger("pinwave")

PUBLISHED = "published"
REMOVED = "removed"

FILE_FILTERS = {
    "all": None,
    "demo": (AudioRecord.migration_status, MigrationStatus.SKIP.value),
    "skip": (AudioRecord.migration_status, MigrationStatus.SKIP.value),
    "pending": (AudioRecord.migration_status, MigrationStatus.PENDING.value),
    "removed": (AudioRecord.status, REMOVED),
}


def _urls(candidates: list[str]) -> dict:
    return {
        "audio_url": candidates[0] if candidates else None,
        "audio_url_fallback": candidates[1] if len(candidates) > 1 else None,
        "gateways": candidates,
    }


class AudioService:
    """Reads and updates stored audio records."""

    def find_by_permlink(self, db: Session, permlink: str) -> AudioRecord | None:
        """Published record for ``permlink``, or None."""
        return db.query(AudioRecord).filter(AudioRecord.permlink == permlink, AudioRecord.status == PUBLISHED).first()

    def get_any(self, db: Session, permlink: str) -> AudioRecord:
        """Record for ``permlink`` regardless of visibility. Raises NotFoundError."""
        record = db.query(AudioRecord).filter(AudioRecord.permlink == permlink).first()
        if not record:
            raise NotFoundError(permlink)
        return record

    def find_by_content_id(self, db: Session, content_id: str) -> list[AudioRecord]:
        return (
            db.query(AudioRecord)
            .filter(AudioRecord.content_id == content_id)
            .order_by(AudioRecord.created_at, AudioRecord.id)
            .all()
        )

    def get_metadata(self, db: Session, permlink: str, gateways: GatewayConfig) -> dict:
        """Public view of a published record with gateway URLs in priority order."""
        record = self.find_by_permlink(db, permlink)
        if not record:
            raise NotFoundError(permlink)

        return {
            "permlink": record.permlink,
            "owner": record.owner,
            "content_id": record.content_id,
            "duration": record.duration,
            "format": record.format,
            "codec": record.codec,
            "bitrate": record.bitrate,
            "sample_rate": record.sample_rate,
            "channels": record.channels,
            "waveform": record.waveform,
            **_urls(resolve_gateways(record, gateways)),
            "ipfs_status": record.ipfs_status,
            "title": record.title,
            "description": record.description,
            "tags": record.tags,
            "plays": record.plays,
            "likes": record.likes,
            "created_at": record.created_at,
            "last_played": record.last_played,
            "context_type": record.context_type,
            "context_id": record.context_id,
            "visibility": record.visibility,
        }

    def get_direct_metadata(self, cid: str, gateways: GatewayConfig) -> dict:
        """Public gateway URLs for a bare CID. Never touches the database."""
        if not is_valid_cid(cid):
            raise ValidationError("Invalid CID format")
        return {"cid": cid, **_urls(direct_gateways(cid, gateways)), "format": "unknown", "mode": "direct"}

    def increment_plays(self, db: Session, permlink: str, now: datetime | None = None) -> int:
        """Atomically add one play. Returns the new count."""
        now = now or datetime.utcnow()
        result = db.execute(
            update(AudioRecord)
            .where(AudioRecord.permlink == permlink, AudioRecord.status == PUBLISHED)
            .values(plays=AudioRecord.plays + 1, last_played=now)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        if result.rowcount == 0:
            raise NotFoundError(permlink)
        return db.query(AudioRecord.plays).filter(AudioRecord.permlink == permlink).scalar()

    # --- lifecycle queries for external workers ---

    def migration_queue(self, db: Session, limit: int = 50, due_before: datetime | None = None) -> list[AudioRecord]:
        """Records awaiting migration, oldest migration_queued_at first."""
        query = db.query(AudioRecord).filter(
            AudioRecord.migration_status.in_([s.value for s in MIGRATION_SCAN_STATUSES]),
            AudioRecord.status == PUBLISHED,
        )
        if due_before is not None:
            query = query.filter(AudioRecord.migration_queued_at <= due_before)
        return query.order_by(AudioRecord.migration_queued_at.asc(), AudioRecord.id.asc()).limit(limit).all()

    def expired_pins(self, db: Session, now: datetime | None = None, limit: int = 100) -> list[AudioRecord]:
        """Ephemeral records whose pin_until has passed and whose pin is still held."""
        now = now or datetime.utcnow()
        return (
            db.query(AudioRecord)
            .filter(
                AudioRecord.pin_until.is_not(None),
                AudioRecord.pin_until < now,
                AudioRecord.ipfs_status == IpfsStatus.PINNED_LOCAL.value,
            )
            .order_by(AudioRecord.pin_until.asc())
            .limit(limit)
            .all()
        )

    def removed_records(self, db: Session, limit: int = 100) -> list[AudioRecord]:
        """Logically deleted records whose pins an unpin job may release."""
        return (
            db.query(AudioRecord)
            .filter(AudioRecord.status == REMOVED)
            .order_by(AudioRecord.updated_at.asc())
            .limit(limit)
            .all()
        )

    def set_migration_status(
        self, db: Session, permlink: str, target: MigrationStatus, now: datetime | None = None
    ) -> AudioRecord:
        record = self.get_any(db, permlink)
        apply_migration_status(record, target, now or datetime.utcnow())
        db.commit()
        db.refresh(record)
        logger.info("Migration status for %s -> %s (ipfs_status=%s)", permlink, target.value, record.ipfs_status)
        return record

    def expire(self, db: Session, permlink: str, now: datetime | None = None) -> AudioRecord:
        record = self.get_any(db, permlink)
        mark_expired(record, now or datetime.utcnow())
        db.commit()
        db.refresh(record)
        logger.info("Marked %s expired", permlink)
        return record

    # --- moderation ---

    def remove(self, db: Session, permlink: str) -> AudioRecord:
        """Logically delete a record. The content pin is released by a background job."""
        record = self.get_any(db, permlink)
        if record.status != REMOVED:
            record.status = REMOVED
            db.commit()
            db.refresh(record)
            logger.info("Removed %s (cid=%s); pin release pending", permlink, record.content_id)
        return record

    def get_stats(self, db: Session) -> dict:
        total_files = db.query(func.count(AudioRecord.id)).scalar()
        demo_files = (
            db.query(func.count(AudioRecord.id))
            .filter(AudioRecord.migration_status == MigrationStatus.SKIP.value)
            .scalar()
        )
        pending_migration = (
            db.query(func.count(AudioRecord.id))
            .filter(AudioRecord.migration_status == MigrationStatus.PENDING.value)
            .scalar()
        )
        total_size = db.query(func.coalesce(func.sum(AudioRecord.size_bytes), 0)).scalar()
        return {
            "total_files": total_files,
            "demo_files": demo_files,
            "pending_migration": pending_migration,
            "total_size": int(total_size),
        }

    def list_files(self, db: Session, filter_name: str = "all", cid: str | None = None, limit: int = 100):
        if filter_name not in FILE_FILTERS:
            raise ValidationError(f"Unknown filter '{filter_name}'. Allowed: {', '.join(FILE_FILTERS)}")

        query = db.query(AudioRecord)
        condition = FILE_FILTERS[filter_name]
        if condition is not None:
            column, value = condition
            query = query.filter(column == value)
        if cid:
            query = query.filter(AudioRecord.content_id == cid)
        return query.order_by(AudioRecord.created_at.desc()).limit(limit).all()


_audio_service: AudioService | None = None


def get_audio_service() -> AudioService:
    """Get singleton audio service instance."""
    global _audio_service
    if _audio_service is None:
        _audio_service = AudioService()
    return _audio_service
