"""Upload pipeline: permission check, metadata validation, IPFS pin, record creation.

The order matters. Permission checks and lazy account creation run before the
pin, because pinning is expensive and cannot be undone, and no record is
written without a confirmed CID.

Declared metadata is trusted beyond presence and type checks; nothing here
probes the audio itself.
"""

import json
import logging
import math
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.errors import PermissionDeniedError, PermlinkExhaustedError, StoreError, ValidationError
from app.lifecycle import initial_lifecycle
from app.models.audio import AudioRecord
from app.services.content_store import ContentStore
from app.services.creator import get_creator_service

logger = logging.getLogger("pinwave")

ANONYMOUS = "anonymous"
PERMLINK_ALPHABET = string.ascii_lowercase + string.digits
PERMLINK_LENGTH = 8
REQUIRED_FIELDS = ("duration", "format")
# Integer columns are 32-bit on every supported backend
MAX_COUNT = 2**31 - 1
VISIBILITIES = ("public", "unlisted", "private")


def generate_permlink() -> str:
    return "".join(secrets.choice(PERMLINK_ALPHABET) for _ in range(PERMLINK_LENGTH))


def _parse_number(name: str, value: Any, cast) -> Any:
    if value is None or value == "":
        return None
    try:
        number = cast(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"Invalid value for '{name}': {value!r}") from None
    if isinstance(number, float) and not math.isfinite(number):
        raise ValidationError(f"Invalid value for '{name}': must be a finite number")
    return number


def _parse_count(name: str, value: Any) -> int | None:
    number = _parse_number(name, value, int)
    if number is not None and not 0 < number <= MAX_COUNT:
        raise ValidationError(f"Invalid value for '{name}': must be between 1 and {MAX_COUNT}")
    return number


def _is_permlink_conflict(error: IntegrityError) -> bool:
    return "permlink" in str(error.orig).lower()


def _parse_json(name: str, value: Any, default: Any) -> Any:
    if value is None or value == "":
        return default
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        logger.warning("Ignoring unparseable %s: %.80s", name, value)
        return default


@dataclass
class DeclaredMetadata:
    """Client-declared audio metadata. Only duration and format are required."""

    duration: float
    format: str
    codec: str | None = None
    bitrate: int | None = None
    sample_rate: int | None = None
    channels: int | None = None
    waveform: Any = None
    title: str | None = None
    description: str | None = None
    tags: list = field(default_factory=list)
    context_type: str = "voice_message"
    context_id: str | None = None
    reply_to: str | None = None
    visibility: str = "public"

    @classmethod
    def from_form(cls, form: dict[str, Any]) -> "DeclaredMetadata":
        """Build from raw form values. Raises ValidationError on missing or malformed fields."""
        missing = [name for name in REQUIRED_FIELDS if form.get(name) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required metadata: {', '.join(missing)}")

        duration = _parse_number("duration", form["duration"], float)
        if duration <= 0:
            raise ValidationError("Invalid value for 'duration': must be positive")

        tags = _parse_json("tags", form.get("tags"), [])
        if not isinstance(tags, list):
            tags = [tags]

        visibility = (form.get("visibility") or "public").lower()
        if visibility not in VISIBILITIES:
            raise ValidationError(f"Invalid value for 'visibility'. Allowed: {', '.join(VISIBILITIES)}")

        return cls(
            duration=duration,
            format=str(form["format"]).lower(),
            codec=form.get("codec") or None,
            bitrate=_parse_count("bitrate", form.get("bitrate")),
            sample_rate=_parse_count("sampleRate", form.get("sampleRate")),
            channels=_parse_count("channels", form.get("channels")),
            waveform=_parse_json("waveform", form.get("waveform"), None),
            title=form.get("title") or None,
            description=form.get("description") or None,
            tags=tags,
            context_type=form.get("context_type") or "voice_message",
            context_id=form.get("context_id") or None,
            reply_to=form.get("reply_to") or None,
            visibility=visibility,
        )


@dataclass
class AudioUpload:
    """Raw upload as received from the transport layer."""

    filename: str
    content: bytes


class UploadService:
    """Orchestrates an audio upload end to end."""

    def validate_file(self, filename: str, size: int) -> None:
        """Check extension and size against configured limits."""
        settings = get_settings()
        ext = Path(filename).suffix.lower().lstrip(".")
        if ext not in settings.UPLOAD_ALLOWED_FORMATS:
            raise ValidationError(f"Invalid file format. Allowed: {', '.join(settings.UPLOAD_ALLOWED_FORMATS)}")
        if size == 0:
            raise ValidationError("Audio file is empty")
        if size > settings.UPLOAD_MAX_FILE_SIZE:
            raise ValidationError(
                f"File too large ({size // (1024 * 1024)}MB). "
                f"Maximum: {settings.UPLOAD_MAX_FILE_SIZE // (1024 * 1024)}MB"
            )

    def check_owner(self, db: Session, owner: str | None) -> None:
        """Require a real owner who is allowed to upload; create unknown owners lazily."""
        if not owner or owner == ANONYMOUS:
            raise ValidationError("Username required")

        creators = get_creator_service()
        check = creators.can_user_upload(db, owner)
        if not check.allowed:
            logger.info("Upload rejected for %s: %s", owner, check.reason)
            raise PermissionDeniedError(check.reason or "Upload not allowed")
        if check.is_new_user:
            creators.create(db, owner)

    def upload(
        self,
        db: Session,
        store: ContentStore,
        owner: str | None,
        file: AudioUpload,
        form: dict[str, Any],
        ephemeral: bool = False,
        api_key_id: str | None = None,
        now: datetime | None = None,
    ) -> AudioRecord:
        """Run the pipeline and return the persisted record."""
        self.check_owner(db, owner)
        metadata = DeclaredMetadata.from_form(form)
        self.validate_file(file.filename, len(file.content))

        content_id = store.pin(file.content, file.filename)

        return self.create_record(
            db,
            owner=owner,
            content_id=content_id,
            metadata=metadata,
            original_filename=file.filename,
            size_bytes=len(file.content),
            ephemeral=ephemeral,
            api_key_id=api_key_id,
            now=now,
        )

    def create_record(
        self,
        db: Session,
        owner: str,
        content_id: str,
        metadata: DeclaredMetadata,
        original_filename: str | None,
        size_bytes: int,
        ephemeral: bool = False,
        api_key_id: str | None = None,
        now: datetime | None = None,
    ) -> AudioRecord:
        """Persist a record for pinned content, retrying on permlink collisions."""
        settings = get_settings()
        now = now or datetime.utcnow()
        lifecycle = initial_lifecycle(
            ephemeral,
            now,
            retention=timedelta(hours=settings.DEMO_RETENTION_HOURS),
            migration_delay=timedelta(hours=settings.MIGRATION_DELAY_HOURS),
        )

        for attempt in range(1, settings.PERMLINK_MAX_ATTEMPTS + 1):
            record = AudioRecord(
                permlink=generate_permlink(),
                owner=owner,
                content_id=content_id,
                pinned_nodes=["local"],
                ipfs_status=lifecycle.ipfs_status.value,
                migration_status=lifecycle.migration_status.value,
                migration_queued_at=lifecycle.migration_queued_at,
                pin_until=lifecycle.pin_until,
                original_filename=original_filename,
                format=metadata.format,
                codec=metadata.codec,
                size_bytes=size_bytes,
                duration=metadata.duration,
                bitrate=metadata.bitrate,
                sample_rate=metadata.sample_rate,
                channels=metadata.channels,
                waveform=metadata.waveform,
                title=metadata.title,
                description=metadata.description,
                tags=metadata.tags,
                context_type=metadata.context_type,
                context_id=metadata.context_id,
                reply_to=metadata.reply_to,
                api_key_used=api_key_id,
                status="published",
                visibility=metadata.visibility,
                plays=0,
                likes=0,
                created_at=now,
                updated_at=now,
            )
            db.add(record)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                if not _is_permlink_conflict(e):
                    logger.error("Failed to persist record for cid %s: %s", content_id, e.orig)
                    raise StoreError(str(e.orig)) from e
                logger.warning("Permlink collision on %s (attempt %d)", record.permlink, attempt)
                continue
            except (SQLAlchemyError, OverflowError, ValueError) as e:
                db.rollback()
                logger.error("Failed to persist record for cid %s: %s", content_id, e)
                raise StoreError(str(e)) from e

            db.refresh(record)
            logger.info("Audio created: %s (cid=%s, owner=%s, ephemeral=%s)", record.permlink, content_id, owner, ephemeral)
            return record

        logger.error("Permlink space exhausted after %d attempts; cid %s is pinned without a record", attempt, content_id)
        raise PermlinkExhaustedError(f"no free permlink after {settings.PERMLINK_MAX_ATTEMPTS} attempts")


_upload_service: UploadService | None = None


def get_upload_service() -> UploadService:
    """Get singleton upload service instance."""
    global _upload_service
    if _upload_service is None:
        _upload_service = UploadService()
    return _upload_service
