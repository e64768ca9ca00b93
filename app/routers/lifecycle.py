"""Lifecycle endpoints for the external migration and garbage-collection workers."""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import require_admin
from app.schemas.admin import AudioRecordResponse, MigrationUpdateRequest
from app.services.audio import get_audio_service

router = APIRouter(prefix="/api/lifecycle", tags=["Lifecycle"], dependencies=[Depends(require_admin)])


@router.get("/migration-queue", response_model=list[AudioRecordResponse])
def migration_queue(limit: int = 50, due_only: bool = True, db: Session = Depends(get_db)) -> list[AudioRecordResponse]:
    """Pending and queued records, oldest migration_queued_at first."""
    due_before = datetime.utcnow() if due_only else None
    records = get_audio_service().migration_queue(db, limit=limit, due_before=due_before)
    return [AudioRecordResponse.model_validate(r) for r in records]


@router.post("/{permlink}/migration", response_model=AudioRecordResponse)
def update_migration_status(
    permlink: str, body: MigrationUpdateRequest, db: Session = Depends(get_db)
) -> AudioRecordResponse:
    """Advance a record's migration status."""
    record = get_audio_service().set_migration_status(db, permlink, body.status)
    return AudioRecordResponse.model_validate(record)


@router.get("/expired", response_model=list[AudioRecordResponse])
def expired_pins(limit: int = 100, db: Session = Depends(get_db)) -> list[AudioRecordResponse]:
    """Ephemeral records past pin_until whose pins are still held."""
    return [AudioRecordResponse.model_validate(r) for r in get_audio_service().expired_pins(db, limit=limit)]


@router.post("/{permlink}/expire", response_model=AudioRecordResponse)
def expire_record(permlink: str, db: Session = Depends(get_db)) -> AudioRecordResponse:
    """Record that an expired ephemeral pin has been released."""
    return AudioRecordResponse.model_validate(get_audio_service().expire(db, permlink))


@router.get("/removed", response_model=list[AudioRecordResponse])
def removed_records(limit: int = 100, db: Session = Depends(get_db)) -> list[AudioRecordResponse]:
    """Logically deleted records whose pins can be released."""
    return [AudioRecordResponse.model_validate(r) for r in get_audio_service().removed_records(db, limit=limit)]
