"""Admin API endpoints: storage overview, moderation, user management."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import require_admin
from app.rate_limit import limiter
from app.schemas.admin import (
    AdminLoginRequest,
    AdminTokenResponse,
    AudioRecordResponse,
    BanRequest,
    CreatorListResponse,
    CreatorResponse,
    CreatorStatsResponse,
    StatsResponse,
)
from app.services.audio import get_audio_service
from app.services.auth import get_auth_service
from app.services.creator import get_creator_service
from app.services.jwt import get_jwt_service

logger = logging.getLogger("pinwave")

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.post("/login", response_model=AdminTokenResponse)
@limiter.limit("5/minute")
def login(request: Request, body: AdminLoginRequest) -> AdminTokenResponse:
    """Exchange the admin password for a JWT."""
    if not get_auth_service().verify_admin_password(body.password):
        logger.warning("Failed admin login from %s", request.client.host if request.client else "unknown")
        raise HTTPException(status_code=401, detail="Invalid password")

    return AdminTokenResponse(success=True, token=get_jwt_service().create_token())


@router.get("/stats", response_model=StatsResponse)
def get_stats(_: str = Depends(require_admin), db: Session = Depends(get_db)) -> StatsResponse:
    """Storage statistics."""
    return StatsResponse(**get_audio_service().get_stats(db))


@router.get("/files", response_model=list[AudioRecordResponse])
def list_files(
    filter: str = "all",
    cid: str | None = None,
    _: str = Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[AudioRecordResponse]:
    """Newest files, optionally filtered by lifecycle bucket or CID."""
    records = get_audio_service().list_files(db, filter_name=filter, cid=cid)
    return [AudioRecordResponse.model_validate(r) for r in records]


@router.delete("/files/{permlink}")
def delete_file(permlink: str, _: str = Depends(require_admin), db: Session = Depends(get_db)) -> dict:
    """Remove a file from public view. The pin is released by the unpin job."""
    get_audio_service().remove(db, permlink)
    return {"success": True, "message": "File deleted"}


@router.get("/users", response_model=CreatorListResponse)
def list_users(
    page: int = 1,
    limit: int = 50,
    search: str | None = None,
    banned: bool | None = None,
    _: str = Depends(require_admin),
    db: Session = Depends(get_db),
) -> CreatorListResponse:
    """List content creators."""
    if page < 1 or limit < 1 or limit > 200:
        raise HTTPException(status_code=400, detail="page must be >= 1 and limit between 1 and 200")

    users, pagination = get_creator_service().get_users(db, page=page, limit=limit, search=search, banned=banned)
    return CreatorListResponse(
        users=[CreatorResponse.model_validate(u) for u in users],
        pagination=pagination,
    )


@router.post("/users/{username}/ban", response_model=CreatorResponse)
def update_ban_status(
    username: str,
    body: BanRequest,
    _: str = Depends(require_admin),
    db: Session = Depends(get_db),
) -> CreatorResponse:
    """Ban or unban a content creator."""
    user = get_creator_service().update_ban_status(db, username, body.banned)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return CreatorResponse.model_validate(user)


@router.get("/users/{username}/stats", response_model=CreatorStatsResponse)
def get_user_stats(username: str, _: str = Depends(require_admin), db: Session = Depends(get_db)) -> CreatorStatsResponse:
    """Upload and play totals for one creator."""
    creators = get_creator_service()
    if not creators.find_by_username(db, username):
        raise HTTPException(status_code=404, detail="User not found")
    return CreatorStatsResponse(**creators.get_user_stats(db, username))
