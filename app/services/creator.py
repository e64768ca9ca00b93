"""Content creator service: upload permissions, lazy account creation, moderation."""

import logging
import math
from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.audio import AudioRecord
from app.models.creator import ContentCreator

logger = logging.getLogger("pinwave")

NEW_USER = "new_user"


@dataclass
class UploadCheck:
    """Result of an upload permission check."""

    allowed: bool
    reason: str | None = None
    user: ContentCreator | None = None

    @property
    def is_new_user(self) -> bool:
        return self.allowed and self.reason == NEW_USER


class CreatorService:
    """Handles creator lookup, creation and upload permissions."""

    def find_by_username(self, db: Session, username: str) -> ContentCreator | None:
        return db.query(ContentCreator).filter(ContentCreator.username == username).first()

    def create(self, db: Session, username: str) -> ContentCreator:
        """Create a creator with default permissions.

        Two first uploads by the same user can race here; the loser gets the
        winner's row.
        """
        creator = ContentCreator(username=username, banned=False, can_upload=True, verified=False)
        db.add(creator)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            existing = self.find_by_username(db, username)
            if existing is None:
                raise
            return existing
        db.refresh(creator)
        logger.info("Created new content creator: %s", username)
        return creator

    def can_user_upload(self, db: Session, username: str) -> UploadCheck:
        """Check whether ``username`` may upload. Unknown users are allowed."""
        user = self.find_by_username(db, username)
        if not user:
            return UploadCheck(allowed=True, reason=NEW_USER)
        if user.banned:
            return UploadCheck(allowed=False, reason="User is banned from uploading", user=user)
        if not user.can_upload:
            return UploadCheck(allowed=False, reason="User does not have upload permissions", user=user)
        return UploadCheck(allowed=True, user=user)

    def update_ban_status(self, db: Session, username: str, banned: bool) -> ContentCreator | None:
        """Ban or unban a user. Banning also revokes upload permission."""
        user = self.find_by_username(db, username)
        if not user:
            return None
        user.banned = banned
        user.can_upload = not banned
        db.commit()
        db.refresh(user)
        logger.info("Updated ban status for %s: banned=%s", username, banned)
        return user

    def get_users(
        self,
        db: Session,
        page: int = 1,
        limit: int = 50,
        search: str | None = None,
        banned: bool | None = None,
    ) -> tuple[list[ContentCreator], dict]:
        """Page through creators, newest first. Returns (users, pagination)."""
        query = db.query(ContentCreator)
        if search:
            query = query.filter(ContentCreator.username.ilike(f"%{search}%"))
        if banned is not None:
            query = query.filter(ContentCreator.banned == banned)

        total = query.count()
        users = query.order_by(ContentCreator.joined.desc()).offset((page - 1) * limit).limit(limit).all()
        return users, {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        }

    def get_user_stats(self, db: Session, username: str) -> dict:
        """Upload count, total plays and last upload time for a user."""
        total_uploads, total_plays, last_upload = (
            db.query(
                func.count(AudioRecord.id),
                func.coalesce(func.sum(AudioRecord.plays), 0),
                func.max(AudioRecord.created_at),
            )
            .filter(AudioRecord.owner == username)
            .one()
        )
        return {
            "total_uploads": total_uploads,
            "total_plays": int(total_plays),
            "last_upload": last_upload,
        }


_creator_service: CreatorService | None = None


def get_creator_service() -> CreatorService:
    """Get singleton creator service instance."""
    global _creator_service
    if _creator_service is None:
        _creator_service = CreatorService()
    return _creator_service
