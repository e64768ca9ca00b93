"""Content creator (uploading user) model."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.database import Base


class ContentCreator(Base):
    """A user allowed, or not, to upload audio."""

    __tablename__ = "content_creator"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(256), unique=True, nullable=False, index=True)
    banned = Column(Boolean, nullable=False, default=False)
    can_upload = Column(Boolean, nullable=False, default=True)
    verified = Column(Boolean, nullable=False, default=False)
    joined = Column(DateTime, nullable=False, default=datetime.utcnow)
