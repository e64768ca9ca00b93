"""Pydantic schemas for admin and lifecycle endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.lifecycle import MigrationStatus


class AdminLoginRequest(BaseModel):
    password: str


class AdminTokenResponse(BaseModel):
    success: bool
    token: str


class StatsResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_files: int
    demo_files: int
    pending_migration: int
    total_size: int


class AudioRecordResponse(BaseModel):
    """Full stored record, lifecycle fields included."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    permlink: str
    owner: str
    content_id: str
    pinned_nodes: list[str]
    ipfs_status: str
    migration_status: str
    migration_queued_at: datetime | None
    migration_completed_at: datetime | None
    pin_until: datetime | None
    original_filename: str | None
    format: str
    size_bytes: int
    duration: float
    title: str | None
    status: str
    visibility: str
    plays: int
    api_key_used: str | None
    created_at: datetime
    updated_at: datetime


class MigrationUpdateRequest(BaseModel):
    status: MigrationStatus


class CreatorResponse(BaseModel):
    id: int
    username: str
    banned: bool
    can_upload: bool
    verified: bool
    joined: datetime

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class CreatorListResponse(BaseModel):
    users: list[CreatorResponse]
    pagination: Pagination


class BanRequest(BaseModel):
    banned: bool


class CreatorStatsResponse(BaseModel):
    total_uploads: int
    total_plays: int
    last_upload: datetime | None
