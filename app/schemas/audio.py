"""Pydantic schemas for audio endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class AudioMetadataResponse(CamelModel):
    permlink: str
    owner: str
    content_id: str
    duration: float
    format: str
    codec: str | None = None
    bitrate: int | None = None
    sample_rate: int | None = None
    channels: int | None = None
    waveform: Any = None
    audio_url: str | None
    audio_url_fallback: str | None
    gateways: list[str]
    ipfs_status: str
    title: str | None = None
    description: str | None = None
    tags: list = []
    plays: int
    likes: int
    created_at: datetime
    last_played: datetime | None = None
    context_type: str
    context_id: str | None = None
    visibility: str


class DirectAudioResponse(CamelModel):
    cid: str
    audio_url: str | None
    audio_url_fallback: str | None
    gateways: list[str]
    format: str
    mode: str


class PlayRequest(BaseModel):
    permlink: str | None = None


class PlayResponse(BaseModel):
    success: bool
    plays: int


class UploadResponse(CamelModel):
    success: bool
    permlink: str
    cid: str
    play_url: str
    api_url: str
