"""Public audio API endpoints."""

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Request, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.dependencies import get_content_store, get_gateway_fetcher, require_api_key
from app.errors import NotFoundError, ValidationError
from app.gateways import GatewayFetcher, resolve_gateways
from app.rate_limit import limiter
from app.schemas.audio import (
    AudioMetadataResponse,
    DirectAudioResponse,
    PlayRequest,
    PlayResponse,
    UploadResponse,
)
from app.services.audio import get_audio_service
from app.services.auth import ApiKeyContext
from app.services.content_store import ContentStore
from app.services.upload import AudioUpload, get_upload_service

router = APIRouter(prefix="/api/audio", tags=["Audio"])

FORMAT_MEDIA_TYPES = {
    "mp3": "audio/mpeg",
    "m4a": "audio/mp4",
    "ogg": "audio/ogg",
    "webm": "audio/webm",
    "wav": "audio/wav",
}


@router.get("", response_model=AudioMetadataResponse | DirectAudioResponse)
def get_audio_metadata(
    a: str | None = None,
    cid: str | None = None,
    db: Session = Depends(get_db),
) -> AudioMetadataResponse | DirectAudioResponse:
    """Get audio metadata by permlink (``a``) or by bare CID (``cid``)."""
    if not a and not cid:
        raise HTTPException(status_code=400, detail="Missing permlink or CID parameter")

    service = get_audio_service()
    gateways = get_settings().gateway_config()

    if cid:
        return DirectAudioResponse(**service.get_direct_metadata(cid, gateways))
    return AudioMetadataResponse(**service.get_metadata(db, a, gateways))


@router.get("/stream")
def stream_audio(
    a: str | None = None,
    cid: str | None = None,
    db: Session = Depends(get_db),
    fetcher: GatewayFetcher = Depends(get_gateway_fetcher),
) -> Response:
    """Proxy audio bytes from the first gateway that serves them."""
    if not a and not cid:
        raise HTTPException(status_code=400, detail="Missing permlink or CID parameter")

    service = get_audio_service()
    gateways = get_settings().gateway_config()
    media_type = None

    if cid:
        urls = service.get_direct_metadata(cid, gateways)["gateways"]
    else:
        record = service.find_by_permlink(db, a)
        if not record:
            raise NotFoundError(a)
        urls = resolve_gateways(record, gateways)
        media_type = FORMAT_MEDIA_TYPES.get(record.format)

    result = fetcher.fetch_with_fallback(urls)
    return Response(
        content=result.content,
        media_type=media_type or result.content_type or "application/octet-stream",
        headers={"X-Gateway-Index": str(result.source_index), "Cache-Control": "public, max-age=31536000, immutable"},
    )


@router.post("/play", response_model=PlayResponse)
@limiter.limit(get_settings().PLAY_RATE_LIMIT)
def increment_play_count(request: Request, body: PlayRequest, db: Session = Depends(get_db)) -> PlayResponse:
    """Record one play of a published audio."""
    if not body.permlink:
        raise HTTPException(status_code=400, detail="Missing permlink")

    plays = get_audio_service().increment_plays(db, body.permlink)
    return PlayResponse(success=True, plays=plays)


@router.post("/upload", response_model=UploadResponse, status_code=201)
@limiter.limit(get_settings().UPLOAD_RATE_LIMIT)
def upload_audio(
    request: Request,
    audio: UploadFile | None = File(default=None),
    duration: str | None = Form(default=None),
    format: str | None = Form(default=None),
    codec: str | None = Form(default=None),
    bitrate: str | None = Form(default=None),
    sample_rate: str | None = Form(default=None, alias="sampleRate"),
    channels: str | None = Form(default=None),
    waveform: str | None = Form(default=None),
    title: str | None = Form(default=None),
    description: str | None = Form(default=None),
    tags: str | None = Form(default=None),
    context_type: str | None = Form(default=None),
    context_id: str | None = Form(default=None),
    reply_to: str | None = Form(default=None),
    visibility: str | None = Form(default=None),
    x_user: str | None = Header(default=None),
    api_key: ApiKeyContext = Depends(require_api_key),
    db: Session = Depends(get_db),
    store: ContentStore = Depends(get_content_store),
) -> UploadResponse:
    """Upload an audio clip, pin it to IPFS and create its record."""
    if audio is None:
        raise ValidationError("No audio file provided")

    settings = get_settings()
    # One byte past the limit is enough to reject it
    content = audio.file.read(settings.UPLOAD_MAX_FILE_SIZE + 1)

    record = get_upload_service().upload(
        db,
        store,
        owner=x_user,
        file=AudioUpload(filename=audio.filename or "audio", content=content),
        form={
            "duration": duration,
            "format": format,
            "codec": codec,
            "bitrate": bitrate,
            "sampleRate": sample_rate,
            "channels": channels,
            "waveform": waveform,
            "title": title,
            "description": description,
            "tags": tags,
            "context_type": context_type,
            "context_id": context_id,
            "reply_to": reply_to,
            "visibility": visibility,
        },
        ephemeral=api_key.is_demo,
        api_key_id=api_key.key_id,
    )

    proto = request.headers.get("X-Forwarded-Proto") or (
        "https" if settings.APP_ENV == "production" else request.url.scheme
    )
    base = f"{proto}://{request.headers.get('host', request.url.netloc)}"

    return UploadResponse(
        success=True,
        permlink=record.permlink,
        cid=record.content_id,
        play_url=f"{base}/play?a={record.permlink}",
        api_url=f"{base}/api/audio?a={record.permlink}",
    )
