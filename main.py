"""Pinwave - IPFS-backed audio clip hosting."""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import get_settings
from app.database import Database
from app.errors import PinwaveError, StoreError
from app.gateways import GatewayFetcher
from app.rate_limit import limiter
from app.routers import admin_router, audio_router, lifecycle_router
from app.services.content_store import IpfsContentStore

# Logging
logger = logging.getLogger("pinwave")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    for warning in settings.validate():
        logger.warning("Config: %s", warning)

    app.state.database = Database(settings.DATABASE_URL, echo=settings.DEBUG)
    app.state.content_store = IpfsContentStore()
    app.state.gateway_fetcher = GatewayFetcher(
        httpx.Client(follow_redirects=True), timeout=settings.GATEWAY_TIMEOUT_SECONDS
    )
    logger.info("Pinwave started (env=%s, gateways=%s)", settings.APP_ENV, settings.gateway_config())
    yield
    app.state.gateway_fetcher.close()
    app.state.content_store.close()
    app.state.database.dispose()
    logger.info("Pinwave stopped")


app = FastAPI(title="Pinwave", version="0.1.0", lifespan=lifespan)
app.state.limiter = limiter


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


# --- Request size limit middleware ---
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    # Slightly above the max upload to leave room for form fields
    MAX_BODY_SIZE = settings.UPLOAD_MAX_FILE_SIZE + 1024 * 1024

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return JSONResponse(status_code=413, content={"detail": "Request body too large"})
        return await call_next(request)


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PATHS = {"/api/audio/upload", "/api/admin", "/api/lifecycle"}

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        path = request.url.path
        method = request.method
        if method in ("POST", "DELETE") and any(path.startswith(p) for p in self.AUDIT_PATHS):
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s user=%s",
                method,
                path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
                request.headers.get("X-User", "-"),
            )

        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)
app.add_middleware(AuditLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Content-Type", "Authorization", "X-API-Key", "X-User"],
    expose_headers=["X-Gateway-Index"],
)

# API routers
app.include_router(audio_router)
app.include_router(admin_router)
app.include_router(lifecycle_router)


# --- Rate limit error handler ---
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Handle rate limit exceeded."""
    return JSONResponse(status_code=429, content={"detail": "Too many requests, please try again later"})


# --- Domain error handler ---
@app.exception_handler(PinwaveError)
async def domain_error_handler(request: Request, exc: PinwaveError) -> Response:
    """Map domain errors to stable responses. Internal causes stay in the logs."""
    if isinstance(exc, StoreError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/health")
def health() -> dict:
    """Health check."""
    return {"status": "ok", "timestamp": datetime.utcnow().isoformat()}
