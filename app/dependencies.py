"""Request dependencies: API keys, admin auth, and process-owned resources."""

from fastapi import Header, HTTPException, Request

from app.gateways import GatewayFetcher
from app.services.auth import ApiKeyContext, get_auth_service
from app.services.content_store import ContentStore
from app.services.jwt import get_jwt_service


def get_content_store(request: Request) -> ContentStore:
    return request.app.state.content_store


def get_gateway_fetcher(request: Request) -> GatewayFetcher:
    return request.app.state.gateway_fetcher


def require_api_key(
    request: Request,
    x_api_key: str | None = Header(default=None),
) -> ApiKeyContext:
    """Validate the API key from the X-API-Key header or api_key query parameter."""
    api_key = x_api_key or request.query_params.get("api_key")
    if not api_key:
        raise HTTPException(
            status_code=401,
            detail="API key required. Provide it in the X-API-Key header or api_key query parameter",
        )

    context = get_auth_service().check_api_key(api_key)
    if context is None:
        raise HTTPException(status_code=403, detail="Invalid API key")
    return context


def require_admin(request: Request) -> str:
    """Require an admin Bearer token. Returns the token subject."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")

    payload = get_jwt_service().decode_token(auth_header[7:])
    if not payload or payload.get("role") != "admin":
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return payload["sub"]
