"""Admin and API key authentication."""

import hmac
from dataclasses import dataclass

import bcrypt

from app.config import get_settings


@dataclass
class ApiKeyContext:
    """Who is calling the upload API."""

    key_id: str
    is_demo: bool = False


class AuthService:
    """Checks admin passwords and upload API keys."""

    def verify_admin_password(self, password: str) -> bool:
        """Check ``password`` against the configured bcrypt hash. False if none is configured."""
        password_hash = get_settings().ADMIN_PASSWORD_HASH
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False

    def check_api_key(self, api_key: str) -> ApiKeyContext | None:
        """Resolve an API key. Returns None for unknown keys.

        The demo key is always accepted and marks uploads as ephemeral.
        """
        settings = get_settings()
        if settings.DEMO_API_KEY and hmac.compare_digest(api_key.encode(), settings.DEMO_API_KEY.encode()):
            return ApiKeyContext(key_id=api_key[:8], is_demo=True)
        if any(hmac.compare_digest(api_key.encode(), key.encode()) for key in settings.API_KEYS):
            return ApiKeyContext(key_id=api_key[:8])
        return None


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
