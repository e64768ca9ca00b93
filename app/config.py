"""Configuration settings for Pinwave."""

import os
import secrets
from functools import lru_cache

from dotenv import load_dotenv

from app.gateways import GatewayConfig

load_dotenv()


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./pinwave.db")

    # JWT (admin sessions)
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", secrets.token_urlsafe(32))
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRE_MINUTES: int = int(os.getenv("JWT_EXPIRE_MINUTES", "480"))
    ADMIN_PASSWORD_HASH: str = os.getenv("ADMIN_PASSWORD_HASH", "")

    # API keys
    API_KEYS: list[str] = _split(os.getenv("API_KEYS", ""))
    DEMO_API_KEY: str = os.getenv("DEMO_API_KEY", "")

    # IPFS
    IPFS_API_URL: str = os.getenv("IPFS_API_URL", "http://localhost:5001")
    IPFS_LOCAL_GATEWAY: str = os.getenv("IPFS_LOCAL_GATEWAY", "")
    IPFS_PRIMARY_GATEWAY: str = os.getenv("IPFS_PRIMARY_GATEWAY", "https://ipfs.io")
    IPFS_FALLBACK_GATEWAYS: list[str] = _split(
        os.getenv("IPFS_FALLBACK_GATEWAYS", "https://dweb.link,https://cloudflare-ipfs.com")
    )
    GATEWAY_TIMEOUT_SECONDS: float = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10"))
    PIN_TIMEOUT_SECONDS: float = float(os.getenv("PIN_TIMEOUT_SECONDS", "60"))

    # Lifecycle
    DEMO_RETENTION_HOURS: int = int(os.getenv("DEMO_RETENTION_HOURS", "24"))
    MIGRATION_DELAY_HOURS: int = int(os.getenv("MIGRATION_DELAY_HOURS", "24"))
    PERMLINK_MAX_ATTEMPTS: int = int(os.getenv("PERMLINK_MAX_ATTEMPTS", "5"))

    # Upload
    UPLOAD_ALLOWED_FORMATS: list[str] = _split(os.getenv("UPLOAD_ALLOWED_FORMATS", "mp3,m4a,ogg,webm,wav"))
    UPLOAD_MAX_FILE_SIZE: int = int(os.getenv("UPLOAD_MAX_FILE_SIZE", str(50 * 1024 * 1024)))

    # Rate limits
    PLAY_RATE_LIMIT: str = os.getenv("PLAY_RATE_LIMIT", "100/minute")
    UPLOAD_RATE_LIMIT: str = os.getenv("UPLOAD_RATE_LIMIT", "10/minute")

    # Application
    CORS_ORIGINS: list[str] = _split(os.getenv("CORS_ORIGINS", "*"))
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    def gateway_config(self) -> GatewayConfig:
        """Gateway bases in configured order."""
        return GatewayConfig(
            local=self.IPFS_LOCAL_GATEWAY or None,
            primary=self.IPFS_PRIMARY_GATEWAY,
            fallbacks=tuple(self.IPFS_FALLBACK_GATEWAYS),
        )

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if not os.getenv("JWT_SECRET_KEY"):
            errors.append("JWT_SECRET_KEY is not set - using auto-generated key (not persistent across restarts)")
        if not self.ADMIN_PASSWORD_HASH:
            errors.append("ADMIN_PASSWORD_HASH is not set - admin login is disabled")
        if not self.API_KEYS and not self.DEMO_API_KEY:
            errors.append("No API_KEYS configured - uploads will be rejected")
        if not self.IPFS_PRIMARY_GATEWAY:
            errors.append("IPFS_PRIMARY_GATEWAY is empty - public reads will only use fallbacks")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
