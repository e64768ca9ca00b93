"""Pytest configuration and fixtures."""

import hashlib
import os
from datetime import datetime

import bcrypt

ADMIN_PASSWORD = "admin-password-123"
API_KEY = "test-api-key-1234"
DEMO_API_KEY = "demo-api-key-5678"

# Settings are read at import time, so the environment must be in place first.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_PASSWORD_HASH"] = bcrypt.hashpw(ADMIN_PASSWORD.encode(), bcrypt.gensalt(rounds=4)).decode()
os.environ["API_KEYS"] = API_KEY
os.environ["DEMO_API_KEY"] = DEMO_API_KEY
os.environ["IPFS_API_URL"] = "http://ipfs.test:5001"
os.environ["IPFS_LOCAL_GATEWAY"] = "http://localhost:8080"
os.environ["IPFS_PRIMARY_GATEWAY"] = "https://ipfs.io"
os.environ["IPFS_FALLBACK_GATEWAYS"] = "https://dweb.link,https://cloudflare-ipfs.com"

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.errors import StoreError  # noqa: E402
from app.models.audio import AudioRecord  # noqa: E402
from app.models.creator import ContentCreator  # noqa: F401, E402

VALID_CID_V0 = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"
VALID_CID_V1 = "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi"


def fake_cid(data: bytes) -> str:
    """Deterministic CIDv0-shaped identifier for test content."""
    alphabet = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
    digest = hashlib.sha256(data).digest() + hashlib.sha256(data[::-1]).digest()
    return "Qm" + "".join(alphabet[b % len(alphabet)] for b in digest[:44])


class FakeContentStore:
    """In-memory content store that records every pin call."""

    def __init__(self) -> None:
        self.pins: list[bytes] = []
        self.fail = False

    def pin(self, data: bytes, filename: str = "audio") -> str:
        if self.fail:
            raise StoreError("IPFS pin failed: node unreachable")
        self.pins.append(data)
        return fake_cid(data)


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="content_store")
def content_store_fixture() -> FakeContentStore:
    return FakeContentStore()


@pytest.fixture(name="gateway_requests")
def gateway_requests_fixture() -> list[str]:
    """URLs requested from gateways during a test."""
    return []


@pytest.fixture(name="gateway_responses")
def gateway_responses_fixture() -> dict[str, int]:
    """Status code per gateway host. Unlisted hosts answer 200."""
    return {}


@pytest.fixture(name="gateway_fetcher")
def gateway_fetcher_fixture(gateway_requests: list[str], gateway_responses: dict[str, int]):
    from app.gateways import GatewayFetcher

    def handler(request: httpx.Request) -> httpx.Response:
        gateway_requests.append(str(request.url))
        status = gateway_responses.get(request.url.host, 200)
        if status == 200:
            return httpx.Response(200, content=b"ID3audio-bytes", headers={"content-type": "audio/mpeg"})
        return httpx.Response(status)

    fetcher = GatewayFetcher(httpx.Client(transport=httpx.MockTransport(handler)), timeout=1.0)
    yield fetcher
    fetcher.close()


@pytest.fixture(name="client")
def client_fixture(db_session: Session, content_store: FakeContentStore, gateway_fetcher):
    """Create a test client with overridden resources and disabled rate limiting."""
    from app.dependencies import get_content_store, get_gateway_fetcher
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_content_store] = lambda: content_store
    app.dependency_overrides[get_gateway_fetcher] = lambda: gateway_fetcher
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="admin_headers")
def admin_headers_fixture() -> dict:
    from app.services.jwt import get_jwt_service

    return {"Authorization": f"Bearer {get_jwt_service().create_token()}"}


@pytest.fixture(name="make_record")
def make_record_fixture(db_session: Session):
    """Insert an AudioRecord directly, bypassing the upload pipeline."""
    counter = iter(range(1, 10_000))

    def _make(**overrides) -> AudioRecord:
        n = next(counter)
        now = datetime.utcnow()
        fields = {
            "permlink": f"rec{n:05d}",
            "owner": "alice",
            "content_id": VALID_CID_V0,
            "pinned_nodes": ["local"],
            "ipfs_status": "pinned_local",
            "migration_status": "pending",
            "migration_queued_at": now,
            "format": "mp3",
            "duration": 12.5,
            "size_bytes": 2048,
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        record = AudioRecord(**fields)
        db_session.add(record)
        db_session.commit()
        db_session.refresh(record)
        return record

    return _make


@pytest.fixture(name="api_headers")
def api_headers_fixture() -> dict:
    return {"X-API-Key": API_KEY, "X-User": "alice"}


@pytest.fixture(name="demo_headers")
def demo_headers_fixture() -> dict:
    return {"X-API-Key": DEMO_API_KEY, "X-User": "demo-visitor"}
