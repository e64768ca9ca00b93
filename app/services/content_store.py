"""IPFS content store client (pin only; nodes are operated elsewhere)."""

import logging
from typing import Protocol

import httpx

from app.config import get_settings
from app.errors import StoreError

logger = logging.getLogger("pinwave")


class ContentStore(Protocol):
    def pin(self, data: bytes, filename: str = "audio") -> str: ...


class IpfsContentStore:
    """Pins bytes through the IPFS node's HTTP API (``/api/v0/add``)."""

    def __init__(self, api_url: str | None = None, client: httpx.Client | None = None, timeout: float | None = None):
        settings = get_settings()
        self.api_url = (api_url or settings.IPFS_API_URL).rstrip("/")
        self.timeout = settings.PIN_TIMEOUT_SECONDS if timeout is None else timeout
        self._client = client or httpx.Client()

    def pin(self, data: bytes, filename: str = "audio") -> str:
        """Add and pin ``data``. Returns the CID. Raises StoreError on any failure."""
        try:
            response = self._client.post(
                f"{self.api_url}/api/v0/add",
                params={"pin": "true", "cid-version": "0"},
                files={"file": (filename, data, "application/octet-stream")},
                timeout=self.timeout,
            )
            response.raise_for_status()
            cid = response.json()["Hash"]
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.error("IPFS pin failed (%d bytes): %s", len(data), e)
            raise StoreError(f"IPFS pin failed: {e}") from e

        logger.info("Pinned %d bytes to IPFS: %s", len(data), cid)
        return cid

    def close(self) -> None:
        self._client.close()
