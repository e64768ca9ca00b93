"""Gateway ordering and sequential fetch-with-fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

from app.errors import ContentUnavailableError
from app.lifecycle import IpfsStatus

if TYPE_CHECKING:
    from app.models.audio import AudioRecord

logger = logging.getLogger("pinwave")

DEFAULT_FETCH_TIMEOUT = 10.0


@dataclass(frozen=True)
class GatewayConfig:
    """Configured gateway base URLs."""

    local: str | None
    primary: str
    fallbacks: tuple[str, ...] = field(default_factory=tuple)

    def public(self) -> list[str]:
        return [base for base in (self.primary, *self.fallbacks) if base]


@dataclass
class FetchResult:
    """Bytes returned by the first gateway that answered."""

    content: bytes
    source_index: int
    url: str
    content_type: str | None = None


def gateway_url(base: str, cid: str) -> str:
    return f"{base.rstrip('/')}/ipfs/{cid}"


def direct_gateways(cid: str, config: GatewayConfig) -> list[str]:
    """Candidates for a bare CID: public gateways only."""
    return [gateway_url(base, cid) for base in config.public()]


def resolve_gateways(record: AudioRecord, config: GatewayConfig) -> list[str]:
    """Candidates for a stored record, ordered by likelihood of a fast hit.

    A record still pinned on our own node tries the local gateway first. Once it
    has migrated or expired the local node is assumed not to hold it.
    """
    bases = config.public()
    if record.ipfs_status == IpfsStatus.PINNED_LOCAL and config.local:
        bases = [config.local, *bases]
    return [gateway_url(base, record.content_id) for base in bases]


class GatewayFetcher:
    """Fetches content from an ordered list of gateway URLs, one at a time."""

    def __init__(self, client: httpx.Client | None = None, timeout: float = DEFAULT_FETCH_TIMEOUT) -> None:
        self._client = client or httpx.Client(follow_redirects=True)
        self.timeout = timeout

    def fetch_with_fallback(self, urls: list[str], timeout: float | None = None) -> FetchResult:
        """Return the first successful response; stop issuing requests after it.

        Raises ContentUnavailableError once every candidate has failed.
        """
        timeout = self.timeout if timeout is None else timeout
        attempts: list[tuple[str, str]] = []

        for index, url in enumerate(urls):
            logger.debug("Trying gateway %d/%d: %s", index + 1, len(urls), url)
            try:
                response = self._client.get(url, timeout=timeout)
                response.raise_for_status()
            except httpx.TimeoutException:
                reason = f"timed out after {timeout}s"
            except httpx.HTTPStatusError as e:
                reason = f"HTTP {e.response.status_code}"
            except httpx.HTTPError as e:
                reason = f"{type(e).__name__}: {e}"
            else:
                if index > 0:
                    logger.info("Served %s from fallback gateway %d", url, index)
                return FetchResult(
                    content=response.content,
                    source_index=index,
                    url=url,
                    content_type=response.headers.get("content-type"),
                )

            logger.warning("Gateway %d/%d failed for %s: %s", index + 1, len(urls), url, reason)
            attempts.append((url, reason))

        logger.error("All %d gateways failed: %s", len(urls), attempts)
        raise ContentUnavailableError(attempts)

    def close(self) -> None:
        self._client.close()
