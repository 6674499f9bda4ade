"""
Rotation Data Proxy - Document Fetcher

Thin async wrapper over httpx. Returns (status, body) for any response and
raises FetchError only for transport failures. Status codes are left to
the caller; nothing is retried.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from config.settings import Config, get_config
from modules.exceptions import FetchError

fetch_logger = logging.getLogger("rotation.fetcher")


@dataclass
class FetchResult:
    """Raw upstream response."""
    url: str
    status: int
    content: bytes
    encoding: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding or 'utf-8', errors='replace')

    def json(self):
        """Decoded JSON body. Raises ValueError on malformed JSON."""
        return json.loads(self.text)


class DocumentFetcher:
    """
    One fetcher per request; use as an async context manager.

    Args:
        user_agent: Identifying client header sent with every request
        timeout: Seconds per request (connect + read)
        transport: Optional httpx transport (tests pass a MockTransport)
    """

    def __init__(self, user_agent: str, timeout: float,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.user_agent = user_agent
        self.timeout = timeout
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_config(cls, config: Optional[Config] = None,
                    transport: Optional[httpx.AsyncBaseTransport] = None) -> "DocumentFetcher":
        config = config or get_config()
        return cls(
            user_agent=config.fetch.user_agent,
            timeout=config.fetch.timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "DocumentFetcher":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers={
                "User-Agent": self.user_agent,
                "Accept": "application/json, text/html, application/xml, */*",
                "Accept-Language": "en-US,en;q=0.9",
            },
            transport=self.transport,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str, headers: Optional[dict] = None) -> FetchResult:
        """GET ``url``. Raises FetchError on timeout or connection failure."""
        if self._client is None:
            raise RuntimeError("DocumentFetcher used outside 'async with'")

        try:
            response = await self._client.get(url, headers=headers)
        except httpx.TimeoutException:
            fetch_logger.warning(f"Timed out after {self.timeout}s: {url}")
            raise FetchError(url, "timeout")
        except httpx.HTTPError as e:
            fetch_logger.warning(f"Request failed: {url}: {e}")
            raise FetchError(url, str(e) or type(e).__name__)

        fetch_logger.debug(f"{response.status_code} {url} ({len(response.content)} bytes)")
        return FetchResult(
            url=url,
            status=response.status_code,
            content=response.content,
            encoding=response.encoding,
        )
