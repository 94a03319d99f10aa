"""Bounded HTTP GET used for source pages and author photos."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when a resource cannot be retrieved."""

    pass


class ResponseTooLargeError(FetchError):
    """Raised when a response body exceeds the configured byte cap."""

    pass


@dataclass(frozen=True)
class FetchResponse:
    """Status and body of a completed fetch."""

    status_code: int
    content: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpFetcher:
    """Fetches exactly one resource per call, never following redirects.

    The body is streamed and the read is aborted as soon as it grows past
    ``max_bytes``, so a hostile page cannot exhaust memory. ``timeout_seconds``
    is a deadline for the whole fetch, body included.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout_seconds: float = 30.0,
        max_bytes: int = 1024 * 1024,
    ):
        self._client = client
        self._timeout = timeout_seconds
        self._max_bytes = max_bytes

    async def get(self, url: str, max_bytes: Optional[int] = None) -> FetchResponse:
        """GET ``url`` and return its status and body.

        Raises:
            ResponseTooLargeError: If the body is larger than the cap.
            FetchError: On timeouts and transport failures.
        """
        limit = self._max_bytes if max_bytes is None else max_bytes
        try:
            # httpx timeouts apply per operation; the deadline covers the whole fetch.
            async with asyncio.timeout(self._timeout):
                async with self._client.stream(
                    "GET",
                    url,
                    timeout=self._timeout,
                    follow_redirects=False,
                ) as response:
                    body = bytearray()
                    async for chunk in response.aiter_bytes():
                        body.extend(chunk)
                        if len(body) > limit:
                            raise ResponseTooLargeError(f"Response from {url} exceeds {limit} bytes")
                    return FetchResponse(status_code=response.status_code, content=bytes(body))
        except TimeoutError as e:
            raise FetchError(f"Timed out retrieving {url} after {self._timeout}s") from e
        except httpx.TimeoutException as e:
            raise FetchError(f"Timed out retrieving {url}: {e}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(f"Failed to retrieve {url}: {e}") from e


def create_http_client(user_agent: str, timeout_seconds: float) -> httpx.AsyncClient:
    """Create the shared async client used by every fetch."""
    return httpx.AsyncClient(
        headers={"User-Agent": user_agent},
        timeout=timeout_seconds,
        follow_redirects=False,
    )
