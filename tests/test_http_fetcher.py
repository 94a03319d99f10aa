"""Tests for the bounded HTTP fetcher."""

import asyncio
import time

import httpx
import pytest

from webmentions.clients import FetchError, HttpFetcher, ResponseTooLargeError
from tests.conftest import mock_client


class TestHttpFetcher:
    """Test status handling, size caps and transport failures."""

    @pytest.mark.asyncio
    async def test_returns_status_and_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url == "https://example.com/post"
            return httpx.Response(200, content=b"<html>hi</html>")

        async with mock_client(handler) as client:
            response = await HttpFetcher(client).get("https://example.com/post")

        assert response.ok
        assert response.status_code == 200
        assert response.content == b"<html>hi</html>"

    @pytest.mark.asyncio
    async def test_non_2xx_is_returned_not_raised(self):
        async with mock_client(lambda request: httpx.Response(404, content=b"gone")) as client:
            response = await HttpFetcher(client).get("https://example.com/missing")

        assert not response.ok
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_redirects_are_not_followed(self):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(302, headers={"Location": "https://elsewhere.example/"})

        async with mock_client(handler) as client:
            response = await HttpFetcher(client).get("https://example.com/moved")

        assert response.status_code == 302
        assert not response.ok
        assert requested == ["https://example.com/moved"]

    @pytest.mark.asyncio
    async def test_body_over_cap_raises(self):
        async with mock_client(lambda request: httpx.Response(200, content=b"x" * 101)) as client:
            fetcher = HttpFetcher(client, max_bytes=100)
            with pytest.raises(ResponseTooLargeError):
                await fetcher.get("https://example.com/big")

    @pytest.mark.asyncio
    async def test_body_at_cap_is_accepted(self):
        async with mock_client(lambda request: httpx.Response(200, content=b"x" * 100)) as client:
            response = await HttpFetcher(client, max_bytes=100).get("https://example.com/exact")

        assert len(response.content) == 100

    @pytest.mark.asyncio
    async def test_per_call_cap_overrides_default(self):
        async with mock_client(lambda request: httpx.Response(200, content=b"x" * 50)) as client:
            fetcher = HttpFetcher(client, max_bytes=1000)
            with pytest.raises(ResponseTooLargeError):
                await fetcher.get("https://example.com/photo.png", max_bytes=10)

    @pytest.mark.asyncio
    async def test_timeout_becomes_fetch_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with mock_client(handler) as client:
            with pytest.raises(FetchError, match="Timed out"):
                await HttpFetcher(client).get("https://slow.example/")

    @pytest.mark.asyncio
    async def test_slow_trickle_body_hits_overall_deadline(self):
        async def trickle():
            for _ in range(20):
                await asyncio.sleep(0.1)
                yield b"x"

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=trickle())

        async with mock_client(handler) as client:
            fetcher = HttpFetcher(client, timeout_seconds=0.5)
            started = time.monotonic()
            with pytest.raises(FetchError, match="Timed out"):
                await fetcher.get("https://slow.example/trickle")

        assert time.monotonic() - started < 1.5

    @pytest.mark.asyncio
    async def test_connection_failure_becomes_fetch_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_client(handler) as client:
            with pytest.raises(FetchError, match="Failed to retrieve"):
                await HttpFetcher(client).get("https://down.example/")

    @pytest.mark.asyncio
    async def test_too_large_is_a_fetch_error(self):
        assert issubclass(ResponseTooLargeError, FetchError)
