"""Shared fixtures: temporary SQLite stores, test configs, fake network."""

import io
import os
import tempfile
from typing import Callable, Dict, List

import httpx
import pytest
from PIL import Image

from webmentions.clients import FetchError, SqliteDocumentStore
from webmentions.config import (
    AdminConfig,
    AppConfig,
    FetchConfig,
    LoggingConfig,
    StoreConfig,
    TargetsConfig,
    ThumbnailConfig,
)

ALLOWED_HOST = "bitworking.org"
TARGET = "https://bitworking.org/news/2018/01/webmention-only"


def make_image(width: int, height: int, color=(200, 30, 30), fmt: str = "PNG") -> bytes:
    """Encode a solid-color image of the given size."""
    buffer = io.BytesIO()
    mode = "P" if fmt == "GIF" else "RGB"
    Image.new("RGB", (width, height), color).convert(mode).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeImageFetcher:
    """Serves photo bytes from a dict instead of the network."""

    def __init__(self, images: Dict[str, bytes]):
        self.images = images
        self.requested: List[str] = []

    async def __call__(self, url: str) -> bytes:
        self.requested.append(url)
        if url not in self.images:
            raise FetchError(f"Not a 200 response: 404 ({url})")
        return self.images[url]


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """An AsyncClient whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def temp_db_path():
    """Create a temporary database file for testing."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    yield path
    # Cleanup
    if os.path.exists(path):
        os.remove(path)


@pytest.fixture
async def store(temp_db_path):
    """A SQLite document store in a throwaway database."""
    document_store = SqliteDocumentStore(temp_db_path, namespace="test-namespace")
    yield document_store
    await document_store.close()


@pytest.fixture
def app_config(temp_db_path) -> AppConfig:
    """Configuration pointing at the temporary SQLite database."""
    return AppConfig(
        host="https://webmentions.example.org",
        targets=TargetsConfig(allowed_hosts=(ALLOWED_HOST,)),
        store=StoreConfig(backend="sqlite", namespace="test-namespace", sqlite_path=temp_db_path),
        fetch=FetchConfig(
            timeout_seconds=5,
            max_source_bytes=64 * 1024,
            max_image_bytes=64 * 1024,
            user_agent="webmentions-tests",
        ),
        thumbnail=ThumbnailConfig(size=32),
        admin=AdminConfig(client_id="client-123", admins=("admin@example.com",)),
        logging=LoggingConfig(level="DEBUG"),
        cosmosdb=None,
    )
