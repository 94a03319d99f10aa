"""Author thumbnails: fetch, resize, and store content-addressed PNGs."""

import io
import logging
from typing import Awaitable, Callable, Optional, Tuple

from PIL import Image

from webmentions.clients import DocumentStore, FetchError, HttpFetcher, StoreError
from webmentions.models import THUMBNAIL_KIND, Thumbnail

logger = logging.getLogger(__name__)

DEFAULT_THUMBNAIL_SIZE = 32

ImageFetcher = Callable[[str], Awaitable[bytes]]


class ThumbnailError(Exception):
    """Raised when an image cannot be decoded, resized or encoded."""

    pass


def make_image_fetcher(fetcher: HttpFetcher, max_bytes: int) -> ImageFetcher:
    """Build an ImageFetcher that downloads photos through ``fetcher``."""

    async def fetch_image(url: str) -> bytes:
        response = await fetcher.get(url, max_bytes=max_bytes)
        if response.status_code != 200:
            raise FetchError(f"Not a 200 response: {response.status_code}")
        return response.content

    return fetch_image


def thumbnail_dimensions(width: int, height: int, size: int) -> Tuple[int, int]:
    """Scale so the longer side becomes ``size`` and the other stays proportional."""
    if width > height:
        return size, max(1, round(height * size / width))
    return max(1, round(width * size / height)), size


def resize_to_thumbnail(image_bytes: bytes, size: int = DEFAULT_THUMBNAIL_SIZE) -> bytes:
    """
    Decode an image and re-encode it as a small PNG.

    Args:
        image_bytes: PNG, JPEG or GIF bytes.
        size: Length of the longer side of the thumbnail in pixels.

    Returns:
        PNG bytes written with maximum compression.

    Raises:
        ThumbnailError: If the image cannot be decoded or encoded.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            img.load()
            if img.mode not in ("RGB", "RGBA", "L", "LA"):
                img = img.convert("RGBA")
            resized = img.resize(
                thumbnail_dimensions(img.width, img.height, size),
                Image.Resampling.LANCZOS,
            )
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ThumbnailError(f"Failed to decode photo: {e}") from e

    buffer = io.BytesIO()
    try:
        resized.save(buffer, format="PNG", optimize=True, compress_level=9)
    except (OSError, ValueError) as e:
        raise ThumbnailError(f"Failed to encode photo: {e}") from e
    return buffer.getvalue()


class ThumbnailService:
    """Creates and serves content-addressed author thumbnails.

    Thumbnails are keyed by the hash of their PNG bytes, so authors sharing a
    photo share one stored blob and re-storing identical bytes is harmless.
    """

    def __init__(
        self,
        store: DocumentStore,
        image_fetcher: ImageFetcher,
        size: int = DEFAULT_THUMBNAIL_SIZE,
    ):
        self._store = store
        self._fetch_image = image_fetcher
        self._size = size

    async def create_thumbnail(self, photo_url: str) -> Optional[str]:
        """Fetch and store a thumbnail for ``photo_url``.

        Returns:
            The thumbnail id, or None if any step failed.
        """
        try:
            image_bytes = await self._fetch_image(photo_url)
        except FetchError as e:
            logger.info(f"Failed to retrieve photo {photo_url}: {e}")
            return None

        try:
            png = resize_to_thumbnail(image_bytes, self._size)
        except ThumbnailError as e:
            logger.info(f"{e} ({photo_url})")
            return None

        thumbnail = Thumbnail.from_png(png)
        try:
            await self._store.put(THUMBNAIL_KIND, thumbnail.id, thumbnail.to_document())
        except StoreError as e:
            logger.error(f"Failed to write thumbnail {thumbnail.id}: {e}")
            return None

        logger.debug(f"Stored thumbnail {thumbnail.id} for {photo_url}")
        return thumbnail.id

    async def get_thumbnail(self, thumbnail_id: str) -> bytes:
        """Return the PNG bytes of a stored thumbnail.

        Raises:
            DocumentNotFoundError: If no thumbnail has that id.
        """
        document = await self._store.get(THUMBNAIL_KIND, thumbnail_id)
        return Thumbnail.from_document(thumbnail_id, document).png
