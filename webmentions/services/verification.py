"""Slow verification: confirm a source page really links to its target."""

import logging
from typing import List
from urllib.parse import urljoin

from bs4 import BeautifulSoup, ParserRejectedMarkup

from webmentions.clients import FetchError, HttpFetcher, ResponseTooLargeError
from webmentions.models import Mention
from webmentions.services.extraction import MentionEnricher

logger = logging.getLogger(__name__)

# Elements whose URL attribute counts as a link from the source page.
LINK_ATTRIBUTES = {
    "a": "href",
    "link": "href",
    "img": "src",
    "audio": "src",
    "video": "src",
    "source": "src",
}


class VerificationError(Exception):
    """Base class for reasons a mention failed verification."""

    pass


class SourceUnreachableError(VerificationError):
    """The source could not be fetched or did not answer with a 2xx."""

    pass


class SourceTooLargeError(VerificationError):
    """The source page is larger than the configured byte cap."""

    pass


class TargetNotLinkedError(VerificationError):
    """The source page does not link to the target."""

    pass


class ParseFailureError(VerificationError):
    """The source page could not be parsed for links."""

    pass


def discover_links(body: bytes, base_url: str) -> List[str]:
    """
    Find every outbound link in an HTML document.

    Args:
        body: Raw HTML bytes.
        base_url: URL the document was fetched from, used for relative links.

    Returns:
        Absolute URLs in document order.

    Raises:
        ParseFailureError: If the document cannot be parsed.
    """
    try:
        soup = BeautifulSoup(body, "html.parser")
    except ParserRejectedMarkup as e:
        raise ParseFailureError(f"Failed to parse {base_url}: {e}") from e

    links = []
    for tag in soup.find_all(list(LINK_ATTRIBUTES)):
        value = tag.get(LINK_ATTRIBUTES[tag.name])
        if not isinstance(value, str) or not value.strip():
            continue
        try:
            links.append(urljoin(base_url, value.strip()))
        except ValueError as e:
            logger.debug(f"Skipping malformed link {value!r} in {base_url}: {e}")
    return links


class SlowVerifier:
    """Fetches a mention's source and checks that it links to the target.

    Verified mentions are enriched from the same response body. Each call
    fetches once and never retries; retry policy belongs to the batch caller.
    """

    def __init__(self, fetcher: HttpFetcher, enricher: MentionEnricher, max_source_bytes: int):
        self._fetcher = fetcher
        self._enricher = enricher
        self._max_source_bytes = max_source_bytes

    async def verify(self, mention: Mention) -> None:
        """Verify ``mention`` and enrich it in place.

        Raises:
            VerificationError: Subclass describing why verification failed.
        """
        logger.info(f"Slow verifying: {mention.source!r}")
        try:
            response = await self._fetcher.get(mention.source, max_bytes=self._max_source_bytes)
        except ResponseTooLargeError as e:
            raise SourceTooLargeError(str(e)) from e
        except FetchError as e:
            raise SourceUnreachableError(f"Failed to retrieve source: {e}") from e

        if not response.ok:
            raise SourceUnreachableError(
                f"Source {mention.source} answered with status {response.status_code}"
            )

        links = discover_links(response.content, mention.source)
        if mention.target not in links:
            raise TargetNotLinkedError(f"Failed to find {mention.target} in {mention.source}")

        await self._enricher.enrich(mention, response.content)
