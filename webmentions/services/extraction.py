"""Microformats2 extraction for verified mentions.

The extractor walks the parsed items depth-first in document order looking
for h-entry items. It is pure: it returns an ``Enrichment`` describing what
was found, and ``MentionEnricher`` fetches the author thumbnail and merges
the result into the mention once.
"""

import logging
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Iterator, Optional, Sequence

import mf2py

from webmentions.models import Mention, MicroformatDocument, MicroformatItem, document_from_mf2
from webmentions.services.thumbnail_service import ThumbnailService

logger = logging.getLogger(__name__)

# uid prefixes used by syndication bridges, mapped to the service's display name.
BRIDGED_SERVICES = (
    ("tag:twitter", "Twitter"),
    ("tag:facebook", "Facebook"),
    ("tag:instagram", "Instagram"),
    ("tag:github", "GitHub"),
    ("tag:flickr", "Flickr"),
)


@dataclass
class Enrichment:
    """Metadata extracted from a source page. Empty fields were not found."""

    title: str = ""
    published_at: Optional[datetime] = None
    author: str = ""
    author_url: str = ""
    author_photo: str = ""
    url: str = ""

    def merge_missing(self, other: "Enrichment") -> None:
        """Fill fields that are still empty from ``other``."""
        for field in fields(self):
            if not getattr(self, field.name) and getattr(other, field.name):
                setattr(self, field.name, getattr(other, field.name))


def parse_microformats(body: bytes, base_url: str) -> MicroformatDocument:
    """Parse a page with mf2py, resolving relative URLs against ``base_url``."""
    return document_from_mf2(mf2py.parse(doc=body, url=base_url))


def parse_rfc3339(value: str) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp, returning None unless it carries an offset."""
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    return parsed


def bridged_service(uid: str) -> str:
    for prefix, service in BRIDGED_SERVICES:
        if uid.startswith(prefix):
            return service
    return ""


def _walk(items: Sequence[MicroformatItem]) -> Iterator[MicroformatItem]:
    for item in items:
        yield item
        yield from _walk(item.children)


def _entry_title(entry: MicroformatItem) -> str:
    uid = entry.first_string("uid")
    title = bridged_service(uid) or entry.first_string("name") or uid
    if entry.has_property("like-of"):
        title += " Like"
    if entry.has_property("repost-of"):
        title += " Repost"
    return title.strip()


def _author_enrichment(entry: MicroformatItem, document: MicroformatDocument) -> Enrichment:
    authors = entry.items("author")
    if authors:
        author = authors[0]
        return Enrichment(
            author=author.value or author.first_string("name"),
            author_url=document.first_rel("author") or author.first_string("url"),
            author_photo=author.first_string("photo"),
        )
    # p-author given as plain text, without an h-card
    return Enrichment(author=entry.first_string("author"))


def _entry_enrichment(entry: MicroformatItem, document: MicroformatDocument, source: str) -> Enrichment:
    enrichment = _author_enrichment(entry, document)
    enrichment.title = _entry_title(entry)

    for value in entry.strings("published"):
        enrichment.published_at = parse_rfc3339(value)
        if enrichment.published_at:
            break

    url = entry.first_string("url")
    if url and url != source:
        enrichment.url = url
    return enrichment


def extract(document: MicroformatDocument, source: str = "") -> Enrichment:
    """
    Extract mention metadata from parsed microformats.

    Every h-entry is visited, including ones nested as children of other
    items. For each field the first entry that yields a value wins.

    Args:
        document: Parsed microformats of the source page.
        source: URL the page was fetched from.

    Returns:
        Enrichment with whatever could be found.
    """
    result = Enrichment()
    for item in _walk(document.items):
        if item.has_type("h-entry"):
            result.merge_missing(_entry_enrichment(item, document, source))
    return result


def apply_enrichment(mention: Mention, enrichment: Enrichment, thumbnail_id: Optional[str] = None) -> None:
    """Merge an Enrichment into a mention, keeping existing values for gaps."""
    mention.title = enrichment.title or mention.title
    mention.author = enrichment.author or mention.author
    mention.author_url = enrichment.author_url or mention.author_url
    mention.published_at = enrichment.published_at or mention.published_at
    mention.url = enrichment.url or mention.url
    if thumbnail_id:
        mention.thumbnail_id = thumbnail_id


class MentionEnricher:
    """Best-effort enrichment of a verified mention from its source page."""

    def __init__(self, thumbnails: ThumbnailService):
        self._thumbnails = thumbnails

    async def enrich(self, mention: Mention, body: bytes) -> Enrichment:
        try:
            document = parse_microformats(body, mention.source)
        except Exception as e:
            logger.warning(f"Failed to parse microformats from {mention.source}: {e}")
            return Enrichment()

        enrichment = extract(document, mention.source)

        thumbnail_id = None
        if enrichment.author_photo:
            thumbnail_id = await self._thumbnails.create_thumbnail(enrichment.author_photo)
        else:
            logger.info(f"No photo URL found for {mention.source}")

        apply_enrichment(mention, enrichment, thumbnail_id)
        return enrichment
