"""Bookkeeping for outbound notifications, so a source is not re-notified."""

import hashlib
import logging
from datetime import datetime, timezone
from typing import Optional

from webmentions.clients import DocumentNotFoundError, DocumentStore
from webmentions.models import WEB_MENTION_SENT_KIND, WebMentionSent, format_timestamp

logger = logging.getLogger(__name__)


def sent_key(source: str) -> str:
    # Cosmos DB ids may not contain '/', so URLs are stored under their hash.
    return hashlib.md5(source.encode("utf-8")).hexdigest()


class SentNotificationService:
    def __init__(self, store: DocumentStore):
        self._store = store

    async def last_sent(self, source: str) -> Optional[datetime]:
        """When notifications for ``source`` were last sent, if ever."""
        try:
            document = await self._store.get(WEB_MENTION_SENT_KIND, sent_key(source))
        except DocumentNotFoundError:
            logger.info(f"No notification recorded for source: {source!r}")
            return None
        logger.info(f"Found source: {source!r}")
        return datetime.fromisoformat(document["sent_at"])

    async def record_sent(self, source: str, sent_at: Optional[datetime] = None) -> WebMentionSent:
        record = WebMentionSent(source=source, sent_at=sent_at or datetime.now(timezone.utc))
        await self._store.put(
            WEB_MENTION_SENT_KIND,
            sent_key(source),
            {"source": record.source, "sent_at": format_timestamp(record.sent_at)},
        )
        return record
