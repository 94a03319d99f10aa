"""Tests for outbound notification bookkeeping."""

from datetime import datetime, timedelta, timezone

import pytest

from webmentions.models import WEB_MENTION_SENT_KIND
from webmentions.services import SentNotificationService
from webmentions.services.sent_service import sent_key

SOURCE = "https://bitworking.org/news/2018/01/webmention-only"


class TestSentNotificationService:
    """Test recording and reading when a source was last notified."""

    @pytest.mark.asyncio
    async def test_unknown_source_was_never_sent(self, store):
        assert await SentNotificationService(store).last_sent(SOURCE) is None

    @pytest.mark.asyncio
    async def test_record_then_read(self, store):
        service = SentNotificationService(store)
        sent_at = datetime(2018, 1, 13, 5, 0, tzinfo=timezone.utc)

        record = await service.record_sent(SOURCE, sent_at)

        assert record.source == SOURCE
        assert await service.last_sent(SOURCE) == sent_at

    @pytest.mark.asyncio
    async def test_later_record_replaces_earlier(self, store):
        service = SentNotificationService(store)
        first = datetime(2018, 1, 13, tzinfo=timezone.utc)

        await service.record_sent(SOURCE, first)
        await service.record_sent(SOURCE, first + timedelta(days=1))

        assert await service.last_sent(SOURCE) == first + timedelta(days=1)
        assert len(await store.query(WEB_MENTION_SENT_KIND)) == 1

    @pytest.mark.asyncio
    async def test_default_time_is_now(self, store):
        before = datetime.now(timezone.utc)

        record = await SentNotificationService(store).record_sent(SOURCE)

        assert record.sent_at >= before

    def test_key_is_safe_for_document_ids(self):
        key = sent_key(SOURCE)

        assert "/" not in key
        assert key == sent_key(SOURCE)
        assert key != sent_key(SOURCE + "/")
