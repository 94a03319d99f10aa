"""Tests for the SQLite document store backend.

These tests verify:
- Keyed get/put and namespacing
- Filtered and ordered queries with pagination
- Transactional read-modify-write with conflict detection
"""

import asyncio
import sqlite3
import uuid

import pytest

from webmentions.clients import (
    DocumentNotFoundError,
    SqliteDocumentStore,
    TransactionConflictError,
)


class TestKeyedAccess:
    """Test get/put behavior."""

    @pytest.mark.asyncio
    async def test_put_then_get(self, store):
        await store.put("Mentions", "abc", {"source": "https://a.example/", "state": "good"})

        document = await store.get("Mentions", "abc")

        assert document == {"source": "https://a.example/", "state": "good"}

    @pytest.mark.asyncio
    async def test_put_overwrites_same_key(self, store):
        await store.put("Mentions", "abc", {"version": 1})
        await store.put("Mentions", "abc", {"version": 2})

        assert await store.get("Mentions", "abc") == {"version": 2}
        assert len(await store.query("Mentions")) == 1

    @pytest.mark.asyncio
    async def test_get_missing_raises_not_found(self, store):
        with pytest.raises(DocumentNotFoundError):
            await store.get("Mentions", "missing")

    @pytest.mark.asyncio
    async def test_kinds_are_separate(self, store):
        await store.put("Mentions", "abc", {"kind": "mention"})
        await store.put("Thumbnail", "abc", {"kind": "thumbnail"})

        assert (await store.get("Mentions", "abc"))["kind"] == "mention"
        assert (await store.get("Thumbnail", "abc"))["kind"] == "thumbnail"

    @pytest.mark.asyncio
    async def test_namespaces_are_isolated(self, temp_db_path):
        async with SqliteDocumentStore(temp_db_path, namespace="blog") as blog, SqliteDocumentStore(
            temp_db_path, namespace="other"
        ) as other:
            await blog.put("Mentions", "abc", {"owner": "blog"})

            with pytest.raises(DocumentNotFoundError):
                await other.get("Mentions", "abc")
            assert await other.query("Mentions") == []

    def test_empty_namespace_rejected(self, temp_db_path):
        with pytest.raises(ValueError, match="namespace"):
            SqliteDocumentStore(temp_db_path, namespace="")


class TestQuery:
    """Test filtered, ordered and paginated queries."""

    @pytest.fixture
    async def populated_store(self, store):
        for index, state in enumerate(["good", "spam", "good", "untriaged", "good"]):
            await store.put(
                "Mentions",
                f"key-{index}",
                {"target": "https://t.example/a", "state": state, "received_at": f"2024-01-0{index + 1}"},
            )
        await store.put(
            "Mentions",
            "other-target",
            {"target": "https://t.example/b", "state": "good", "received_at": "2024-01-09"},
        )
        return store

    @pytest.mark.asyncio
    async def test_filter_on_multiple_fields(self, populated_store):
        results = await populated_store.query(
            "Mentions",
            filters={"target": "https://t.example/a", "state": "good"},
        )

        assert sorted(result.key for result in results) == ["key-0", "key-2", "key-4"]

    @pytest.mark.asyncio
    async def test_order_ascending_and_descending(self, populated_store):
        ascending = await populated_store.query("Mentions", order_by="received_at")
        descending = await populated_store.query("Mentions", order_by="-received_at")

        assert [r.key for r in ascending] == ["key-0", "key-1", "key-2", "key-3", "key-4", "other-target"]
        assert [r.key for r in descending] == list(reversed([r.key for r in ascending]))

    @pytest.mark.asyncio
    async def test_limit_and_offset(self, populated_store):
        page = await populated_store.query("Mentions", order_by="-received_at", limit=2, offset=1)

        assert [r.key for r in page] == ["key-4", "key-3"]

    @pytest.mark.asyncio
    async def test_offset_without_limit(self, populated_store):
        rest = await populated_store.query("Mentions", order_by="received_at", offset=4)

        assert [r.key for r in rest] == ["key-4", "other-target"]

    @pytest.mark.asyncio
    async def test_rejects_unsafe_field_names(self, store):
        with pytest.raises(ValueError, match="Invalid field name"):
            await store.query("Mentions", filters={"state') OR 1=1 --": "good"})
        with pytest.raises(ValueError, match="Invalid field name"):
            await store.query("Mentions", order_by="-received_at; DROP TABLE documents")


class TestTransaction:
    """Test optimistic read-modify-write."""

    @pytest.mark.asyncio
    async def test_transaction_applies_update(self, store):
        await store.put("Mentions", "abc", {"state": "untriaged", "title": "Hello"})

        result = await store.transaction("Mentions", "abc", lambda doc: {**doc, "state": "good"})

        assert result == {"state": "good", "title": "Hello"}
        assert await store.get("Mentions", "abc") == result

    @pytest.mark.asyncio
    async def test_transaction_missing_key_raises(self, store):
        with pytest.raises(DocumentNotFoundError):
            await store.transaction("Mentions", "missing", lambda doc: doc)

    @pytest.mark.asyncio
    async def test_transaction_retries_after_concurrent_write(self, store, temp_db_path):
        await store.put("Mentions", "abc", {"counter": 0})
        calls = []

        def update(document):
            calls.append(document["counter"])
            if len(calls) == 1:
                # Another writer sneaks in between our read and our write.
                with sqlite3.connect(temp_db_path) as other:
                    other.execute(
                        "UPDATE documents SET body = ?, etag = ? WHERE key = ?",
                        ('{"counter": 10}', uuid.uuid4().hex, "abc"),
                    )
            return {"counter": document["counter"] + 1}

        result = await store.transaction("Mentions", "abc", update)

        assert calls == [0, 10]
        assert result == {"counter": 11}
        assert await store.get("Mentions", "abc") == {"counter": 11}

    @pytest.mark.asyncio
    async def test_transaction_gives_up_with_conflict(self, temp_db_path):
        async with SqliteDocumentStore(temp_db_path, namespace="ns", max_attempts=2) as store:
            await store.put("Mentions", "abc", {"counter": 0})

            def always_interfere(document):
                with sqlite3.connect(temp_db_path) as other:
                    other.execute(
                        "UPDATE documents SET etag = ? WHERE key = ?",
                        (uuid.uuid4().hex, "abc"),
                    )
                return {"counter": document["counter"] + 1}

            with pytest.raises(TransactionConflictError):
                await store.transaction("Mentions", "abc", always_interfere)

            assert await store.get("Mentions", "abc") == {"counter": 0}

    @pytest.mark.asyncio
    async def test_concurrent_transactions_do_not_lose_updates(self, store):
        await store.put("Mentions", "abc", {"counter": 0})

        def increment(document):
            return {"counter": document["counter"] + 1}

        await asyncio.gather(*(store.transaction("Mentions", "abc", increment) for _ in range(10)))

        assert await store.get("Mentions", "abc") == {"counter": 10}
