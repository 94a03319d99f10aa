"""Triage store: ingestion, batch verification, listings and state changes."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Union

from webmentions.clients import (
    DocumentNotFoundError,
    DocumentStore,
    StoreError,
)
from webmentions.clients.document_store import Document
from webmentions.models import MENTIONS_KIND, Mention, MentionState, MentionWithKey
from webmentions.services.thumbnail_service import ThumbnailService
from webmentions.services.validation import validate
from webmentions.services.verification import SlowVerifier, VerificationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchResult:
    """Outcome counts of one verify_queued run."""

    processed: int
    good: int
    spam: int
    failed: int  # not classified by this run


class MentionService:
    """Stores mentions and moves them through the triage state machine.

    untriaged -> good | spam happens automatically in ``verify_queued``;
    administrators may set any state at any time through ``set_state``.
    """

    def __init__(
        self,
        store: DocumentStore,
        verifier: SlowVerifier,
        thumbnails: ThumbnailService,
        allowed_hosts: Iterable[str],
    ):
        self._store = store
        self._verifier = verifier
        self._thumbnails = thumbnails
        self._allowed_hosts = tuple(allowed_hosts)

    async def enqueue(self, source: str, target: str) -> Mention:
        """
        Validate and store a new mention as untriaged.

        Resubmitting a known (source, target) pair overwrites the stored
        record, which resets its state to untriaged.

        Raises:
            ValidationError: If the submission is rejected.
        """
        validate(source, target, self._allowed_hosts)
        mention = Mention.new(source, target)
        await self.put(mention)
        logger.info(f"Queued mention from {source!r} to {target!r}")
        return mention

    async def put(self, mention: Mention) -> None:
        """Upsert a mention under its dedup key."""
        await self._store.put(MENTIONS_KIND, mention.key, mention.to_document())

    async def list_queued(self) -> List[Mention]:
        """All untriaged mentions, unordered."""
        results = await self._store.query(
            MENTIONS_KIND,
            filters={"state": MentionState.UNTRIAGED.value},
        )
        return [Mention.from_document(result.data) for result in results]

    async def verify_queued(self) -> BatchResult:
        """Slow-verify every queued mention.

        A failure on one mention never stops the rest of the batch.
        """
        queued = await self.list_queued()
        logger.info(f"About to slow verify {len(queued)} queued mentions.")

        good = spam = failed = 0
        for mention in queued:
            try:
                state = await self._verify_one(mention)
            except StoreError as e:
                logger.warning(f"Failed to save verified mention {mention.key}: {e}")
                failed += 1
                continue
            except Exception:
                logger.exception(f"Unexpected error verifying mention from {mention.source!r}")
                failed += 1
                continue

            if state is None:
                failed += 1
            elif state == MentionState.GOOD:
                good += 1
            else:
                spam += 1

        result = BatchResult(processed=len(queued), good=good, spam=spam, failed=failed)
        logger.info(f"Verification batch done: {result}")
        return result

    async def _verify_one(self, mention: Mention) -> Optional[MentionState]:
        # Fallback timestamp when the source page has no dt-published.
        mention.published_at = datetime.now(timezone.utc)
        logger.info(f"Verifying queued webmention from {mention.source!r}")
        try:
            await self._verifier.verify(mention)
            mention.state = MentionState.GOOD
        except VerificationError as e:
            logger.info(f"Failed to validate webmention from {mention.source!r}: {e}")
            mention.state = MentionState.SPAM

        def _apply(document: Document) -> Document:
            current = Mention.from_document(document)
            if current.state != MentionState.UNTRIAGED:
                logger.info(f"Mention {mention.key} was triaged during verification; keeping {current.state.value}")
                mention.state = current.state
            mention.received_at = current.received_at
            return mention.to_document()

        try:
            await self._store.transaction(MENTIONS_KIND, mention.key, _apply)
        except DocumentNotFoundError:
            logger.info(f"Mention {mention.key} disappeared during verification")
            return None
        return mention.state

    async def _list_for_target(self, target: str, good_only: bool) -> List[Mention]:
        filters = {"target": target}
        if good_only:
            filters["state"] = MentionState.GOOD.value
        results = await self._store.query(MENTIONS_KIND, filters=filters, order_by="received_at")
        return [Mention.from_document(result.data) for result in results]

    async def list_good(self, target: str) -> List[Mention]:
        """Good mentions of ``target``, oldest first."""
        return await self._list_for_target(target, good_only=True)

    async def list_all(self, target: str) -> List[Mention]:
        """Every mention of ``target`` regardless of state, oldest first."""
        return await self._list_for_target(target, good_only=False)

    async def list_for_triage(self, limit: int = 20, offset: int = 0) -> List[MentionWithKey]:
        """A page of mentions for manual review, newest first."""
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        if offset < 0:
            raise ValueError(f"offset must not be negative, got {offset}")

        results = await self._store.query(
            MENTIONS_KIND,
            order_by="-received_at",
            limit=limit,
            offset=offset,
        )
        return [
            MentionWithKey(mention=Mention.from_document(result.data), key=result.key)
            for result in results
        ]

    async def set_state(self, key: str, state: Union[str, MentionState]) -> Mention:
        """
        Transactionally change the triage state of a stored mention.

        Raises:
            ValueError: If ``state`` is not a known state.
            DocumentNotFoundError: If ``key`` no longer resolves.
            TransactionConflictError: If concurrent writers kept winning.
        """
        new_state = MentionState(state)

        def _update(document: Document) -> Document:
            return {**document, "state": new_state.value}

        updated = await self._store.transaction(MENTIONS_KIND, key, _update)
        logger.info(f"Mention {key} set to {new_state.value}")
        return Mention.from_document(updated)

    async def get_thumbnail(self, thumbnail_id: str) -> bytes:
        """PNG bytes of a thumbnail; raises DocumentNotFoundError if absent."""
        return await self._thumbnails.get_thumbnail(thumbnail_id)
