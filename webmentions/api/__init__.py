"""Entry points consumed by the HTTP layer."""

from webmentions.api.handlers import (
    INVALID_REQUEST,
    HandlerResponse,
    TriagePage,
    ingest,
    public_mentions,
    thumbnail,
    triage_listing,
    update_mention,
    verify_queued,
)

__all__ = [
    "INVALID_REQUEST",
    "HandlerResponse",
    "TriagePage",
    "ingest",
    "public_mentions",
    "thumbnail",
    "triage_listing",
    "update_mention",
    "verify_queued",
]
