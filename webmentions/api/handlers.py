"""Framework-agnostic handlers for the service's public operations.

An HTTP layer maps routes onto these functions and turns a HandlerResponse
into a real response. Rejected submissions get a generic message so the
allow-list cannot be probed; triage failures are reported specifically.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List

from webmentions.clients import (
    AdminRequest,
    DocumentNotFoundError,
    StoreError,
    StoreUnavailableError,
    TransactionConflictError,
)
from webmentions.context import AppContext
from webmentions.models import Mention, MentionWithKey
from webmentions.services import BatchResult, ValidationError

logger = logging.getLogger(__name__)

INVALID_REQUEST = "Invalid request."
DEFAULT_TRIAGE_LIMIT = 20


@dataclass(frozen=True)
class HandlerResponse:
    status_code: int
    body: Any = ""
    content_type: str = "text/plain"


@dataclass(frozen=True)
class TriagePage:
    """Data for rendering the triage page."""

    is_admin: bool
    mentions: List[MentionWithKey] = field(default_factory=list)
    next_offset: int = 0


async def ingest(ctx: AppContext, source: str, target: str) -> HandlerResponse:
    """Accept an incoming Webmention for later verification."""
    try:
        await ctx.mentions.enqueue(source, target)
    except ValidationError as e:
        logger.info(f"Invalid request: {e}")
        return HandlerResponse(400, INVALID_REQUEST)
    except StoreError as e:
        logger.info(f"Failed to enqueue mention: {e}")
        return HandlerResponse(400, "Failed to enqueue mention.")
    return HandlerResponse(202)


async def public_mentions(ctx: AppContext, target: str) -> List[Mention]:
    """Good mentions for the embeddable widget.

    The widget passes the page's referrer, which may carry a trailing slash
    that stored targets do not.
    """
    if not target:
        return []
    if target.endswith("/"):
        target = target[:-1]
    return await ctx.mentions.list_good(target)


async def triage_listing(
    ctx: AppContext,
    request: AdminRequest,
    limit: int = DEFAULT_TRIAGE_LIMIT,
    offset: int = 0,
) -> TriagePage:
    """One page of mentions for administrators; empty for everyone else."""
    if not await ctx.identity.is_admin(request):
        return TriagePage(is_admin=False)
    mentions = await ctx.mentions.list_for_triage(limit=limit, offset=offset)
    return TriagePage(is_admin=True, mentions=mentions, next_offset=offset + limit)


async def update_mention(ctx: AppContext, request: AdminRequest, key: str, state: str) -> HandlerResponse:
    """Change the triage state of a mention on behalf of an administrator."""
    if not await ctx.identity.is_admin(request):
        return HandlerResponse(401, "Unauthorized")
    try:
        await ctx.mentions.set_state(key, state)
    except ValueError as e:
        logger.info(f"Invalid state {state!r}: {e}")
        return HandlerResponse(400, "Invalid state.")
    except DocumentNotFoundError as e:
        logger.info(f"Failed to write update: {e}")
        return HandlerResponse(404, "Mention not found.")
    except TransactionConflictError as e:
        logger.info(f"Failed to write update: {e}")
        return HandlerResponse(409, "Mention was updated concurrently, try again.")
    except StoreUnavailableError as e:
        logger.warning(f"Failed to write update: {e}")
        return HandlerResponse(503, "Failed to write.")
    return HandlerResponse(200)


async def thumbnail(ctx: AppContext, thumbnail_id: str) -> HandlerResponse:
    try:
        png = await ctx.mentions.get_thumbnail(thumbnail_id)
    except DocumentNotFoundError as e:
        logger.warning(f"Failed to get image: {e}")
        return HandlerResponse(404, "Image not found")
    return HandlerResponse(200, png, "image/png")


async def verify_queued(ctx: AppContext) -> BatchResult:
    """Batch trigger, meant to be called on a timer."""
    return await ctx.mentions.verify_queued()
