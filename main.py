"""Run one batch of slow verification over the queued mentions.

Meant to be invoked on a timer (cron, Cloud Scheduler, ...).
"""

import asyncio
import logging

from webmentions.api import verify_queued
from webmentions.config import configure_logging, load_config
from webmentions.context import AppContext

logger = logging.getLogger(__name__)


async def main() -> None:
    config = load_config()
    configure_logging(config.logging)

    async with await AppContext.create(config) as ctx:
        result = await verify_queued(ctx)

    logger.info(
        f"Verified {result.processed} mentions: {result.good} good, "
        f"{result.spam} spam, {result.failed} left queued"
    )


if __name__ == "__main__":
    asyncio.run(main())
