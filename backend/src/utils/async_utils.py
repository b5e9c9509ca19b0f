"""
Concurrency helpers for the refresh fan-outs.
"""

import asyncio
import logging
from typing import Any, Awaitable, List

logger = logging.getLogger(__name__)


async def gather_or_cancel(*aws: Awaitable[Any]) -> List[Any]:
    """
    Run awaitables concurrently and return their results in order.

    Unlike a bare asyncio.gather, the first failure cancels every sibling that
    is still running before the exception propagates, so an abandoned cycle
    stops issuing requests.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            logger.debug(f"Cancelled {len(pending)} sibling fetch(es) after a failure")
        raise
