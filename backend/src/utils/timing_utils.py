"""
Timing policies for the ledger listing.

Debounced search and delayed "load more" are UX smoothing only. They run on an
asyncio event loop (injectable for tests) and always expose a way to fire
immediately, so synchronous callers never depend on the delays.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Tuple

from core.config import SEARCH_DEBOUNCE_MS, LOAD_MORE_DELAY_MS

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Calls a callback once input has been quiet for delay_ms.

    Each call() restarts the timer with the latest arguments; only the last
    arguments are delivered.
    """

    def __init__(
        self,
        callback: Callable[..., Any],
        delay_ms: int = SEARCH_DEBOUNCE_MS,
        loop: Optional[asyncio.AbstractEventLoop] = None
    ) -> None:
        self.callback = callback
        self.delay_ms = delay_ms
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._pending_args: Optional[Tuple[Any, ...]] = None

    @property
    def is_pending(self) -> bool:
        return self._handle is not None

    def call(self, *args: Any) -> None:
        """Schedule the callback, replacing any pending call."""
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._pending_args = args
        self._handle = loop.call_later(self.delay_ms / 1000, self._fire)

    def flush(self) -> None:
        """Run a pending call right away."""
        if self._handle is None:
            return
        self._handle.cancel()
        self._fire()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._pending_args = None

    def _fire(self) -> None:
        args = self._pending_args or ()
        self._handle = None
        self._pending_args = None
        self.callback(*args)


class DelayedTrigger:
    """
    Fires a callback delay_ms after trigger(), ignoring triggers while one is pending.

    Models the "load more" loader: reaching the end of the list while a batch
    is already loading does not queue a second batch.
    """

    def __init__(
        self,
        callback: Callable[[], Any],
        delay_ms: int = LOAD_MORE_DELAY_MS,
        loop: Optional[asyncio.AbstractEventLoop] = None
    ) -> None:
        self.callback = callback
        self.delay_ms = delay_ms
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def is_pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> bool:
        """
        Schedule the callback.

        Returns:
            False if a call was already pending (trigger ignored)
        """
        if self._handle is not None:
            logger.debug("Trigger ignored, previous call still pending")
            return False
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_ms / 1000, self._fire)
        return True

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self.callback()
