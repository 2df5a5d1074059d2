"""
Request sequencer — Debounces edits and keeps only the latest response.

Each product has:
- an epoch counter, bumped for every validation request it issues; a
  response is used only if its epoch is still the current one when it lands
- at most one pending debounce timer, cancelled and replaced on every edit

In-flight requests are never cancelled; their results are just dropped.
"""

import asyncio
from typing import Awaitable, Callable, Dict, Optional, Set, TypeVar

import structlog

from config import settings

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RequestSequencer:
    """Per-product debounce timers and request epochs on one event loop."""

    def __init__(self, debounce_seconds: Optional[float] = None):
        self.debounce_seconds = (
            settings.debounce_seconds if debounce_seconds is None else debounce_seconds
        )
        self._epochs: Dict[int, int] = {}
        self._timers: Dict[int, asyncio.TimerHandle] = {}
        self._tasks: Set[asyncio.Task] = set()

    # ===================
    # EPOCHS
    # ===================

    def current_epoch(self, product_id: int) -> int:
        return self._epochs.get(product_id, 0)

    def next_epoch(self, product_id: int) -> int:
        """Bump and return the product's epoch."""
        epoch = self.current_epoch(product_id) + 1
        self._epochs[product_id] = epoch
        return epoch

    def is_current(self, product_id: int, epoch: int) -> bool:
        return self.current_epoch(product_id) == epoch

    def invalidate(self, product_id: int) -> int:
        """Make every in-flight response for this product stale."""
        return self.next_epoch(product_id)

    async def run_latest(
        self,
        product_id: int,
        send: Callable[[], Awaitable[T]],
    ) -> Optional[T]:
        """
        Issue a request tagged with a fresh epoch.

        Args:
            product_id: Product the request belongs to
            send: Zero-argument coroutine factory performing the request

        Returns:
            The response, or None when a newer request was issued meanwhile

        Raises:
            Whatever send() raises
        """
        epoch = self.next_epoch(product_id)
        result = await send()

        if not self.is_current(product_id, epoch):
            logger.debug(
                "validation_response_stale",
                product_id=product_id,
                epoch=epoch,
                current=self.current_epoch(product_id),
            )
            return None

        return result

    # ===================
    # DEBOUNCE
    # ===================

    def schedule(
        self,
        product_id: int,
        callback: Callable[[], Awaitable[None]],
    ) -> None:
        """
        (Re)start the product's quiet-period timer.

        Must be called from inside the running event loop. When the timer
        fires, callback() is started as a task.
        """
        self.cancel(product_id)
        loop = asyncio.get_running_loop()
        self._timers[product_id] = loop.call_later(
            self.debounce_seconds, self._fire, product_id, callback
        )

    def pending(self, product_id: int) -> bool:
        return product_id in self._timers

    def cancel(self, product_id: int) -> None:
        timer = self._timers.pop(product_id, None)
        if timer is not None:
            timer.cancel()

    def cancel_all(self) -> None:
        for product_id in list(self._timers):
            self.cancel(product_id)

    async def drain(self) -> None:
        """Wait for every task started by a fired timer."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _fire(self, product_id: int, callback: Callable[[], Awaitable[None]]) -> None:
        self._timers.pop(product_id, None)
        task = asyncio.get_running_loop().create_task(callback())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
