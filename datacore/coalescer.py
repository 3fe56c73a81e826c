"""Request Coalescer — one in-flight upstream fetch per key.

Concurrent callers for the same key await the same task. A caller that is
cancelled or times out detaches from the task without cancelling it.
"""
import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class RequestCoalescer:
    def __init__(self):
        self._inflight: dict[str, asyncio.Task] = {}
        self._lock = threading.Lock()

    def in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._inflight

    def __len__(self) -> int:
        with self._lock:
            return len(self._inflight)

    def _release(self, key: str, task: asyncio.Task) -> None:
        with self._lock:
            if self._inflight.get(key) is task:
                del self._inflight[key]
        if not task.cancelled():
            # Mark the exception as retrieved; waiters still receive it.
            task.exception()

    async def coalesce(self, key: str, fetch_fn: Callable[[], Awaitable[Any]]) -> Any:
        with self._lock:
            task = self._inflight.get(key)
            if task is None:
                task = asyncio.ensure_future(fetch_fn())
                self._inflight[key] = task
                # Registered before any waiter, so it runs first on completion.
                task.add_done_callback(lambda t, k=key: self._release(k, t))
            else:
                logger.debug("Coalesced request for %s", key)
        return await asyncio.shield(task)
