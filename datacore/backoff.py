"""Backoff Executor — retries upstream calls on rate-limit / server errors.

Delay before retry n (1-based) is ``unit * base ** (n - 1) + uniform(0, jitter)``.
Each ``execute`` call starts from attempt 1; nothing is shared between calls.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

import settings
from datacore.errors import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BackoffExecutor:
    """Run an async upstream call with bounded, jittered exponential retries."""

    def __init__(
        self,
        max_retries: int = settings.RETRY_MAX_RETRIES,
        base: float = settings.RETRY_BASE,
        unit: float = settings.RETRY_UNIT_SECONDS,
        jitter: float = settings.RETRY_JITTER_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.max_retries = max_retries
        self.base = base
        self.unit = unit
        self.jitter = jitter
        self._sleep = sleep

    def _log_retry(self, max_retries: int) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "Upstream call failed, retrying (%d/%d) in %.0fms: %s",
                retry_state.attempt_number,
                max_retries,
                delay * 1000,
                exc,
            )

        return before_sleep

    async def execute(
        self,
        fn: Callable[[], Awaitable[T]],
        max_retries: Optional[int] = None,
    ) -> T:
        """Call fn(); retry retryable failures, re-raise everything else.

        fn is called at most max_retries + 1 times. It may be any callable
        returning an awaitable (plain lambdas included).
        """

        async def attempt() -> T:
            return await fn()

        retries = self.max_retries if max_retries is None else max_retries
        retrying = AsyncRetrying(
            sleep=self._sleep,
            wait=wait_exponential(multiplier=self.unit, exp_base=self.base)
            + wait_random(0, self.jitter),
            stop=stop_after_attempt(retries + 1),
            retry=retry_if_exception(is_retryable),
            before_sleep=self._log_retry(retries),
            reraise=True,
        )
        return await retrying(attempt)
