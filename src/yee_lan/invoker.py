"""Transient-failure retry around a single device call."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .errors import DeviceError
from .models import (
    STATUS_CANCELLED,
    STATUS_RETRIES_EXHAUSTED,
    Response,
)

logger = logging.getLogger(__name__)

Thunk = Callable[[], Awaitable[Response]]


class RetryingInvoker:
    """
    Runs a device call and retries it while the device reports 410.

    Features:
    - Bounded attempts, the last transient result becomes a permanent failure
    - Fixed delay by default, exponential when ``backoff`` > 1
    - Shared cancellation event checked before each attempt and during delays
    """

    DEFAULT_DELAY = 0.5
    DEFAULT_MAX_ATTEMPTS = 10
    DEFAULT_MAX_DELAY = 5.0

    def __init__(
        self,
        delay: float = DEFAULT_DELAY,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff: float = 1.0,
        max_delay: float = DEFAULT_MAX_DELAY,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        """
        Initialize the invoker.

        Args:
            delay: Seconds to wait after the first transient result
            max_attempts: Upper bound on calls per invocation
            backoff: Delay multiplier applied after each transient result
            max_delay: Ceiling for the delay
            cancel_event: Shared event that aborts pending retries when set
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if delay < 0:
            raise ValueError("delay must be >= 0")
        if backoff < 1.0:
            raise ValueError("backoff must be >= 1.0")
        self.delay = delay
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.max_delay = max(max_delay, delay)
        self.cancel_event = cancel_event if cancel_event is not None else asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        """Abort every invocation that is waiting to retry."""
        self.cancel_event.set()

    async def invoke(self, thunk: Thunk) -> Response:
        """
        Execute ``thunk`` until it yields a non-transient response.

        Args:
            thunk: Zero-argument coroutine function calling one device

        Returns:
            The first non-transient response, or a permanent failure when
            attempts run out or the invocation is cancelled
        """
        delay = self.delay
        for attempt in range(1, self.max_attempts + 1):
            if self.cancelled:
                return self._cancelled(attempt - 1)

            try:
                response = await thunk()
            except DeviceError as exc:
                response = Response.failure(exc.status, exc.message)

            if not response.transient:
                if attempt > 1:
                    logger.debug("Device call settled after %d attempt(s)", attempt)
                return response

            if attempt == self.max_attempts:
                break

            logger.debug(
                "Device unavailable (attempt %d/%d), retrying in %.2fs",
                attempt,
                self.max_attempts,
                delay,
            )
            if await self._wait(delay):
                return self._cancelled(attempt)
            delay = min(delay * self.backoff, self.max_delay)

        logger.warning("Device still unavailable after %d attempt(s)", self.max_attempts)
        return Response.failure(
            STATUS_RETRIES_EXHAUSTED,
            f"device still unavailable after {self.max_attempts} attempt(s)",
        )

    async def _wait(self, delay: float) -> bool:
        """Sleep for ``delay`` seconds; return True if cancelled meanwhile."""
        try:
            await asyncio.wait_for(self.cancel_event.wait(), delay)
        except asyncio.TimeoutError:
            return False
        return True

    def _cancelled(self, attempts: int) -> Response:
        logger.info("Device call cancelled after %d attempt(s)", attempts)
        return Response.failure(STATUS_CANCELLED, "cancelled before the device became available")
