"""Discovery readiness wait.

Blocks until the device directory publishes a snapshot holding exactly the
expected number of devices. The wait is an explicit state machine:

    WAITING --snapshot(len == expected)--> READY
    WAITING --timer expired--------------> TIMED_OUT --retries left--> WAITING
                                           TIMED_OUT --no retries----> EXHAUSTED

Each attempt opens its own directory subscription and closes it on every
exit path.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional

from .directory import DeviceDirectory
from .errors import DiscoveryTimeout
from .models import Snapshot

logger = logging.getLogger(__name__)


class SyncState(Enum):
    """Discovery readiness states."""
    IDLE = "idle"
    WAITING = "waiting"
    READY = "ready"
    TIMED_OUT = "timed_out"
    EXHAUSTED = "exhausted"


class DiscoverySynchronizer:
    """Waits for the device directory to converge on an expected count."""

    def __init__(self, directory: DeviceDirectory):
        """
        Initialize the synchronizer.

        Args:
            directory: Directory whose snapshot feed is observed
        """
        self.directory = directory
        self.state = SyncState.IDLE
        self.attempts = 0
        self.expected_count: Optional[int] = None
        self.snapshot: Optional[Snapshot] = None
        self.last_count: Optional[int] = None

    # Event handlers

    def on_snapshot(self, snapshot: Snapshot) -> SyncState:
        """Feed one snapshot into the state machine."""
        if self.state is not SyncState.WAITING:
            return self.state
        self.last_count = len(snapshot)
        if len(snapshot) == self.expected_count:
            self.snapshot = snapshot
            self.state = SyncState.READY
            logger.info(
                "Discovery ready with %d device(s) on attempt %d",
                len(snapshot),
                self.attempts,
            )
        else:
            logger.debug(
                "Ignoring snapshot of %d device(s), waiting for %d",
                len(snapshot),
                self.expected_count,
            )
        return self.state

    def on_timer(self) -> SyncState:
        """Signal that the current attempt's timer expired."""
        if self.state is SyncState.WAITING:
            self.state = SyncState.TIMED_OUT
            logger.info("Discovery attempt %d timed out", self.attempts)
        return self.state

    # Public API

    async def await_ready(
        self,
        expected_count: int,
        timeout: float,
        max_retries: int = 0,
    ) -> Snapshot:
        """
        Wait for a snapshot holding exactly ``expected_count`` devices.

        Args:
            expected_count: Number of devices that marks discovery as complete
            timeout: Seconds allowed per attempt
            max_retries: Additional attempts after the first one times out

        Returns:
            The first matching snapshot

        Raises:
            DiscoveryTimeout: If every attempt timed out
            ValueError: If an argument is out of range
        """
        if expected_count < 0:
            raise ValueError("expected_count must be >= 0")
        if timeout <= 0:
            raise ValueError("timeout must be > 0")
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")

        self.expected_count = expected_count
        self.attempts = 0
        self.snapshot = None
        self.last_count = None

        while self.attempts <= max_retries:
            self.attempts += 1
            self.state = SyncState.WAITING
            await self._run_attempt(timeout)
            if self.state is SyncState.READY:
                return self.snapshot

        self.state = SyncState.EXHAUSTED
        logger.warning(
            "Discovery exhausted after %d attempt(s): expected %d device(s)",
            self.attempts,
            expected_count,
        )
        raise DiscoveryTimeout(expected_count, self.attempts, self.last_count)

    async def _run_attempt(self, timeout: float) -> None:
        """Drive one attempt until READY or TIMED_OUT."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        subscription = self.directory.subscribe()
        try:
            while self.state is SyncState.WAITING:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    self.on_timer()
                    break
                try:
                    snapshot = await asyncio.wait_for(subscription.get(), remaining)
                except asyncio.TimeoutError:
                    self.on_timer()
                else:
                    self.on_snapshot(snapshot)
        finally:
            subscription.close()
