"""Caller-owned control session.

Wires a device directory to the discovery wait, the dispatcher and the
aggregator so a front end only has to supply operations and a way to
connect to a device.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Iterable, Optional

from .aggregate import ResponseAggregator
from .config import ConsoleConfig
from .directory import DeviceDirectory
from .dispatcher import CommandDispatcher
from .invoker import RetryingInvoker
from .log import configure_logging
from .models import AggregateResult, Device
from .operations import DeviceCommands, Operation, build_operations
from .sync import DiscoverySynchronizer

logger = logging.getLogger(__name__)


class ControlSession:
    """One discovery-and-dispatch session over a device directory."""

    def __init__(
        self,
        directory: Optional[DeviceDirectory] = None,
        config: Optional[ConsoleConfig] = None,
    ):
        """
        Initialize the session.

        Args:
            directory: Directory fed by the discovery transport; a fresh one
                is created when omitted
            config: Settings for discovery, retry and dispatch
        """
        self.directory = directory if directory is not None else DeviceDirectory()
        self.config = config or ConsoleConfig.create_default()
        self.cancel_event = asyncio.Event()

        retry = self.config.retry
        self.synchronizer = DiscoverySynchronizer(self.directory)
        self.invoker = RetryingInvoker(
            delay=retry.delay,
            max_attempts=retry.max_attempts,
            backoff=retry.backoff,
            max_delay=retry.max_delay,
            cancel_event=self.cancel_event,
        )
        self.dispatcher = CommandDispatcher(
            self.invoker,
            concurrency=self.config.dispatch.concurrency,
        )
        self.aggregator = ResponseAggregator()

    @classmethod
    def from_config(
        cls,
        config: ConsoleConfig,
        directory: Optional[DeviceDirectory] = None,
    ) -> ControlSession:
        """Create a session from loaded configuration and apply its log level."""
        configure_logging(config.log_level)
        return cls(directory=directory, config=config)

    def cancel(self) -> None:
        """
        Abort pending retries; they resolve as cancelled responses.

        The next ``execute`` or ``async with`` entry starts with a clear event.
        """
        self.cancel_event.set()

    async def __aenter__(self) -> ControlSession:
        """Async context manager entry."""
        self.cancel_event.clear()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        self.cancel()

    async def wait_for_devices(self, expected_count: Optional[int] = None) -> tuple[Device, ...]:
        """
        Block until the directory holds ``expected_count`` devices.

        Raises:
            DiscoveryTimeout: If discovery does not converge in time
            ValueError: If no expected count is given or configured
        """
        discovery = self.config.discovery
        count = expected_count if expected_count is not None else discovery.expected_count
        if count is None:
            raise ValueError("expected_count is neither given nor configured")
        return await self.synchronizer.await_ready(
            count,
            discovery.timeout,
            discovery.max_retries,
        )

    async def execute(
        self,
        operations: Iterable[Operation],
        connect: Callable[[Device], DeviceCommands],
        expected_count: Optional[int] = None,
    ) -> AggregateResult:
        """
        Wait for discovery, apply ``operations`` to every device and summarize.

        Args:
            operations: Operations applied to each device
            connect: Returns the command interface for a device
            expected_count: Device count marking discovery as complete

        Returns:
            Aggregate outcome of every dispatched operation

        Raises:
            DiscoveryTimeout: Before any command is sent, if discovery fails
        """
        self.cancel_event.clear()
        devices = await self.wait_for_devices(expected_count)
        builder = build_operations(
            operations,
            connect,
            skip_unsupported=self.config.dispatch.skip_unsupported,
        )
        responses = await self.dispatcher.run(devices, builder)
        result = self.aggregator.summarize(responses)
        logger.info(
            "Session finished: %d response(s), all succeeded: %s",
            len(responses),
            result.all_succeeded,
        )
        return result

    async def apply_preset(
        self,
        name: str,
        connect: Callable[[Device], DeviceCommands],
        expected_count: Optional[int] = None,
    ) -> AggregateResult:
        """Run the operations of a configured preset."""
        return await self.execute(self.config.preset_operations(name), connect, expected_count)
