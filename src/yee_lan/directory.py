"""Live device directory.

The directory is a caller-owned context object: each instance keeps its own
subscriber registry, so independent discovery sessions never share state.
Every change produces a brand new snapshot that is pushed to all current
subscribers. Subscribers that join later do not see earlier snapshots.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Iterable, Optional

from .errors import SubscriptionClosed
from .models import Device, Snapshot

logger = logging.getLogger(__name__)


class Subscription:
    """A single subscriber's view of the directory feed."""

    def __init__(self, directory: DeviceDirectory):
        self._directory = directory
        # None marks the end of the feed
        self._queue: asyncio.Queue[Optional[Snapshot]] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _deliver(self, snapshot: Snapshot) -> None:
        if not self._closed:
            self._queue.put_nowait(snapshot)

    async def get(self) -> Snapshot:
        """
        Wait for the next snapshot.

        Raises:
            SubscriptionClosed: If the subscription is closed, including
                while this call is waiting
        """
        if self._closed:
            raise SubscriptionClosed("Subscription is closed")
        snapshot = await self._queue.get()
        if snapshot is None:
            # Pass the end marker on to any other waiting reader
            self._queue.put_nowait(None)
            raise SubscriptionClosed("Subscription is closed")
        return snapshot

    def close(self) -> None:
        """Unsubscribe and wake pending readers. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)
        self._directory.unsubscribe(self)

    def __aiter__(self) -> AsyncIterator[Snapshot]:
        return self

    async def __anext__(self) -> Snapshot:
        try:
            return await self.get()
        except SubscriptionClosed:
            raise StopAsyncIteration from None

    async def __aenter__(self) -> Subscription:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args) -> None:
        """Async context manager exit."""
        self.close()


class DeviceDirectory:
    """Hot, multicast feed of whole-list device snapshots."""

    def __init__(self, devices: Optional[Iterable[Device]] = None):
        """
        Initialize the directory.

        Args:
            devices: Optional initial device list; it becomes ``current``
                but is not delivered to anyone
        """
        self._current: Snapshot = tuple(devices or ())
        self._subscribers: list[Subscription] = []

    @property
    def current(self) -> Snapshot:
        """Most recently published snapshot."""
        return self._current

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        """Register a new subscriber that receives future snapshots."""
        subscription = Subscription(self)
        self._subscribers.append(subscription)
        logger.debug("Directory subscriber added (%d active)", len(self._subscribers))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscriber. Unknown subscriptions are ignored."""
        try:
            self._subscribers.remove(subscription)
        except ValueError:
            return
        if not subscription.closed:
            subscription.close()
        logger.debug("Directory subscriber removed (%d active)", len(self._subscribers))

    def publish(self, devices: Iterable[Device]) -> Snapshot:
        """
        Replace the device list and push the new snapshot to subscribers.

        Args:
            devices: Complete device list

        Returns:
            The published snapshot
        """
        snapshot: Snapshot = tuple(devices)
        self._current = snapshot
        logger.debug(
            "Publishing snapshot of %d device(s) to %d subscriber(s)",
            len(snapshot),
            len(self._subscribers),
        )
        for subscription in list(self._subscribers):
            subscription._deliver(snapshot)
        return snapshot

    def upsert(self, device: Device) -> Snapshot:
        """Publish a snapshot with ``device`` added or replaced in place."""
        devices = list(self._current)
        for index, existing in enumerate(devices):
            if existing.id == device.id:
                devices[index] = device
                break
        else:
            logger.info("Device joined: %s (%s)", device.id, device.host)
            devices.append(device)
        return self.publish(devices)

    def remove(self, device_id: str) -> Snapshot:
        """Publish a snapshot without the device with ``device_id``."""
        devices = [d for d in self._current if d.id != device_id]
        if len(devices) != len(self._current):
            logger.info("Device left: %s", device_id)
        return self.publish(devices)
