"""Tests for the DiscoverySynchronizer readiness wait."""

import asyncio

import pytest
from fakes import CountingDirectory, make_devices, publish_schedule

from yee_lan.errors import DiscoveryTimeout
from yee_lan.sync import DiscoverySynchronizer, SyncState


@pytest.mark.asyncio
async def test_resolves_when_count_reached(directory):
    """Snapshots of 1..4 devices arrive 100ms apart; resolve on the fourth."""
    sync = DiscoverySynchronizer(directory)
    published = []
    loop = asyncio.get_running_loop()
    start = loop.time()

    publisher = asyncio.create_task(
        publish_schedule(directory, [(0.0, 1), (0.1, 2), (0.2, 3), (0.3, 4)], published)
    )
    snapshot = await sync.await_ready(4, timeout=0.5, max_retries=0)
    elapsed = loop.time() - start
    await publisher

    assert len(snapshot) == 4
    assert snapshot is published[3]
    assert 0.28 <= elapsed < 0.5
    assert sync.state is SyncState.READY
    assert sync.attempts == 1


@pytest.mark.asyncio
async def test_first_matching_snapshot_wins(directory):
    """Later matching snapshots never replace the first one."""
    sync = DiscoverySynchronizer(directory)
    published = []

    publisher = asyncio.create_task(
        publish_schedule(directory, [(0.0, 3), (0.01, 5), (0.02, 2), (0.03, 2), (0.04, 2)], published)
    )
    snapshot = await sync.await_ready(2, timeout=0.5)
    await publisher

    assert snapshot is published[2]


@pytest.mark.asyncio
async def test_exhausts_after_all_attempts(directory):
    """Snapshots stay at 2 devices; two 500ms attempts then DiscoveryTimeout."""
    sync = DiscoverySynchronizer(directory)
    loop = asyncio.get_running_loop()
    start = loop.time()

    publisher = asyncio.create_task(
        publish_schedule(directory, [(t / 10, 1 + (t % 2)) for t in range(12)])
    )
    with pytest.raises(DiscoveryTimeout) as excinfo:
        await sync.await_ready(4, timeout=0.5, max_retries=1)
    elapsed = loop.time() - start
    publisher.cancel()
    await asyncio.gather(publisher, return_exceptions=True)

    assert 0.95 <= elapsed < 1.3
    assert excinfo.value.attempts == 2
    assert excinfo.value.expected_count == 4
    assert excinfo.value.last_count in (1, 2)
    assert sync.state is SyncState.EXHAUSTED
    assert directory.subscriber_count == 0


@pytest.mark.asyncio
async def test_attempts_equal_retries_plus_one():
    """Every attempt opens a fresh subscription."""
    directory = CountingDirectory()
    sync = DiscoverySynchronizer(directory)

    with pytest.raises(DiscoveryTimeout):
        await sync.await_ready(3, timeout=0.02, max_retries=3)

    assert directory.subscribe_calls == 4
    assert sync.attempts == 4
    assert directory.subscriber_count == 0


@pytest.mark.asyncio
async def test_succeeds_on_retry():
    """A match during the second attempt resolves the wait."""
    directory = CountingDirectory()
    sync = DiscoverySynchronizer(directory)

    publisher = asyncio.create_task(publish_schedule(directory, [(0.01, 1), (0.15, 3)]))
    snapshot = await sync.await_ready(3, timeout=0.1, max_retries=2)
    await publisher

    assert len(snapshot) == 3
    assert sync.attempts == 2
    assert directory.subscribe_calls == 2
    assert directory.subscriber_count == 0


@pytest.mark.asyncio
async def test_zero_expected_resolves_on_empty_snapshot(directory):
    """expected_count 0 matches the first (empty) snapshot."""
    sync = DiscoverySynchronizer(directory)

    publisher = asyncio.create_task(publish_schedule(directory, [(0.0, 0)]))
    snapshot = await sync.await_ready(0, timeout=0.5)
    await publisher

    assert snapshot == ()


@pytest.mark.asyncio
async def test_snapshots_before_subscribe_are_missed(directory):
    """The feed is hot: an already complete directory is not replayed."""
    directory.publish(make_devices(2))
    sync = DiscoverySynchronizer(directory)

    with pytest.raises(DiscoveryTimeout) as excinfo:
        await sync.await_ready(2, timeout=0.05)

    assert excinfo.value.last_count is None


@pytest.mark.asyncio
async def test_cancellation_unsubscribes(directory):
    """Cancelling the waiting task releases the live subscription."""
    sync = DiscoverySynchronizer(directory)

    task = asyncio.create_task(sync.await_ready(5, timeout=10.0))
    await asyncio.sleep(0.01)
    assert directory.subscriber_count == 1

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert directory.subscriber_count == 0


@pytest.mark.asyncio
async def test_independent_directories_do_not_share_state():
    """Two sessions over separate directories see only their own feed."""
    from yee_lan.directory import DeviceDirectory

    first, second = DeviceDirectory(), DeviceDirectory()
    sync = DiscoverySynchronizer(first)

    publisher = asyncio.create_task(publish_schedule(second, [(0.0, 2)]))
    with pytest.raises(DiscoveryTimeout):
        await sync.await_ready(2, timeout=0.05)
    await publisher

    assert second.subscriber_count == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs",
    [
        {"expected_count": -1, "timeout": 1.0},
        {"expected_count": 1, "timeout": 0},
        {"expected_count": 1, "timeout": 1.0, "max_retries": -1},
    ],
)
async def test_rejects_invalid_arguments(directory, kwargs):
    """Out-of-range arguments raise before subscribing."""
    sync = DiscoverySynchronizer(directory)

    with pytest.raises(ValueError):
        await sync.await_ready(**kwargs)

    assert directory.subscriber_count == 0


def test_events_ignored_outside_waiting(directory):
    """Snapshot and timer events do nothing unless an attempt is waiting."""
    sync = DiscoverySynchronizer(directory)

    assert sync.on_snapshot(tuple(make_devices(1))) is SyncState.IDLE
    assert sync.on_timer() is SyncState.IDLE

    sync.expected_count = 1
    sync.state = SyncState.WAITING
    assert sync.on_snapshot(tuple(make_devices(1))) is SyncState.READY
    assert sync.on_timer() is SyncState.READY
