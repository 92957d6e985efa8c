"""Tests for the RetryingInvoker."""

import asyncio

import pytest
from fakes import FakeBulb

from yee_lan.errors import PermanentDeviceError, TransientDeviceError
from yee_lan.invoker import RetryingInvoker
from yee_lan.models import (
    STATUS_CANCELLED,
    STATUS_RETRIES_EXHAUSTED,
    STATUS_UNAVAILABLE,
    Response,
)

UNAVAILABLE = Response.failure(STATUS_UNAVAILABLE, "device busy")


@pytest.mark.asyncio
@pytest.mark.parametrize("k", [0, 1, 3, 7])
async def test_retries_transient_until_success(k):
    """k transient results then success: k + 1 calls, success returned."""
    bulb = FakeBulb([UNAVAILABLE] * k)
    invoker = RetryingInvoker(delay=0)

    response = await invoker.invoke(lambda: bulb.set_brightness(50))

    assert response.ok
    assert response.result == ["ok"]
    assert len(bulb.calls) == k + 1


@pytest.mark.asyncio
async def test_permanent_failure_returned_verbatim():
    """Non-transient statuses are not retried."""
    failure = Response.failure(500, "overheat")
    bulb = FakeBulb([failure])
    invoker = RetryingInvoker(delay=0)

    response = await invoker.invoke(lambda: bulb.set_power(True, None, 500))

    assert response is failure
    assert len(bulb.calls) == 1


@pytest.mark.asyncio
async def test_raised_transient_error_is_retried():
    """A collaborator raising TransientDeviceError is treated like 410."""
    bulb = FakeBulb([TransientDeviceError(), TransientDeviceError()])
    invoker = RetryingInvoker(delay=0)

    response = await invoker.invoke(lambda: bulb.set_rgb(0xFF0000))

    assert response.ok
    assert len(bulb.calls) == 3


@pytest.mark.asyncio
async def test_exhausted_attempts_become_permanent_failure():
    """The 410 status never escapes the invoker."""
    bulb = FakeBulb([UNAVAILABLE] * 10)
    invoker = RetryingInvoker(delay=0, max_attempts=4)

    response = await invoker.invoke(lambda: bulb.set_brightness(10))

    assert response.status == STATUS_RETRIES_EXHAUSTED
    assert not response.transient
    assert "4 attempt" in response.error
    assert len(bulb.calls) == 4


@pytest.mark.asyncio
async def test_fixed_delay_between_attempts():
    """Default backoff keeps the delay fixed."""
    bulb = FakeBulb([UNAVAILABLE] * 2)
    invoker = RetryingInvoker(delay=0.05)
    loop = asyncio.get_running_loop()
    start = loop.time()

    response = await invoker.invoke(lambda: bulb.set_brightness(10))

    assert response.ok
    assert loop.time() - start >= 0.09


@pytest.mark.asyncio
async def test_exponential_backoff_is_capped():
    """Delay grows by the backoff factor up to max_delay."""
    bulb = FakeBulb([UNAVAILABLE] * 4)
    invoker = RetryingInvoker(delay=0.01, backoff=2.0, max_delay=0.03)
    waits = []

    async def record_wait(delay):
        waits.append(delay)
        return False

    invoker._wait = record_wait
    response = await invoker.invoke(lambda: bulb.set_brightness(10))

    assert response.ok
    assert waits == pytest.approx([0.01, 0.02, 0.03, 0.03])


@pytest.mark.asyncio
async def test_cancel_during_delay():
    """Setting the shared event wakes a pending retry delay."""
    bulb = FakeBulb([UNAVAILABLE] * 10)
    cancel_event = asyncio.Event()
    invoker = RetryingInvoker(delay=10.0, cancel_event=cancel_event)
    loop = asyncio.get_running_loop()
    start = loop.time()

    task = asyncio.create_task(invoker.invoke(lambda: bulb.set_brightness(10)))
    await asyncio.sleep(0.01)
    cancel_event.set()
    response = await task

    assert response.status == STATUS_CANCELLED
    assert len(bulb.calls) == 1
    assert loop.time() - start < 1.0


@pytest.mark.asyncio
async def test_cancelled_before_first_attempt():
    """An already cancelled invoker makes no device calls."""
    bulb = FakeBulb()
    invoker = RetryingInvoker()
    invoker.cancel()

    response = await invoker.invoke(lambda: bulb.set_brightness(10))

    assert response.status == STATUS_CANCELLED
    assert bulb.calls == []


@pytest.mark.parametrize(
    "kwargs",
    [{"max_attempts": 0}, {"delay": -1}, {"backoff": 0.5}],
)
def test_rejects_invalid_settings(kwargs):
    """Invalid retry settings raise ValueError."""
    with pytest.raises(ValueError):
        RetryingInvoker(**kwargs)


@pytest.mark.asyncio
async def test_permanent_exception_becomes_response():
    """A rejected call resolves to a failure response instead of raising."""
    bulb = FakeBulb([PermanentDeviceError(404, "method not supported")])

    response = await RetryingInvoker(delay=0).invoke(lambda: bulb.set_brightness(50))

    assert response.status == 404
    assert response.error == "method not supported"
    assert len(bulb.calls) == 1
