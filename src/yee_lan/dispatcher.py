"""Concurrent fan-out/fan-in of device operations."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Callable, Iterable, Optional, Union

from .errors import DeviceError
from .invoker import RetryingInvoker, Thunk
from .models import STATUS_DEVICE_ERROR, Device, Response

logger = logging.getLogger(__name__)

OperationBuilder = Callable[[Device], Union[Thunk, Iterable[Thunk]]]


class CommandDispatcher:
    """Runs operations against many devices and waits for every one of them."""

    def __init__(
        self,
        invoker: Optional[RetryingInvoker] = None,
        concurrency: Optional[int] = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            invoker: Retry wrapper every operation goes through
            concurrency: Maximum simultaneous device calls (None for no limit)
        """
        if concurrency is not None and concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.invoker = invoker or RetryingInvoker()
        self.concurrency = concurrency

    async def run(
        self,
        devices: Iterable[Device],
        operation_builder: OperationBuilder,
    ) -> list[Response]:
        """
        Build and run operations for every device concurrently.

        One failing device never cancels or short-circuits the others. A
        builder that raises for a device yields one failure response for
        that device.

        Args:
            devices: Devices from a ready snapshot
            operation_builder: Maps a device to one thunk or several

        Returns:
            One response per submitted operation, in submission order
        """
        # Each entry holds either a thunk to run or a failure from building it
        submitted: list[tuple[Device, Optional[Thunk], Optional[Response]]] = []
        for device in devices:
            try:
                built = operation_builder(device)
                thunks = [built] if callable(built) else list(built)
            except Exception as exc:
                submitted.append((device, None, self._failure(device, exc)))
                continue
            submitted.extend((device, thunk, None) for thunk in thunks)

        if not submitted:
            return []

        semaphore = asyncio.Semaphore(self.concurrency) if self.concurrency else None
        pending = [(device, thunk) for device, thunk, _ in submitted if thunk is not None]
        logger.info(
            "Dispatching %d operation(s) to %d device(s)",
            len(pending),
            len({device.id for device, _ in pending}),
        )

        results = iter(await asyncio.gather(
            *(self._submit(thunk, semaphore) for _, thunk in pending),
            return_exceptions=True,
        ))

        responses: list[Response] = []
        for device, thunk, failure in submitted:
            if thunk is None:
                response = failure
            else:
                result = next(results)
                if isinstance(result, Response):
                    response = result
                elif isinstance(result, Exception):
                    response = self._failure(device, result)
                else:
                    raise result
            responses.append(dataclasses.replace(response, device_id=device.id))
        return responses

    @staticmethod
    def _failure(device: Device, exc: Exception) -> Response:
        if isinstance(exc, DeviceError):
            return Response.failure(exc.status, exc.message)
        logger.warning("Operation on %s raised: %s", device.id, exc)
        return Response.failure(STATUS_DEVICE_ERROR, str(exc) or type(exc).__name__)

    async def _submit(
        self,
        thunk: Thunk,
        semaphore: Optional[asyncio.Semaphore],
    ) -> Response:
        if semaphore is None:
            return await self.invoker.invoke(thunk)
        async with semaphore:
            return await self.invoker.invoke(thunk)
