"""Exception types raised by the yee-lan control core."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import AggregateResult


class YeeLanError(Exception):
    """Base class for all yee-lan errors."""


class DiscoveryTimeout(YeeLanError):
    """No directory snapshot reached the expected device count in time."""

    def __init__(
        self,
        expected_count: int,
        attempts: int,
        last_count: Optional[int] = None,
    ):
        self.expected_count = expected_count
        self.attempts = attempts
        self.last_count = last_count
        seen = "no snapshot" if last_count is None else f"last saw {last_count}"
        super().__init__(
            f"Expected {expected_count} device(s) but discovery did not converge "
            f"after {attempts} attempt(s) ({seen})"
        )


class DeviceError(YeeLanError):
    """A device answered a command with a non-success status."""

    def __init__(self, status: int, message: str = ""):
        self.status = status
        self.message = message
        super().__init__(message or f"Device returned status {status}")


class TransientDeviceError(DeviceError):
    """The device is temporarily unable to execute the command."""

    def __init__(self, message: str = "device temporarily unavailable"):
        from .models import STATUS_UNAVAILABLE

        super().__init__(STATUS_UNAVAILABLE, message)


class PermanentDeviceError(DeviceError):
    """The device rejected the command; retrying will not help."""


class SubscriptionClosed(YeeLanError):
    """A directory subscription was read after it was closed."""


class AggregateFailure(YeeLanError):
    """At least one dispatched command did not succeed."""

    def __init__(self, result: AggregateResult):
        self.result = result
        errors = "; ".join(result.errors) or "no error message"
        super().__init__(f"{len(result.failed)} command(s) failed: {errors}")


class InvalidOperation(YeeLanError, ValueError):
    """An operation was built with out-of-range parameters."""


class ConfigError(YeeLanError):
    """The configuration file describes something unusable."""
