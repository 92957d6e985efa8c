"""yee-lan - synchronization core for controlling LAN lighting devices.

This package waits for a live device directory to converge, fans commands
out to every device with transparent retry on transient failures, and
reduces the outcomes into a single report.
"""

__version__ = "1.0.0"

from .aggregate import ResponseAggregator
from .config import ConsoleConfig
from .directory import DeviceDirectory, Subscription
from .dispatcher import CommandDispatcher
from .errors import (
    AggregateFailure,
    ConfigError,
    DeviceError,
    DiscoveryTimeout,
    InvalidOperation,
    PermanentDeviceError,
    SubscriptionClosed,
    TransientDeviceError,
    YeeLanError,
)
from .invoker import RetryingInvoker
from .models import AggregateResult, Device, Response, Snapshot
from .operations import Action, DeviceCommands, Operation, PowerMode, build_operations
from .session import ControlSession
from .sync import DiscoverySynchronizer, SyncState

__all__ = [
    "Action",
    "AggregateFailure",
    "AggregateResult",
    "CommandDispatcher",
    "ConfigError",
    "ConsoleConfig",
    "ControlSession",
    "Device",
    "DeviceCommands",
    "DeviceDirectory",
    "DeviceError",
    "DiscoverySynchronizer",
    "DiscoveryTimeout",
    "InvalidOperation",
    "Operation",
    "PermanentDeviceError",
    "PowerMode",
    "Response",
    "ResponseAggregator",
    "RetryingInvoker",
    "Snapshot",
    "Subscription",
    "SubscriptionClosed",
    "SyncState",
    "TransientDeviceError",
    "YeeLanError",
    "build_operations",
    "__version__",
]
