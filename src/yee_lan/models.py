"""Data model shared by the yee-lan control core."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .errors import AggregateFailure

# Response status codes
STATUS_OK = 200
STATUS_UNAVAILABLE = 410  # Transient: device not ready yet, always retried

# Permanent failures produced by the core itself
STATUS_CANCELLED = 499
STATUS_DEVICE_ERROR = 500
STATUS_RETRIES_EXHAUSTED = 503

DEFAULT_PORT = 55443


@dataclass(frozen=True)
class Device:
    """A single bulb as seen by the device directory."""

    id: str
    host: str
    port: int = DEFAULT_PORT
    name: str = ""
    model: str = ""
    capabilities: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        # Freeze the capability mapping so snapshots stay immutable
        object.__setattr__(
            self, "capabilities", MappingProxyType(dict(self.capabilities))
        )

    @property
    def address(self) -> tuple[str, int]:
        """Host and port of the device's control socket."""
        return (self.host, self.port)

    @property
    def support(self) -> Optional[frozenset[str]]:
        """Wire methods the device advertises, or None if it did not say."""
        support = self.capabilities.get("support")
        if support is None:
            return None
        if isinstance(support, str):
            support = support.split()
        return frozenset(support)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Device:
        """
        Create a device from a raw discovery payload.

        Accepts either ``host``/``port`` keys or a Yeelight style
        ``location`` such as ``yeelight://192.168.1.20:55443``.

        Args:
            data: Discovery payload

        Returns:
            Device descriptor
        """
        host = data.get("host") or data.get("ip")
        port = data.get("port", DEFAULT_PORT)
        location = data.get("location")
        if not host and location:
            hostport = location.split("://", 1)[-1]
            host, _, port_text = hostport.partition(":")
            if port_text:
                port = int(port_text)
        if not host:
            raise ValueError(f"Device payload has no host: {data!r}")

        reserved = {"id", "host", "ip", "port", "location", "name", "model"}
        capabilities = {k: v for k, v in data.items() if k not in reserved}
        return cls(
            id=str(data["id"]),
            host=host,
            port=int(port),
            name=data.get("name", ""),
            model=data.get("model", ""),
            capabilities=capabilities,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = {"id": self.id, "host": self.host, "port": self.port}
        if self.name:
            data["name"] = self.name
        if self.model:
            data["model"] = self.model
        data.update(self.capabilities)
        return data


# One whole-value observation of the directory
Snapshot = tuple[Device, ...]


@dataclass(frozen=True)
class Response:
    """Outcome of one device command."""

    status: int
    error: Optional[str] = None
    device_id: Optional[str] = None
    result: Any = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def transient(self) -> bool:
        return self.status == STATUS_UNAVAILABLE

    @classmethod
    def success(cls, result: Any = None) -> Response:
        return cls(status=STATUS_OK, result=result)

    @classmethod
    def failure(cls, status: int, error: Optional[str] = None) -> Response:
        return cls(status=status, error=error)


@dataclass(frozen=True)
class AggregateResult:
    """Reduction of every response collected during one invocation."""

    all_succeeded: bool
    errors: list[str] = field(default_factory=list)
    responses: list[Response] = field(default_factory=list, compare=False)

    @property
    def succeeded(self) -> list[Response]:
        return [r for r in self.responses if r.ok]

    @property
    def failed(self) -> list[Response]:
        return [r for r in self.responses if not r.ok]

    def raise_for_failure(self) -> None:
        """Raise AggregateFailure unless every response succeeded."""
        if not self.all_succeeded:
            raise AggregateFailure(self)
