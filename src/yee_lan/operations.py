"""Device operations and the builders that bind them to devices."""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Protocol, Union

from .errors import InvalidOperation
from .invoker import Thunk
from .models import Device, Response

MIN_KELVIN = 1700
MAX_KELVIN = 6500
MIN_DURATION_MS = 30  # Shortest smooth transition a bulb accepts


class Action(Enum):
    """Device actions and their wire method names."""
    POWER = "set_power"
    COLOR_TEMPERATURE = "set_ct_abx"
    RGB = "set_rgb"
    BRIGHTNESS = "set_bright"


class PowerMode(Enum):
    """Transition effect used when changing state."""
    SUDDEN = "sudden"
    SMOOTH = "smooth"


class DeviceCommands(Protocol):
    """Command interface of one connected device."""

    async def set_power(self, on: bool, mode: PowerMode, duration: int) -> Response:
        ...

    async def set_color_temperature(self, kelvin: int) -> Response:
        ...

    async def set_rgb(self, color: int) -> Response:
        ...

    async def set_brightness(self, percent: int) -> Response:
        ...


def parse_color(value: Union[str, int]) -> int:
    """
    Parse an RGB color into a 24-bit integer.

    Accepts ``#rrggbb``, ``rrggbb``, ``r,g,b`` or an integer.

    Examples:
        >>> parse_color("#ff8000")
        16744448
        >>> parse_color("255,128,0")
        16744448
    """
    if isinstance(value, bool):
        raise InvalidOperation(f"Invalid color: {value!r}")
    if isinstance(value, int):
        color = value
    elif "," in str(value):
        try:
            parts = [int(p) for p in str(value).split(",")]
        except ValueError as exc:
            raise InvalidOperation(f"Invalid color: {value!r}") from exc
        if len(parts) != 3 or any(not 0 <= p <= 255 for p in parts):
            raise InvalidOperation(f"Invalid color: {value!r}")
        r, g, b = parts
        color = (r << 16) | (g << 8) | b
    else:
        text = str(value).strip().lstrip("#")
        if len(text) != 6:
            raise InvalidOperation(f"Invalid color: {value!r}")
        try:
            color = int(text, 16)
        except ValueError as exc:
            raise InvalidOperation(f"Invalid color: {value!r}") from exc
    if not 0 <= color <= 0xFFFFFF:
        raise InvalidOperation(f"Color out of range: {value!r}")
    return color


@dataclass(frozen=True)
class Operation:
    """One device action with its validated parameters."""

    action: Action
    params: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def power(cls, on: bool, mode: PowerMode = PowerMode.SMOOTH, duration: int = 500) -> Operation:
        if mode is PowerMode.SMOOTH and duration < MIN_DURATION_MS:
            raise InvalidOperation(f"Smooth duration must be >= {MIN_DURATION_MS}ms")
        return cls(Action.POWER, {"on": bool(on), "mode": mode, "duration": int(duration)})

    @classmethod
    def color_temperature(cls, kelvin: int) -> Operation:
        if not MIN_KELVIN <= kelvin <= MAX_KELVIN:
            raise InvalidOperation(
                f"Color temperature must be between {MIN_KELVIN} and {MAX_KELVIN}K"
            )
        return cls(Action.COLOR_TEMPERATURE, {"kelvin": int(kelvin)})

    @classmethod
    def rgb(cls, color: Union[str, int]) -> Operation:
        return cls(Action.RGB, {"color": parse_color(color)})

    @classmethod
    def brightness(cls, percent: int) -> Operation:
        if not 1 <= percent <= 100:
            raise InvalidOperation("Brightness must be between 1 and 100")
        return cls(Action.BRIGHTNESS, {"percent": int(percent)})

    def bind(self, commands: DeviceCommands) -> Thunk:
        """Return a zero-argument coroutine function running this operation."""
        if self.action is Action.POWER:
            return functools.partial(
                commands.set_power,
                self.params["on"],
                self.params["mode"],
                self.params["duration"],
            )
        if self.action is Action.COLOR_TEMPERATURE:
            return functools.partial(commands.set_color_temperature, self.params["kelvin"])
        if self.action is Action.RGB:
            return functools.partial(commands.set_rgb, self.params["color"])
        return functools.partial(commands.set_brightness, self.params["percent"])

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Operation:
        """
        Create from a configuration entry.

        Examples of accepted entries::

            {"power": "on", "mode": "sudden"}
            {"ct": 2700}
            {"rgb": "#ff8000"}
            {"bright": 40}
        """
        if "power" in data:
            state = data["power"]
            if isinstance(state, str):
                if state.lower() not in ("on", "off"):
                    raise InvalidOperation(f"Invalid power state: {state!r}")
                state = state.lower() == "on"
            try:
                mode = PowerMode(data.get("mode", PowerMode.SMOOTH.value))
            except ValueError as exc:
                raise InvalidOperation(f"Invalid power mode: {data.get('mode')!r}") from exc
            return cls.power(state, mode, int(data.get("duration", 500)))
        if "ct" in data:
            return cls.color_temperature(int(data["ct"]))
        if "rgb" in data:
            return cls.rgb(data["rgb"])
        if "bright" in data:
            return cls.brightness(int(data["bright"]))
        raise InvalidOperation(f"Unknown operation: {dict(data)!r}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        if self.action is Action.POWER:
            return {
                "power": "on" if self.params["on"] else "off",
                "mode": self.params["mode"].value,
                "duration": self.params["duration"],
            }
        if self.action is Action.COLOR_TEMPERATURE:
            return {"ct": self.params["kelvin"]}
        if self.action is Action.RGB:
            return {"rgb": f"#{self.params['color']:06x}"}
        return {"bright": self.params["percent"]}


def supports(device: Device, operation: Operation) -> bool:
    """Check whether ``device`` advertises the wire method ``operation`` needs."""
    support = device.support
    return support is None or operation.action.value in support


def build_operations(
    operations: Iterable[Operation],
    connect: Callable[[Device], DeviceCommands],
    skip_unsupported: bool = False,
) -> Callable[[Device], list[Thunk]]:
    """
    Create an operation builder for CommandDispatcher.run.

    Args:
        operations: Operations applied to every device
        connect: Returns the command interface of a device
        skip_unsupported: Leave out operations a device does not advertise

    Returns:
        Builder mapping a device to its bound thunks
    """
    operations = list(operations)

    def builder(device: Device) -> list[Thunk]:
        selected = [
            op for op in operations
            if not skip_unsupported or supports(device, op)
        ]
        if not selected:
            return []
        commands = connect(device)
        return [op.bind(commands) for op in selected]

    return builder
