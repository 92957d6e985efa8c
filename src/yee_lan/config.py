"""Configuration management for yee-lan."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .errors import ConfigError, InvalidOperation
from .operations import Operation

logger = logging.getLogger(__name__)


# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".yee_lan"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"

DEFAULT_PRESETS: dict[str, list[dict[str, Any]]] = {
    "bright": [{"power": "on", "mode": "smooth", "duration": 500}, {"ct": 5000}, {"bright": 100}],
    "dim": [{"power": "on", "mode": "smooth", "duration": 500}, {"bright": 10}],
    "warm": [{"power": "on", "mode": "smooth", "duration": 500}, {"ct": 2700}, {"bright": 60}],
    "off": [{"power": "off", "mode": "smooth", "duration": 500}],
}


def default_presets() -> dict[str, list[dict[str, Any]]]:
    """Fresh copy of DEFAULT_PRESETS that is safe to modify."""
    return {name: [dict(entry) for entry in entries] for name, entries in DEFAULT_PRESETS.items()}


@dataclass
class DiscoveryPreferences:
    """Discovery readiness settings."""

    expected_count: Optional[int] = None
    timeout: float = 5.0
    max_retries: int = 2

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {"timeout": self.timeout, "max_retries": self.max_retries}
        if self.expected_count is not None:
            data["expected_count"] = self.expected_count
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DiscoveryPreferences:
        """Create from dictionary."""
        expected = data.get("expected_count")
        return cls(
            expected_count=int(expected) if expected is not None else None,
            timeout=float(data.get("timeout", 5.0)),
            max_retries=int(data.get("max_retries", 2)),
        )


@dataclass
class RetryPreferences:
    """Transient-failure retry settings."""

    delay: float = 0.5
    max_attempts: int = 10
    backoff: float = 1.0
    max_delay: float = 5.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "delay": self.delay,
            "max_attempts": self.max_attempts,
            "backoff": self.backoff,
            "max_delay": self.max_delay,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RetryPreferences:
        """Create from dictionary."""
        return cls(
            delay=float(data.get("delay", 0.5)),
            max_attempts=int(data.get("max_attempts", 10)),
            backoff=float(data.get("backoff", 1.0)),
            max_delay=float(data.get("max_delay", 5.0)),
        )


@dataclass
class DispatchPreferences:
    """Fan-out settings."""

    concurrency: Optional[int] = None
    skip_unsupported: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {"skip_unsupported": self.skip_unsupported}
        if self.concurrency is not None:
            data["concurrency"] = self.concurrency
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DispatchPreferences:
        """Create from dictionary."""
        concurrency = data.get("concurrency")
        return cls(
            concurrency=int(concurrency) if concurrency is not None else None,
            skip_unsupported=bool(data.get("skip_unsupported", False)),
        )


@dataclass
class ConsoleConfig:
    """Main configuration for yee-lan."""

    discovery: DiscoveryPreferences = field(default_factory=DiscoveryPreferences)
    retry: RetryPreferences = field(default_factory=RetryPreferences)
    dispatch: DispatchPreferences = field(default_factory=DispatchPreferences)
    presets: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    log_level: str = "WARNING"

    def preset_operations(self, name: str) -> list[Operation]:
        """
        Resolve a named preset into operations.

        Raises:
            ConfigError: If the preset is unknown or one of its entries is invalid
        """
        entries = self.presets.get(name)
        if entries is None:
            available = ", ".join(sorted(self.presets)) or "none"
            raise ConfigError(f"Unknown preset '{name}' (available: {available})")
        try:
            return [Operation.from_dict(entry) for entry in entries]
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid preset '{name}': {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "discovery": self.discovery.to_dict(),
            "retry": self.retry.to_dict(),
            "dispatch": self.dispatch.to_dict(),
            "presets": self.presets,
            "log_level": self.log_level,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConsoleConfig:
        """Create from dictionary."""
        return cls(
            discovery=DiscoveryPreferences.from_dict(data.get("discovery", {})),
            retry=RetryPreferences.from_dict(data.get("retry", {})),
            dispatch=DispatchPreferences.from_dict(data.get("dispatch", {})),
            presets=data.get("presets", default_presets()),
            log_level=data.get("log_level", "WARNING"),
        )

    @classmethod
    def load(cls, config_file: Path = DEFAULT_CONFIG_FILE) -> ConsoleConfig:
        """Load configuration from file, then apply environment overrides."""
        if not config_file.exists():
            config = cls.create_default()
        else:
            try:
                with open(config_file, "r") as f:
                    data = yaml.safe_load(f) or {}
                config = cls.from_dict(data)
            except (OSError, yaml.YAMLError, TypeError, ValueError, AttributeError) as e:
                logger.warning("Failed to load config from %s: %s", config_file, e)
                config = cls.create_default()
        config.apply_env()
        return config

    def save(self, config_file: Path = DEFAULT_CONFIG_FILE) -> None:
        """Save configuration to file."""
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, "w") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False, default_flow_style=False)

    @classmethod
    def create_default(cls) -> ConsoleConfig:
        """Create default configuration."""
        return cls(presets=default_presets())

    def apply_env(self) -> None:
        """
        Override settings from YEE_LAN_* environment variables.

        Raises:
            ConfigError: If a numeric variable does not parse
        """
        try:
            expected = os.environ.get("YEE_LAN_EXPECTED_COUNT")
            if expected:
                self.discovery.expected_count = int(expected)

            timeout = os.environ.get("YEE_LAN_TIMEOUT")
            if timeout:
                self.discovery.timeout = float(timeout)

            retries = os.environ.get("YEE_LAN_MAX_RETRIES")
            if retries:
                self.discovery.max_retries = int(retries)
        except ValueError as exc:
            raise ConfigError(f"Invalid YEE_LAN_* environment value: {exc}") from exc

        level = os.environ.get("YEE_LAN_LOG_LEVEL")
        if level:
            self.log_level = level.upper()
