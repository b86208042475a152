"""Client configuration loaded from YAML.

Settings are data: a config file may override any field of ClientConfig and
nothing else. Connection details (server, player, password) are not part of
the file; they arrive per connect request or through startup overrides.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .address import DEFAULT_SERVER_PORT
from .protocol import DEFAULT_PROTOCOL_VERSION, DEFAULT_TAGS, ITEMS_HANDLING_NONE

MAX_RECONNECT_ATTEMPTS = 10
RECONNECT_DELAY = 5.0


class ConfigLoadError(ValueError):
    """Raised when a config file is missing or invalid."""


@dataclass(frozen=True)
class ClientConfig:
    """Configuration for an Archipelago session.

    Attributes:
        default_port: Port appended to addresses that carry none.
        max_reconnect_attempts: Abnormal closes tolerated before giving up.
        reconnect_delay: Seconds between a close and the next attempt.
        connect_timeout: Seconds allowed for one WebSocket open.
        ping_interval: Keepalive ping interval of the socket (seconds).
        tags: Capability tags declared in ``Connect``.
        items_handling: Items-handling bitmask declared in ``Connect``.
        protocol_version: (major, minor, build) declared in ``Connect``.
        identity_path: YAML file holding the client id, or None for memory only.
    """

    default_port: int = DEFAULT_SERVER_PORT
    max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS
    reconnect_delay: float = RECONNECT_DELAY
    connect_timeout: float = 15.0
    ping_interval: int = 20
    tags: tuple[str, ...] = DEFAULT_TAGS
    items_handling: int = ITEMS_HANDLING_NONE
    protocol_version: tuple[int, int, int] = DEFAULT_PROTOCOL_VERSION
    identity_path: Path | None = field(default=None)

    def __post_init__(self) -> None:
        if self.max_reconnect_attempts < 1:
            raise ValueError("max_reconnect_attempts must be at least 1")
        if self.reconnect_delay < 0:
            raise ValueError("reconnect_delay must not be negative")
        if len(self.protocol_version) != 3:
            raise ValueError("protocol_version must have three components")


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file with error handling."""
    if not path.exists():
        raise ConfigLoadError(f"File not found: {path}")
    with path.open() as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigLoadError(f"{path} must contain a mapping")
    return data


def config_from_mapping(data: dict[str, Any]) -> ClientConfig:
    """Build a ClientConfig from a plain mapping.

    Raises:
        ConfigLoadError: On unknown keys or values that fail validation.
    """
    known = {f.name for f in fields(ClientConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigLoadError(f"Unknown config keys: {', '.join(unknown)}")

    values = dict(data)
    if "tags" in values:
        values["tags"] = tuple(values["tags"])
    if "protocol_version" in values:
        values["protocol_version"] = tuple(int(part) for part in values["protocol_version"])
    if values.get("identity_path") is not None:
        values["identity_path"] = Path(values["identity_path"]).expanduser()
    try:
        return ClientConfig(**values)
    except (TypeError, ValueError) as err:
        raise ConfigLoadError(str(err)) from err


def load_config(path: Path | str) -> ClientConfig:
    """Load client configuration from a YAML file."""
    return config_from_mapping(_load_yaml(Path(path)))
