"""Protocol helpers for Archipelago command frames.

Every WebSocket text frame carries a JSON array of command objects, each
identified by its ``cmd`` field. This module builds the outbound commands a
text-only client sends and validates the inbound payloads it consumes.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from .errors import ArchipelagoProtocolError

DEFAULT_PROTOCOL_VERSION: tuple[int, int, int] = (0, 5, 1)
DEFAULT_TAGS: tuple[str, ...] = ("TextOnly", "Spectator")
ITEMS_HANDLING_NONE = 0b000

INVALID_PASSWORD = "InvalidPassword"

# Commands a text-only spectator accepts without acting on them.
IGNORED_COMMANDS = frozenset({"ReceivedItems", "LocationInfo", "RoomUpdate", "Bounced"})


@dataclass(frozen=True)
class NetworkPlayer:
    """One entry of the player roster sent with ``Connected``."""

    team: int
    slot: int
    alias: str
    name: str


@dataclass(frozen=True)
class ConnectedInfo:
    """Validated payload of a ``Connected`` command."""

    team: int
    slot: int
    players: tuple[NetworkPlayer, ...]


def build_version(version: Sequence[int]) -> dict[str, Any]:
    """Encode a (major, minor, build) tuple as a NetworkVersion object."""
    if len(version) != 3:
        raise ValueError("Protocol version must have exactly three components")
    major, minor, build = (int(part) for part in version)
    return {"major": major, "minor": minor, "build": build, "class": "Version"}


def build_connect(
    *,
    name: str,
    uuid: str,
    password: str | None = None,
    tags: Iterable[str] = DEFAULT_TAGS,
    version: Sequence[int] = DEFAULT_PROTOCOL_VERSION,
    items_handling: int = ITEMS_HANDLING_NONE,
) -> dict[str, Any]:
    """Construct the ``Connect`` authentication command.

    ``game`` is always null: the client joins as a spectator rather than as a
    game implementation.
    """
    return {
        "cmd": "Connect",
        "game": None,
        "name": name,
        "uuid": uuid,
        "tags": list(tags),
        "password": password,
        "version": build_version(version),
        "items_handling": items_handling,
    }


def build_get_data_package() -> dict[str, Any]:
    """Construct a ``GetDataPackage`` request for every game in the room."""
    return {"cmd": "GetDataPackage"}


def build_say(text: str) -> dict[str, Any]:
    """Construct a ``Say`` chat command."""
    return {"cmd": "Say", "text": text}


def _require_int(payload: dict[str, Any], key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ArchipelagoProtocolError(f"{key} must be an integer, got {value!r}")
    return value


def parse_network_player(entry: Any) -> NetworkPlayer:
    """Validate one roster entry."""
    if not isinstance(entry, dict):
        raise ArchipelagoProtocolError("Roster entry must be an object")
    name = entry.get("name")
    if not isinstance(name, str):
        raise ArchipelagoProtocolError("Roster entry is missing a name")
    alias = entry.get("alias")
    return NetworkPlayer(
        team=_require_int(entry, "team"),
        slot=_require_int(entry, "slot"),
        alias=alias if isinstance(alias, str) else name,
        name=name,
    )


def parse_connected(command: dict[str, Any]) -> ConnectedInfo:
    """Extract team, slot and roster from a ``Connected`` command.

    Raises ArchipelagoProtocolError if any required field is missing or has
    the wrong type.
    """
    players_raw = command.get("players")
    if not isinstance(players_raw, list):
        raise ArchipelagoProtocolError("Connected.players must be a list")
    return ConnectedInfo(
        team=_require_int(command, "team"),
        slot=_require_int(command, "slot"),
        players=tuple(parse_network_player(entry) for entry in players_raw),
    )


def parse_connection_refused(command: dict[str, Any]) -> tuple[str, ...]:
    """Return the error identifiers of a ``ConnectionRefused`` command."""
    errors = command.get("errors", [])
    if not isinstance(errors, list):
        raise ArchipelagoProtocolError("ConnectionRefused.errors must be a list")
    return tuple(str(error) for error in errors)
