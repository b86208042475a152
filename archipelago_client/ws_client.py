"""WebSocket client wrapper for Archipelago servers."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK
from websockets.protocol import State

from .errors import (
    ArchipelagoClientError,
    ArchipelagoConnectionError,
    ArchipelagoProtocolError,
)
from .ws import connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class ArchipelagoWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class ArchipelagoWsMessage:
    """Normalized WebSocket message payload."""

    type: ArchipelagoWsMessageType
    data: str | None = None


class ArchipelagoWsClient:
    """Wrapper around the websockets library for one Archipelago connection."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None
        self.url: str | None = None

    async def connect(
        self,
        url: str,
        *,
        ping_interval: int = 20,
        timeout: float = 15.0,
    ) -> None:
        """Connect to the server websocket."""
        self._ws = await connect_websocket(
            url,
            ping_interval=ping_interval,
            timeout=timeout,
        )
        self.url = url

    async def close(self) -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            await self._ws.close()

    @property
    def is_open(self) -> bool:
        """Return True while the socket can carry outbound frames."""
        return self._ws is not None and self._ws.state is State.OPEN

    async def send_commands(self, *commands: dict[str, Any]) -> None:
        """Send one frame holding the given commands as a JSON array."""
        if self._ws is None:
            raise ArchipelagoConnectionError("WebSocket is not connected")
        try:
            await self._ws.send(json.dumps(list(commands)))
        except ConnectionClosed as err:
            raise ArchipelagoConnectionError("WebSocket closed while sending") from err

    def __aiter__(self) -> AsyncIterator[ArchipelagoWsMessage]:
        if self._ws is None:
            raise ArchipelagoConnectionError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[ArchipelagoWsMessage]:
        if self._ws is None:
            raise ArchipelagoConnectionError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                normalized = self._normalize_message(msg)
                if normalized is None:
                    continue
                yield normalized
        except ConnectionClosedOK:
            yield ArchipelagoWsMessage(type=ArchipelagoWsMessageType.CLOSED)
        except ConnectionClosed:
            # Abnormal close: no close frame, or an error code from either side.
            yield ArchipelagoWsMessage(type=ArchipelagoWsMessageType.ERROR)
        except Exception:
            yield ArchipelagoWsMessage(type=ArchipelagoWsMessageType.ERROR)
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield ArchipelagoWsMessage(type=ArchipelagoWsMessageType.CLOSED)

    @staticmethod
    def _normalize_message(msg: str | bytes) -> ArchipelagoWsMessage | None:
        """Normalize a received frame; binary frames are not part of the protocol."""
        if isinstance(msg, str):
            return ArchipelagoWsMessage(ArchipelagoWsMessageType.TEXT, msg)
        return None

    @staticmethod
    def decode_commands(message: ArchipelagoWsMessage) -> list[dict[str, Any]]:
        """Decode a TEXT frame into its list of command objects.

        Entries that are not objects carrying a string ``cmd`` are dropped.
        """
        if message.type is not ArchipelagoWsMessageType.TEXT:
            raise ArchipelagoClientError("Only TEXT messages can be decoded")
        if not isinstance(message.data, str):
            raise ArchipelagoProtocolError("Message data is not a string")
        try:
            decoded = json.loads(message.data)
        except ValueError as err:
            raise ArchipelagoProtocolError(f"Invalid JSON frame: {err}") from err
        if not isinstance(decoded, list):
            raise ArchipelagoProtocolError(
                f"Expected a JSON array of commands, got {type(decoded).__name__}"
            )
        return [
            command
            for command in decoded
            if isinstance(command, dict) and isinstance(command.get("cmd"), str)
        ]
