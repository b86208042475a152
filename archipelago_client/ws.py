"""WebSocket helpers for the Archipelago server transport."""

from __future__ import annotations

import asyncio

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from .errors import (
    ArchipelagoConnectionError,
    ArchipelagoHandshakeError,
    ArchipelagoTimeout,
)


async def connect_websocket(
    url: str,
    *,
    ping_interval: int | None = 20,
    timeout: float = 15.0,
) -> ClientConnection:
    """Connect to an Archipelago server WebSocket.

    Args:
        url: Full ``wss://`` or ``ws://`` URL including the port
        ping_interval: Interval for ping frames
        timeout: Connection timeout

    The secure scheme uses the default TLS context of the websockets library.
    """
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                ping_interval=ping_interval,
                close_timeout=5,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise ArchipelagoTimeout(f"WebSocket connection to {url} timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise ArchipelagoHandshakeError(
            f"WebSocket handshake with {url} failed"
        ) from err
    except (OSError, WebSocketException) as err:
        raise ArchipelagoConnectionError(
            f"WebSocket connection to {url} failed"
        ) from err
