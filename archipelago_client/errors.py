"""Client error types for Archipelago server interactions."""

from __future__ import annotations

from collections.abc import Sequence


class ArchipelagoClientError(Exception):
    """Base error for Archipelago client failures."""


class ArchipelagoTimeout(ArchipelagoClientError):
    """Timeout while communicating with the server."""


class ArchipelagoConnectionError(ArchipelagoClientError):
    """Network connection to the server failed or was lost."""


class ArchipelagoHandshakeError(ArchipelagoClientError):
    """WebSocket handshake failed."""


class ArchipelagoProtocolError(ArchipelagoClientError):
    """Malformed frame or command received from the server."""


class ArchipelagoAuthError(ArchipelagoClientError):
    """Server refused the supplied credentials."""

    def __init__(self, errors: Sequence[str], message: str | None = None) -> None:
        self.errors = tuple(errors)
        super().__init__(message or f"Connection refused: {', '.join(self.errors)}")


class ArchipelagoRetriesExhausted(ArchipelagoClientError):
    """Reconnect budget used up without a successful connection."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Gave up after {attempts} connection attempts")
        self.attempts = attempts
