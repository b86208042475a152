"""High-level session manager for Archipelago server communication.

This module owns the whole client-side lifecycle of one server connection:
- Transport selection (secure first) and bounded reconnection
- Room handshake and authentication as a text-only spectator
- Dispatch of server commands to the log sink and shared lookup tables

Each user-initiated connect starts one connection loop task. Starting a new
request or closing the session cancels that task, which in turn closes its
socket and drops any pending retry sleep.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .address import ConnectionTarget, parse_address
from .collaborators import LogSink, NullLogSink
from .config import ClientConfig
from .data_package import ItemLocationIndex
from .errors import (
    ArchipelagoAuthError,
    ArchipelagoClientError,
    ArchipelagoProtocolError,
    ArchipelagoRetriesExhausted,
)
from .identity import ClientIdProvider, MemoryStorage, YamlFileStorage
from .protocol import (
    IGNORED_COMMANDS,
    INVALID_PASSWORD,
    NetworkPlayer,
    build_connect,
    build_get_data_package,
    build_say,
    parse_connected,
    parse_connection_refused,
)
from .reconnect import ReconnectSupervisor
from .ws_client import ArchipelagoWsClient, ArchipelagoWsMessage, ArchipelagoWsMessageType

_LOGGER = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = "A server and player name are required to connect."
PASSWORD_REQUIRED_MESSAGE = (
    "A password is required to connect to the server. "
    "Please use /connect [server] [password]"
)
PASSWORD_REJECTED_MESSAGE = "The password you provided was rejected by the server."
CONNECTION_LOST_MESSAGE = (
    "Archipelago server connection lost. The connection closed unexpectedly. "
    "Please try to reconnect, or restart the client."
)
GAVE_UP_MESSAGE = (
    "Unable to connect to the Archipelago server after {attempts} attempts. "
    "Check the address and try again."
)


class ConnectionState(Enum):
    """Connection state reported to the status display."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    AUTH_ERROR = "auth_error"


@dataclass(frozen=True)
class SessionCredentials:
    """Identity presented to the server for one connect request."""

    player_name: str
    client_id: str
    password: str | None = None


_CommandHandler = Callable[[ArchipelagoWsClient, dict[str, Any]], Awaitable[None]]


class ArchipelagoSession:
    """Text-only spectator session against an Archipelago server.

    Usage:
        session = ArchipelagoSession(log_sink=my_sink)
        session.on_connection_state_changed(my_status_handler)
        await session.connect("archipelago.gg:38281", "Alice")
        await session.say("hello")
        await session.close()
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        log_sink: LogSink | None = None,
        identity: ClientIdProvider | None = None,
    ) -> None:
        """Initialize session.

        Args:
            config: Client configuration (defaults apply when omitted)
            log_sink: Receiver for user-facing output
            identity: Client id provider; built from config.identity_path if omitted
        """
        self.config = config or ClientConfig()
        self._log_sink: LogSink = log_sink or NullLogSink()
        if identity is None:
            storage = (
                YamlFileStorage(self.config.identity_path)
                if self.config.identity_path is not None
                else MemoryStorage()
            )
            identity = ClientIdProvider(storage)
        self._identity = identity
        self._supervisor = ReconnectSupervisor(
            max_attempts=self.config.max_reconnect_attempts,
            retry_delay=self.config.reconnect_delay,
        )

        # Connection state
        self._ws: ArchipelagoWsClient | None = None
        self._connection_state = ConnectionState.DISCONNECTED
        self._connection_task: asyncio.Task[None] | None = None
        self._target: ConnectionTarget | None = None
        self._current_target: ConnectionTarget | None = None
        self._credentials: SessionCredentials | None = None
        self._last_error: ArchipelagoClientError | None = None

        # Room state
        self._room_info: dict[str, Any] = {}
        self._players: tuple[NetworkPlayer, ...] = ()
        self._team: int | None = None
        self._slot: int | None = None
        self._last_server_url: str | None = None
        self.index = ItemLocationIndex()

        # Callbacks
        self._connection_state_callback: Callable[[ConnectionState], None] | None = None
        self._data_package_callback: Callable[[ItemLocationIndex], None] | None = None

        self._handlers: dict[str, _CommandHandler] = {
            "RoomInfo": self._handle_room_info,
            "Connected": self._handle_connected,
            "ConnectionRefused": self._handle_connection_refused,
            "Print": self._handle_print,
            "PrintJSON": self._handle_print_json,
            "DataPackage": self._handle_data_package,
        }

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    async def connect(
        self, address: str, player: str, password: str | None = None
    ) -> bool:
        """Start a user-initiated connection request.

        Any previous connection, pending retry included, is cancelled first.
        An empty address or player name stops all reconnection instead.

        Returns:
            True if a connection loop was started, False otherwise
        """
        if not address or not player:
            self._write_log(REQUIRED_FIELDS_MESSAGE)
            self._supervisor.suppress()
            await self._stop_connection()
            return False

        await self._stop_connection()

        self._target = parse_address(address, default_port=self.config.default_port)
        self._credentials = SessionCredentials(
            player_name=player,
            client_id=self._identity.get_client_id(),
            password=password,
        )
        self._last_error = None
        self._supervisor.begin()
        self._connection_task = asyncio.create_task(self._run(self._target))
        return True

    async def close(self) -> None:
        """Gracefully close session."""
        _LOGGER.info("[%s] Closing session", self.player_name)
        self._supervisor.halt()
        await self._stop_connection()

    async def wait_closed(self) -> None:
        """Wait until the current connection loop has finished."""
        task = self._connection_task
        if task is not None:
            await asyncio.wait({task})

    async def say(self, text: str) -> bool:
        """Send a chat message to the server.

        Returns:
            True if sent, False when no open socket is available
        """
        ws = self._ws
        if ws is None or not ws.is_open:
            return False
        try:
            await ws.send_commands(build_say(text))
            return True
        except ArchipelagoClientError as err:
            _LOGGER.error("[%s] Failed to send message: %s", self.player_name, err)
            return False

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection_state

    @property
    def is_connected(self) -> bool:
        """Check if session is connected and authenticated."""
        return self._connection_state is ConnectionState.CONNECTED

    @property
    def target(self) -> ConnectionTarget | None:
        """Server requested by the last user-initiated connect."""
        return self._target

    @property
    def player_name(self) -> str | None:
        return self._credentials.player_name if self._credentials else None

    @property
    def players(self) -> tuple[NetworkPlayer, ...]:
        return self._players

    @property
    def team(self) -> int | None:
        return self._team

    @property
    def slot(self) -> int | None:
        return self._slot

    @property
    def room_info(self) -> dict[str, Any]:
        return self._room_info

    @property
    def last_server_url(self) -> str | None:
        """URL of the last server that accepted authentication."""
        return self._last_server_url

    @property
    def last_error(self) -> ArchipelagoClientError | None:
        """Terminal failure of the current request, if any."""
        return self._last_error

    @property
    def reconnect(self) -> ReconnectSupervisor:
        return self._supervisor

    # -------------------------------------------------------------------------
    # Public API: Callbacks
    # -------------------------------------------------------------------------

    def on_connection_state_changed(
        self, callback: Callable[[ConnectionState], None]
    ) -> None:
        """Register callback for connection state changes."""
        self._connection_state_callback = callback

    def on_data_package(self, callback: Callable[[ItemLocationIndex], None]) -> None:
        """Register callback invoked after each data package merge."""
        self._data_package_callback = callback

    # -------------------------------------------------------------------------
    # Internal: Connection Loop
    # -------------------------------------------------------------------------

    def _set_state(self, state: ConnectionState) -> None:
        """Update connection state and notify callback."""
        if self._connection_state is not state:
            _LOGGER.debug(
                "[%s] State: %s → %s",
                self.player_name,
                self._connection_state.value,
                state.value,
            )
            self._connection_state = state
            if self._connection_state_callback:
                self._connection_state_callback(state)

    def _write_log(self, text: str) -> None:
        """Pass a line to the log sink; sink failures never reach the socket."""
        try:
            self._log_sink.write(text)
        except Exception as err:
            _LOGGER.exception("[%s] Log sink error: %s", self.player_name, err)

    def _write_log_json(self, data: list[Any]) -> None:
        try:
            self._log_sink.write_json(data)
        except Exception as err:
            _LOGGER.exception("[%s] Log sink error: %s", self.player_name, err)

    async def _stop_connection(self) -> None:
        """Cancel the connection loop and close its socket."""
        task = self._connection_task
        self._connection_task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if self._ws is not None:
            ws = self._ws
            self._ws = None
            await self._close_ws(ws)

        self._set_state(ConnectionState.DISCONNECTED)

    async def _close_ws(self, ws: ArchipelagoWsClient) -> None:
        try:
            await asyncio.wait_for(ws.close(), timeout=2.0)
        except TimeoutError:
            _LOGGER.warning("[%s] WebSocket close timed out", self.player_name)

    async def _run(self, target: ConnectionTarget) -> None:
        """Attempt connections until authenticated and closed for good."""
        while True:
            attempt_target = target.with_scheme(self._supervisor.use_secure())
            url = attempt_target.url
            self._set_state(ConnectionState.CONNECTING)

            _LOGGER.info(
                "[%s] Connecting to %s (attempt #%d)",
                self.player_name,
                url,
                self._supervisor.attempts + 1,
            )

            ws = ArchipelagoWsClient()
            try:
                await ws.connect(
                    url,
                    ping_interval=self.config.ping_interval,
                    timeout=self.config.connect_timeout,
                )
            except ArchipelagoClientError as err:
                _LOGGER.warning("[%s] Connection failed: %s", self.player_name, err)
            else:
                await self._serve(ws, attempt_target)

            if self._connection_state is not ConnectionState.AUTH_ERROR:
                self._set_state(ConnectionState.DISCONNECTED)

            delay = self._supervisor.connection_lost()
            if delay is None:
                if self._supervisor.gave_up:
                    attempts = self._supervisor.attempts
                    self._last_error = ArchipelagoRetriesExhausted(attempts)
                    self._write_log(GAVE_UP_MESSAGE.format(attempts=attempts))
                return

            _LOGGER.info(
                "[%s] Reconnecting in %.1fs (attempt %d of %d)",
                self.player_name,
                delay,
                self._supervisor.attempts + 1,
                self._supervisor.counter.max_attempts,
            )
            await asyncio.sleep(delay)
            self._supervisor.retrying()

    async def _serve(self, ws: ArchipelagoWsClient, target: ConnectionTarget) -> None:
        """Dispatch messages from one open socket until it closes."""
        self._ws = ws
        self._current_target = target
        self._supervisor.opened()
        self._write_log(f"Connected to Archipelago server at {target.url}")
        _LOGGER.info("[%s] WebSocket connected, waiting for RoomInfo", self.player_name)

        message_count = 0
        try:
            async for msg in ws:
                if ws is not self._ws:
                    _LOGGER.debug("[%s] Ignoring frame from stale socket", self.player_name)
                    break
                message_count += 1

                if msg.type is ArchipelagoWsMessageType.TEXT:
                    await self._handle_frame(ws, msg)
                    if self._connection_state is ConnectionState.AUTH_ERROR:
                        break

                elif msg.type is ArchipelagoWsMessageType.CLOSED:
                    _LOGGER.info("[%s] WebSocket closed by server", self.player_name)
                    break

                elif msg.type is ArchipelagoWsMessageType.ERROR:
                    _LOGGER.error("[%s] WebSocket error", self.player_name)
                    self._write_log(CONNECTION_LOST_MESSAGE)
                    break

        except ArchipelagoClientError as err:
            _LOGGER.warning("[%s] Client error: %s", self.player_name, err)
        except asyncio.CancelledError:
            _LOGGER.debug(
                "[%s] Listener cancelled (%d messages)", self.player_name, message_count
            )
            raise
        except Exception as err:
            _LOGGER.exception("[%s] Unexpected error: %s", self.player_name, err)
        finally:
            if self._ws is ws:
                self._ws = None
            await self._close_ws(ws)

    async def _handle_frame(
        self, ws: ArchipelagoWsClient, msg: ArchipelagoWsMessage
    ) -> None:
        """Decode one text frame and run its commands in order."""
        try:
            commands = ws.decode_commands(msg)
        except ArchipelagoProtocolError as err:
            _LOGGER.warning("[%s] Invalid message: %s", self.player_name, err)
            return

        for command in commands:
            cmd = command["cmd"]
            handler = self._handlers.get(cmd)
            if handler is None:
                if cmd not in IGNORED_COMMANDS:
                    _LOGGER.debug("[%s] Unknown command: %s", self.player_name, cmd)
                continue

            try:
                await handler(ws, command)
            except ArchipelagoProtocolError as err:
                _LOGGER.warning("[%s] Invalid %s command: %s", self.player_name, cmd, err)

            if self._connection_state is ConnectionState.AUTH_ERROR:
                return

    # -------------------------------------------------------------------------
    # Internal: Command Handlers
    # -------------------------------------------------------------------------

    async def _handle_room_info(
        self, ws: ArchipelagoWsClient, command: dict[str, Any]
    ) -> None:
        """Answer the room handshake with our credentials."""
        self._room_info = command
        credentials = self._credentials
        if credentials is None:
            return

        await ws.send_commands(
            build_connect(
                name=credentials.player_name,
                uuid=credentials.client_id,
                password=credentials.password,
                tags=self.config.tags,
                version=self.config.protocol_version,
                items_handling=self.config.items_handling,
            )
        )
        _LOGGER.debug("[%s] Connect sent", self.player_name)

    async def _handle_connected(
        self, ws: ArchipelagoWsClient, command: dict[str, Any]
    ) -> None:
        """Store the roster and request the data package."""
        info = parse_connected(command)
        self._players = info.players
        self._team = info.team
        self._slot = info.slot

        target = self._current_target
        if target is not None:
            self._last_server_url = target.url
            self._supervisor.authenticated(secure=target.is_secure)

        self._set_state(ConnectionState.CONNECTED)
        _LOGGER.info(
            "[%s] Authenticated (team %d, slot %d, %d players)",
            self.player_name,
            info.team,
            info.slot,
            len(info.players),
        )

        if ws.is_open:
            await ws.send_commands(build_get_data_package())

    async def _handle_connection_refused(
        self, ws: ArchipelagoWsClient, command: dict[str, Any]
    ) -> None:
        """Report refused credentials and stop retrying this request."""
        errors = parse_connection_refused(command)
        if INVALID_PASSWORD in errors:
            has_password = bool(self._credentials and self._credentials.password)
            message = PASSWORD_REJECTED_MESSAGE if has_password else PASSWORD_REQUIRED_MESSAGE
        else:
            message = f"Error while connecting to AP server: {', '.join(errors)}."

        _LOGGER.error(
            "[%s] Authentication rejected: %s", self.player_name, ", ".join(errors)
        )
        self._write_log(message)
        self._last_error = ArchipelagoAuthError(errors, message)
        self._supervisor.halt()
        self._set_state(ConnectionState.AUTH_ERROR)

    async def _handle_print(self, ws: ArchipelagoWsClient, command: dict[str, Any]) -> None:
        text = command.get("text")
        if not isinstance(text, str):
            raise ArchipelagoProtocolError("Print.text must be a string")
        self._write_log(text)

    async def _handle_print_json(
        self, ws: ArchipelagoWsClient, command: dict[str, Any]
    ) -> None:
        data = command.get("data")
        if not isinstance(data, list):
            raise ArchipelagoProtocolError("PrintJSON.data must be a list")
        self._write_log_json(data)

    async def _handle_data_package(
        self, ws: ArchipelagoWsClient, command: dict[str, Any]
    ) -> None:
        """Merge a data package into the item/location index."""
        data = command.get("data")
        if not isinstance(data, dict):
            raise ArchipelagoProtocolError("DataPackage.data must be an object")
        self.index.merge(data)
        _LOGGER.debug(
            "[%s] Data package merged (%d items, %d locations)",
            self.player_name,
            len(self.index.items),
            len(self.index.locations),
        )

        if self._data_package_callback:
            try:
                self._data_package_callback(self.index)
            except Exception as err:
                _LOGGER.exception(
                    "[%s] Data package callback error: %s", self.player_name, err
                )
