"""Server address parsing and transport scheme selection."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from urllib.parse import parse_qs

DEFAULT_SERVER_PORT = 38281

_CONNECT_PREFIX = "/connect "
_PORT_SUFFIX = re.compile(r":\d+$")


@dataclass(frozen=True)
class ConnectionTarget:
    """Host and port of an Archipelago server plus the transport scheme.

    Attributes:
        host: Hostname or address exactly as typed, minus any port suffix.
        port: Server port.
        is_secure: True for ``wss://``, False for ``ws://``.
    """

    host: str
    port: int
    is_secure: bool = True

    @property
    def scheme(self) -> str:
        return "wss" if self.is_secure else "ws"

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    def with_scheme(self, secure: bool) -> ConnectionTarget:
        """Return the same target using the secure or plaintext scheme."""
        if secure is self.is_secure:
            return self
        return replace(self, is_secure=secure)


def normalize_address(address: str, *, default_port: int = DEFAULT_SERVER_PORT) -> str:
    """Strip a ``/connect`` prefix and append the default port when missing."""
    if address.startswith(_CONNECT_PREFIX):
        address = address[len(_CONNECT_PREFIX) :]
    if _PORT_SUFFIX.search(address) is None:
        address = f"{address}:{default_port}"
    return address


def parse_address(
    address: str,
    *,
    default_port: int = DEFAULT_SERVER_PORT,
    secure: bool = True,
) -> ConnectionTarget:
    """Turn a user-supplied server address into a ConnectionTarget.

    Only the port is defaulted; anything else malformed is passed through and
    left for the connection attempt to reject.

    Raises:
        ValueError: If the address is empty
    """
    if not address:
        raise ValueError("A server address is required")
    host, _, port = normalize_address(address, default_port=default_port).rpartition(
        ":"
    )
    return ConnectionTarget(host=host, port=int(port), is_secure=secure)


@dataclass(frozen=True)
class StartupOptions:
    """Query-style overrides supplied when the client starts."""

    server: str | None = None
    player: str | None = None
    password: str | None = None
    hide_ui: bool = False

    @property
    def should_autoconnect(self) -> bool:
        return bool(self.server and self.player)


def _parse_flag(value: str | None) -> bool:
    if value is None:
        return False
    try:
        return int(value) != 0
    except ValueError:
        return False


def parse_startup_query(query: str) -> StartupOptions:
    """Read ``server``, ``player``, ``password`` and ``hideui`` from a query string."""
    params = parse_qs(query.removeprefix("?"), keep_blank_values=True)

    def first(name: str) -> str | None:
        values = params.get(name)
        return values[0] if values else None

    return StartupOptions(
        server=first("server") or None,
        player=first("player") or None,
        password=first("password"),
        hide_ui=_parse_flag(first("hideui")),
    )
