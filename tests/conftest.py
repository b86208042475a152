"""Pytest configuration and fixtures for archipelago_client tests."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Callable, Iterator
from typing import Any
from unittest.mock import patch

import pytest

from archipelago_client import (
    BufferLogSink,
    ClientConfig,
    ClientIdProvider,
    MemoryStorage,
)
from archipelago_client.ws_client import (
    ArchipelagoWsClient,
    ArchipelagoWsMessage,
    ArchipelagoWsMessageType,
)

CLIENT_ID = "4815162342"


class FakeWsClient(ArchipelagoWsClient):
    """Scripted stand-in for one server socket.

    Frames pushed by the test are delivered to the session in order; every
    command the session sends is recorded in ``sent``.
    """

    def __init__(self, *, connect_error: Exception | None = None) -> None:
        super().__init__()
        self._connect_error = connect_error
        self._queue: asyncio.Queue[ArchipelagoWsMessage] = asyncio.Queue()
        self._open = False
        self.sent: list[dict[str, Any]] = []
        self.closed = False

    async def connect(
        self, url: str, *, ping_interval: int = 20, timeout: float = 15.0
    ) -> None:
        self.url = url
        if self._connect_error is not None:
            raise self._connect_error
        self._open = True

    async def close(self) -> None:
        self._open = False
        self.closed = True

    @property
    def is_open(self) -> bool:
        return self._open

    async def send_commands(self, *commands: dict[str, Any]) -> None:
        self.sent.extend(commands)

    def __aiter__(self) -> AsyncIterator[ArchipelagoWsMessage]:
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[ArchipelagoWsMessage]:
        while True:
            msg = await self._queue.get()
            yield msg
            if msg.type is not ArchipelagoWsMessageType.TEXT:
                return

    def push(self, *commands: dict[str, Any]) -> None:
        """Deliver one frame holding the given commands."""
        self.push_raw(json.dumps(list(commands)))

    def push_raw(self, text: str) -> None:
        self._queue.put_nowait(ArchipelagoWsMessage(ArchipelagoWsMessageType.TEXT, text))

    def push_closed(self) -> None:
        self._queue.put_nowait(ArchipelagoWsMessage(ArchipelagoWsMessageType.CLOSED))

    def push_error(self) -> None:
        self._queue.put_nowait(ArchipelagoWsMessage(ArchipelagoWsMessageType.ERROR))


class FakeSocketFactory:
    """Replaces ArchipelagoWsClient inside the session module."""

    def __init__(self) -> None:
        self.created: list[FakeWsClient] = []
        self.connect_error: Exception | None = None
        self.close_immediately = False

    def __call__(self) -> FakeWsClient:
        ws = FakeWsClient(connect_error=self.connect_error)
        if self.close_immediately:
            ws.push_closed()
        self.created.append(ws)
        return ws

    @property
    def urls(self) -> list[str | None]:
        return [ws.url for ws in self.created]

    @property
    def last(self) -> FakeWsClient:
        return self.created[-1]


@pytest.fixture
def fake_sockets() -> Iterator[FakeSocketFactory]:
    """Patch the session's socket class with a scripted factory."""
    factory = FakeSocketFactory()
    with patch("archipelago_client.session.ArchipelagoWsClient", new=factory):
        yield factory


@pytest.fixture
def log_sink() -> BufferLogSink:
    return BufferLogSink()


@pytest.fixture
def identity() -> ClientIdProvider:
    return ClientIdProvider(MemoryStorage({"clientId": CLIENT_ID}))


@pytest.fixture
def fast_config() -> ClientConfig:
    """Config with no retry delay so reconnect loops run instantly."""
    return ClientConfig(reconnect_delay=0)


async def wait_for(predicate: Callable[[], Any], timeout: float = 1.0) -> None:
    """Yield to the event loop until predicate() is truthy."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0)
