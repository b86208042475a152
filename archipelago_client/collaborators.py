"""Log sink interface for server text and structured messages.

Implementations can write to:
- A terminal or console widget
- An in-memory buffer (tests, dev tools)
- Nowhere (headless sessions)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import IO, Any


class LogSink(ABC):
    """Receiver for user-facing client output.

    Must be non-blocking; the session calls it from the message loop.
    """

    @abstractmethod
    def write(self, text: str) -> None:
        """Show a plain line of text."""

    @abstractmethod
    def write_json(self, data: list[dict[str, Any]]) -> None:
        """Show a structured ``PrintJSON`` message (list of text parts)."""


class NullLogSink(LogSink):
    """Discards everything."""

    def write(self, text: str) -> None:
        """Discard the text."""

    def write_json(self, data: list[dict[str, Any]]) -> None:
        """Discard the payload."""


class BufferLogSink(LogSink):
    """Keeps output in bounded buffers (FIFO eviction)."""

    def __init__(self, max_size: int = 1000) -> None:
        self._max_size = max_size
        self.lines: list[str] = []
        self.json_messages: list[list[dict[str, Any]]] = []

    def write(self, text: str) -> None:
        if len(self.lines) >= self._max_size:
            self.lines.pop(0)
        self.lines.append(text)

    def write_json(self, data: list[dict[str, Any]]) -> None:
        if len(self.json_messages) >= self._max_size:
            self.json_messages.pop(0)
        self.json_messages.append(data)

    def clear(self) -> None:
        self.lines.clear()
        self.json_messages.clear()


def flatten_json_message(data: list[dict[str, Any]]) -> str:
    """Join the ``text`` fields of a PrintJSON payload without formatting."""
    return "".join(str(part.get("text", "")) for part in data if isinstance(part, dict))


class StreamLogSink(LogSink):
    """Writes plain lines to a text stream such as stdout."""

    def __init__(self, stream: IO[str]) -> None:
        self._stream = stream

    def write(self, text: str) -> None:
        self._stream.write(f"{text}\n")
        self._stream.flush()

    def write_json(self, data: list[dict[str, Any]]) -> None:
        self.write(flatten_json_message(data))
