"""Reconnect policy for Archipelago sessions.

The supervisor is pure bookkeeping: it never touches sockets or timers. The
session asks it which scheme to use for the next attempt and, after every
close, whether and when to try again.

Scheme fallback is folded into the retry count instead of being a second
budget: attempts alternate between the preferred scheme (secure until a
plaintext connection has authenticated) and the other one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .config import MAX_RECONNECT_ATTEMPTS, RECONNECT_DELAY

_LOGGER = logging.getLogger(__name__)


class ReconnectState(Enum):
    """Supervisor lifecycle states."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    OPEN = "open"
    CLOSED_WILL_RETRY = "closed_will_retry"
    CLOSED_GAVE_UP = "closed_gave_up"
    STOPPED = "stopped"


@dataclass
class ReconnectCounter:
    """Abnormal closes since the last user request or successful login."""

    attempts: int = 0
    max_attempts: int = MAX_RECONNECT_ATTEMPTS
    suppressed: bool = False

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts


class ReconnectSupervisor:
    """Retry bookkeeping shared by every attempt of one session.

    Usage:
        supervisor.begin()
        secure = supervisor.use_secure()
        ...
        delay = supervisor.connection_lost()
        if delay is None:
            stop
    """

    def __init__(
        self,
        *,
        max_attempts: int = MAX_RECONNECT_ATTEMPTS,
        retry_delay: float = RECONNECT_DELAY,
    ) -> None:
        self.counter = ReconnectCounter(max_attempts=max_attempts)
        self.retry_delay = retry_delay
        self._state = ReconnectState.IDLE
        self._prefer_secure = True
        # Attempt-count parity on which the preferred scheme is used.
        self._preferred_parity = 0

    @property
    def state(self) -> ReconnectState:
        return self._state

    @property
    def attempts(self) -> int:
        return self.counter.attempts

    @property
    def gave_up(self) -> bool:
        return self._state is ReconnectState.CLOSED_GAVE_UP

    def _transition(self, state: ReconnectState) -> None:
        if self._state is not state:
            _LOGGER.debug("Reconnect state: %s → %s", self._state.value, state.value)
            self._state = state

    def begin(self) -> None:
        """Start a user-initiated request with a fresh budget."""
        self.counter.attempts = 0
        self.counter.suppressed = False
        self._prefer_secure = True
        self._preferred_parity = 0
        self._transition(ReconnectState.ATTEMPTING)

    def use_secure(self) -> bool:
        """Return True if the next attempt should use the secure scheme."""
        if self.counter.attempts % 2 == self._preferred_parity:
            return self._prefer_secure
        return not self._prefer_secure

    def opened(self) -> None:
        self._transition(ReconnectState.OPEN)

    def authenticated(self, *, secure: bool) -> None:
        """Record a successful login; the budget starts over.

        The first retry after this connection drops reuses its scheme.
        """
        self.counter.attempts = 0
        self._prefer_secure = secure
        self._preferred_parity = 1

    def retrying(self) -> None:
        self._transition(ReconnectState.ATTEMPTING)

    def suppress(self) -> None:
        """Stop retrying until the next user-initiated request."""
        self.counter.suppressed = True
        self._transition(ReconnectState.STOPPED)

    def halt(self) -> None:
        """Stop retrying after a refused login, leaving the budget untouched."""
        self._transition(ReconnectState.STOPPED)

    def connection_lost(self) -> float | None:
        """Account for a close, error or failed open.

        Returns:
            Seconds to wait before the next attempt, or None when no further
            attempt should be made.
        """
        if self.counter.suppressed or self._state in (
            ReconnectState.STOPPED,
            ReconnectState.CLOSED_GAVE_UP,
            ReconnectState.IDLE,
        ):
            return None

        self.counter.attempts += 1
        if self.counter.exhausted:
            _LOGGER.error("Giving up after %d attempts", self.counter.attempts)
            self._transition(ReconnectState.CLOSED_GAVE_UP)
            return None

        self._transition(ReconnectState.CLOSED_WILL_RETRY)
        return self.retry_delay
