"""Tests for the reconnect supervisor state machine."""

from __future__ import annotations

from archipelago_client.reconnect import (
    ReconnectCounter,
    ReconnectState,
    ReconnectSupervisor,
)


def _fail_until_stopped(supervisor: ReconnectSupervisor) -> list[float | None]:
    delays: list[float | None] = []
    while True:
        delay = supervisor.connection_lost()
        delays.append(delay)
        if delay is None:
            return delays
        supervisor.retrying()


class TestReconnectCounter:
    def test_defaults(self):
        counter = ReconnectCounter()
        assert (counter.attempts, counter.max_attempts, counter.suppressed) == (0, 10, False)
        assert not counter.exhausted


class TestReconnectBudget:
    """Abnormal closes are retried until the budget is spent."""

    def test_starts_idle_and_never_retries_from_idle(self):
        supervisor = ReconnectSupervisor()
        assert supervisor.state is ReconnectState.IDLE
        assert supervisor.connection_lost() is None

    def test_retry_delay(self):
        supervisor = ReconnectSupervisor(retry_delay=5.0)
        supervisor.begin()
        assert supervisor.connection_lost() == 5.0
        assert supervisor.state is ReconnectState.CLOSED_WILL_RETRY
        assert supervisor.attempts == 1

        supervisor.retrying()
        assert supervisor.state is ReconnectState.ATTEMPTING

    def test_gives_up_after_max_attempts(self):
        supervisor = ReconnectSupervisor(max_attempts=10, retry_delay=0)
        supervisor.begin()

        delays = _fail_until_stopped(supervisor)

        assert len(delays) == 10
        assert delays[-1] is None
        assert all(delay == 0 for delay in delays[:-1])
        assert supervisor.gave_up
        assert supervisor.state is ReconnectState.CLOSED_GAVE_UP

    def test_gave_up_is_terminal(self):
        supervisor = ReconnectSupervisor(max_attempts=2)
        supervisor.begin()
        _fail_until_stopped(supervisor)

        assert supervisor.connection_lost() is None
        assert supervisor.attempts == 2

    def test_authenticated_resets_budget(self):
        supervisor = ReconnectSupervisor(max_attempts=3)
        supervisor.begin()
        supervisor.connection_lost()
        supervisor.retrying()
        supervisor.connection_lost()
        supervisor.retrying()
        supervisor.opened()
        supervisor.authenticated(secure=True)

        assert supervisor.attempts == 0
        assert len(_fail_until_stopped(supervisor)) == 3

    def test_begin_clears_previous_give_up(self):
        supervisor = ReconnectSupervisor(max_attempts=1)
        supervisor.begin()
        _fail_until_stopped(supervisor)

        supervisor.begin()
        assert supervisor.state is ReconnectState.ATTEMPTING
        assert supervisor.attempts == 0
        assert not supervisor.gave_up


class TestSuppression:
    def test_suppress_blocks_retries(self):
        supervisor = ReconnectSupervisor()
        supervisor.begin()
        supervisor.opened()
        supervisor.suppress()

        assert supervisor.counter.suppressed
        assert supervisor.state is ReconnectState.STOPPED
        assert supervisor.connection_lost() is None
        assert supervisor.attempts == 0
        assert not supervisor.gave_up

    def test_begin_clears_suppression(self):
        supervisor = ReconnectSupervisor()
        supervisor.suppress()
        supervisor.begin()

        assert not supervisor.counter.suppressed
        assert supervisor.connection_lost() is not None

    def test_halt_does_not_consume_budget(self):
        supervisor = ReconnectSupervisor()
        supervisor.begin()
        supervisor.opened()
        supervisor.halt()

        assert supervisor.connection_lost() is None
        assert supervisor.attempts == 0
        assert not supervisor.counter.suppressed


class TestSchemeAlternation:
    """Secure and plaintext attempts alternate within one budget."""

    def _schemes(self, supervisor: ReconnectSupervisor, count: int) -> list[bool]:
        schemes = []
        for _ in range(count):
            schemes.append(supervisor.use_secure())
            supervisor.connection_lost()
            supervisor.retrying()
        return schemes

    def test_secure_first_then_alternate(self):
        supervisor = ReconnectSupervisor()
        supervisor.begin()
        assert self._schemes(supervisor, 4) == [True, False, True, False]

    def test_retry_reuses_scheme_that_authenticated(self):
        supervisor = ReconnectSupervisor()
        supervisor.begin()
        supervisor.connection_lost()
        supervisor.retrying()
        assert supervisor.use_secure() is False

        supervisor.opened()
        supervisor.authenticated(secure=False)
        supervisor.connection_lost()
        supervisor.retrying()

        assert self._schemes(supervisor, 3) == [False, True, False]

    def test_begin_prefers_secure_again(self):
        supervisor = ReconnectSupervisor()
        supervisor.begin()
        supervisor.authenticated(secure=False)
        supervisor.begin()
        assert supervisor.use_secure() is True
