"""Tests for the retry policy and circuit breaker guarding inventory calls."""

import pytest

from order_management.inventory.resilience import (
    BreakerState,
    CircuitBreaker,
    CircuitOpenError,
    ResiliencePolicy,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class Flaky:
    """Fails the first ``failures`` calls, then returns ``result``."""

    def __init__(self, failures, result="ok", error=ConnectionError):
        self.failures = failures
        self.result = result
        self.error = error
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error("boom")
        return self.result


def _fail():
    raise ConnectionError("boom")


def _breaker(clock, **overrides):
    options = {"failure_rate_threshold": 0.5, "window_size": 4, "open_seconds": 30, "half_open_probes": 2}
    options.update(overrides)
    return CircuitBreaker(clock=clock, **options)


def _trip(breaker):
    for _ in range(breaker.window_size):
        with pytest.raises(ConnectionError):
            breaker.call(_fail)


class TestCircuitBreaker:
    def test_starts_closed(self):
        assert _breaker(FakeClock()).state == BreakerState.CLOSED

    def test_stays_closed_until_window_is_full(self):
        breaker = _breaker(FakeClock())
        for _ in range(3):
            with pytest.raises(ConnectionError):
                breaker.call(_fail)
        assert breaker.state == BreakerState.CLOSED

    def test_opens_when_failure_rate_reaches_threshold(self):
        breaker = _breaker(FakeClock())
        breaker.call(lambda: "ok")
        breaker.call(lambda: "ok")
        for _ in range(2):
            with pytest.raises(ConnectionError):
                breaker.call(_fail)
        assert breaker.state == BreakerState.OPEN

    def test_open_breaker_rejects_without_calling(self):
        breaker = _breaker(FakeClock())
        _trip(breaker)
        target = Flaky(failures=0)
        with pytest.raises(CircuitOpenError):
            breaker.call(target)
        assert target.calls == 0

    def test_half_opens_after_open_duration(self):
        clock = FakeClock()
        breaker = _breaker(clock)
        _trip(breaker)
        clock.advance(30)
        assert breaker.state == BreakerState.HALF_OPEN

    def test_closes_after_enough_successful_probes(self):
        clock = FakeClock()
        breaker = _breaker(clock)
        _trip(breaker)
        clock.advance(30)
        breaker.call(lambda: "ok")
        assert breaker.state == BreakerState.HALF_OPEN
        breaker.call(lambda: "ok")
        assert breaker.state == BreakerState.CLOSED

    def test_failed_probe_reopens(self):
        clock = FakeClock()
        breaker = _breaker(clock)
        _trip(breaker)
        clock.advance(30)
        with pytest.raises(ConnectionError):
            breaker.call(_fail)
        assert breaker.state == BreakerState.OPEN


class TestResiliencePolicy:
    def _policy(self, **overrides):
        self.sleeps = []
        options = {"max_attempts": 3, "backoff_seconds": 1.0, "sleep": self.sleeps.append, "window_size": 10}
        options.update(overrides)
        return ResiliencePolicy(**options)

    def test_returns_first_success(self):
        policy = self._policy()
        assert policy.call(lambda: 42) == 42
        assert self.sleeps == []

    def test_retries_until_success(self):
        policy = self._policy()
        target = Flaky(failures=2)
        assert policy.call(target) == "ok"
        assert target.calls == 3
        assert self.sleeps == [1.0, 1.0]

    def test_backoff_multiplier_grows_the_wait(self):
        policy = self._policy(backoff_multiplier=2.0)
        policy.call(Flaky(failures=2))
        assert self.sleeps == [1.0, 2.0]

    def test_exhausted_attempts_reraise_last_error(self):
        policy = self._policy()
        target = Flaky(failures=5)
        with pytest.raises(ConnectionError):
            policy.call(target)
        assert target.calls == 3

    def test_errors_outside_retry_on_are_not_retried(self):
        policy = self._policy(retry_on=(ConnectionError,))
        target = Flaky(failures=1, error=KeyError)
        with pytest.raises(KeyError):
            policy.call(target)
        assert target.calls == 1

    def test_open_circuit_is_not_retried(self):
        policy = self._policy(window_size=2, max_attempts=2)
        with pytest.raises(ConnectionError):
            policy.call(_fail)
        target = Flaky(failures=0)
        with pytest.raises(CircuitOpenError):
            policy.call(target)
        assert target.calls == 0
