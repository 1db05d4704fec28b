"""Retry and circuit breaking for calls to the inventory service.

The HTTP inventory adapter wraps every outbound call in ``ResiliencePolicy.call``:
retries with backoff first, then the circuit breaker records the outcome.

Breaker states:
    CLOSED → OPEN when the failure rate over the last ``window_size`` calls
    reaches ``failure_rate_threshold`` (only once the window is full).
    OPEN → HALF_OPEN after ``open_seconds``.
    HALF_OPEN → CLOSED after ``half_open_probes`` consecutive successes,
    HALF_OPEN → OPEN on any failure.
"""

import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

import structlog

logger = structlog.get_logger(__name__)


class CircuitOpenError(Exception):
    """The breaker is open; the call was not attempted."""


class BreakerState(Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitBreaker:
    def __init__(
        self,
        failure_rate_threshold: float = 0.5,
        window_size: int = 10,
        open_seconds: float = 30.0,
        half_open_probes: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_rate_threshold = failure_rate_threshold
        self.window_size = window_size
        self.open_seconds = open_seconds
        self.half_open_probes = half_open_probes
        self._clock = clock

        self._state = BreakerState.CLOSED
        self._outcomes: deque[bool] = deque(maxlen=window_size)
        self._opened_at: float | None = None
        self._probe_successes = 0
        self._lock = threading.Lock()

    @property
    def state(self) -> BreakerState:
        with self._lock:
            self._maybe_half_open()
            return self._state

    def call(self, fn: Callable, *args, **kwargs):
        """Invoke ``fn`` unless the breaker is open.

        Raises:
            CircuitOpenError: the breaker rejected the call.
        """
        with self._lock:
            self._maybe_half_open()
            if self._state == BreakerState.OPEN:
                raise CircuitOpenError("Circuit breaker is open")

        try:
            result = fn(*args, **kwargs)
        except Exception:
            self._record(success=False)
            raise
        self._record(success=True)
        return result

    def _maybe_half_open(self):
        if self._state == BreakerState.OPEN and self._clock() - self._opened_at >= self.open_seconds:
            self._state = BreakerState.HALF_OPEN
            self._probe_successes = 0
            logger.info("Circuit breaker half-open")

    def _record(self, success: bool):
        with self._lock:
            if self._state == BreakerState.HALF_OPEN:
                if not success:
                    self._trip()
                    return
                self._probe_successes += 1
                if self._probe_successes >= self.half_open_probes:
                    self._state = BreakerState.CLOSED
                    self._outcomes.clear()
                    logger.info("Circuit breaker closed")
                return

            self._outcomes.append(success)
            if len(self._outcomes) < self.window_size:
                return
            failure_rate = self._outcomes.count(False) / len(self._outcomes)
            if failure_rate >= self.failure_rate_threshold:
                self._trip()

    def _trip(self):
        self._state = BreakerState.OPEN
        self._opened_at = self._clock()
        self._outcomes.clear()
        logger.warning("Circuit breaker opened", open_seconds=self.open_seconds)


@dataclass
class ResiliencePolicy:
    """Retry settings plus the breaker that guards a single downstream service."""

    max_attempts: int = 3
    backoff_seconds: float = 1.0
    backoff_multiplier: float = 1.0
    failure_rate_threshold: float = 0.5
    window_size: int = 10
    open_seconds: float = 30.0
    half_open_probes: int = 3
    retry_on: tuple[type[Exception], ...] = (Exception,)
    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], float] = time.monotonic
    breaker: CircuitBreaker = field(init=False)

    def __post_init__(self):
        self.breaker = CircuitBreaker(
            failure_rate_threshold=self.failure_rate_threshold,
            window_size=self.window_size,
            open_seconds=self.open_seconds,
            half_open_probes=self.half_open_probes,
            clock=self.clock,
        )

    def call(self, fn: Callable, *args, **kwargs):
        """Run ``fn`` through the breaker, retrying ``retry_on`` errors.

        The last error is re-raised once attempts are exhausted. An open
        breaker raises ``CircuitOpenError`` immediately without retrying.
        """
        delay = self.backoff_seconds
        for attempt in range(1, self.max_attempts + 1):
            try:
                return self.breaker.call(fn, *args, **kwargs)
            except CircuitOpenError:
                raise
            except self.retry_on as exc:
                if attempt == self.max_attempts:
                    raise
                logger.warning(
                    "Retrying after failure",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=str(exc),
                )
                self.sleep(delay)
                delay *= self.backoff_multiplier
