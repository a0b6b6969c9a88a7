# ============================================================================
# src/nanopore_intake/resilience/circuit_breaker.py
# ============================================================================
"""
Circuit breaker guarding the external extractor.

States:
- CLOSED: Normal operation (allow calls)
- OPEN: Tripped after `failure_threshold` consecutive failures; calls are
  rejected without invoking the dependency until the cooldown elapses
- HALF_OPEN: Cooldown elapsed; exactly one probe call is admitted. Success
  closes the breaker, failure re-opens it with a fresh cooldown.

One breaker is shared by every request that targets the same dependency, so
all state changes happen under a lock. The lock is never held while the
protected call runs.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..core.context.enums import CircuitState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CircuitBreakerConfig:
    failure_threshold: int = 5
    timeout_seconds: float = 60.0

    @classmethod
    def from_settings(cls, settings=None) -> "CircuitBreakerConfig":
        if settings is None:
            from ..config import resilience_settings as settings
        return cls(
            failure_threshold=settings.FAILURE_THRESHOLD,
            timeout_seconds=settings.CIRCUIT_TIMEOUT,
        )


@dataclass(frozen=True)
class CircuitBreakerState:
    """Read-only snapshot of a breaker."""
    state: CircuitState
    failure_count: int
    last_failure_time: Optional[float]
    next_attempt_time: Optional[float]
    trips: int = 0

    def to_dict(self):
        return {
            "state": self.state.value,
            "failureCount": self.failure_count,
            "lastFailureTime": self.last_failure_time,
            "nextAttemptTime": self.next_attempt_time,
            "trips": self.trips,
        }


class CircuitBreaker:
    """
    Usage:
        breaker = CircuitBreaker(CircuitBreakerConfig(failure_threshold=5))
        if breaker.allow_request():
            try:
                result = await call()
                breaker.record_success()
            except ExternalExtractorError:
                breaker.record_failure()
    """

    def __init__(
        self,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._lock = threading.RLock()

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None
        self._next_attempt_time: Optional[float] = None
        self._probe_in_flight = False
        self._trips = 0

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    def is_available(self) -> bool:
        """True when a call would currently be admitted. Does not change state."""
        with self._lock:
            if self._state == CircuitState.CLOSED:
                return True
            if self._state == CircuitState.OPEN:
                return self._next_attempt_time is not None and self._clock() >= self._next_attempt_time
            return not self._probe_in_flight

    def retry_after(self) -> float:
        """Seconds until an open breaker admits a probe (0 when not open)."""
        with self._lock:
            if self._state != CircuitState.OPEN or self._next_attempt_time is None:
                return 0.0
            return max(0.0, self._next_attempt_time - self._clock())

    def allow_request(self) -> bool:
        """Check-and-claim: may move OPEN to HALF_OPEN and claim the single probe."""
        with self._lock:
            if self._state == CircuitState.CLOSED:
                return True

            if self._state == CircuitState.OPEN:
                if self._next_attempt_time is not None and self._clock() >= self._next_attempt_time:
                    self._state = CircuitState.HALF_OPEN
                    self._probe_in_flight = True
                    logger.info("Circuit breaker HALF_OPEN (testing recovery)")
                    return True
                return False

            # HALF_OPEN: only one probe at a time
            if self._probe_in_flight:
                return False
            self._probe_in_flight = True
            return True

    def record_success(self):
        with self._lock:
            if self._state != CircuitState.CLOSED:
                logger.info("Circuit breaker CLOSED (service recovered)")
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._next_attempt_time = None
            self._probe_in_flight = False

    def release_probe(self):
        """Give back a claimed probe whose call was abandoned; counts as neither success nor failure."""
        with self._lock:
            if self._probe_in_flight:
                self._probe_in_flight = False
                logger.info("Circuit breaker probe abandoned, next request may probe")

    def record_failure(self) -> bool:
        """
        Count a failed call.

        Returns:
            True when this failure tripped the breaker open
        """
        with self._lock:
            now = self._clock()
            self._failure_count += 1
            self._last_failure_time = now

            if self._state == CircuitState.HALF_OPEN:
                self._open(now)
                logger.warning("Circuit breaker re-OPENED (probe failed)")
                return True

            if self._state == CircuitState.CLOSED and self._failure_count >= self.config.failure_threshold:
                self._open(now)
                logger.warning(
                    f"Circuit breaker OPEN (threshold {self.config.failure_threshold} reached)"
                )
                return True

            return False

    def _open(self, now: float):
        self._state = CircuitState.OPEN
        self._next_attempt_time = now + self.config.timeout_seconds
        self._probe_in_flight = False
        self._trips += 1

    def reset(self):
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._last_failure_time = None
            self._next_attempt_time = None
            self._probe_in_flight = False
        logger.info("Circuit breaker reset")

    def snapshot(self) -> CircuitBreakerState:
        with self._lock:
            return CircuitBreakerState(
                state=self._state,
                failure_count=self._failure_count,
                last_failure_time=self._last_failure_time,
                next_attempt_time=self._next_attempt_time,
                trips=self._trips,
            )
