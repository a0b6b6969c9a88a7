# ============================================================================
# FILE: tests/unit/test_circuit_breaker.py
# ============================================================================
"""
Tests for the circuit breaker state machine
"""

import threading

import pytest

from nanopore_intake.core.context.enums import CircuitState
from nanopore_intake.resilience.circuit_breaker import CircuitBreaker, CircuitBreakerConfig


@pytest.fixture
def breaker(fake_clock):
    return CircuitBreaker(CircuitBreakerConfig(failure_threshold=3, timeout_seconds=60), clock=fake_clock)


def trip(breaker, times=3):
    for _ in range(times):
        breaker.record_failure()


class TestClosed:
    def test_starts_closed(self, breaker):
        assert breaker.state == CircuitState.CLOSED
        assert breaker.allow_request()
        assert breaker.is_available()

    def test_below_threshold_stays_closed(self, breaker):
        trip(breaker, 2)
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 2

    def test_success_resets_count(self, breaker):
        trip(breaker, 2)
        breaker.record_success()
        trip(breaker, 2)
        assert breaker.state == CircuitState.CLOSED


class TestOpen:
    def test_opens_at_threshold(self, breaker, fake_clock):
        """Reaching the threshold opens and reports the trip"""
        breaker.record_failure()
        breaker.record_failure()
        assert breaker.record_failure() is True

        snapshot = breaker.snapshot()
        assert snapshot.state == CircuitState.OPEN
        assert snapshot.next_attempt_time == fake_clock.now + 60
        assert snapshot.trips == 1

    def test_rejects_before_timeout(self, breaker, fake_clock):
        trip(breaker)
        fake_clock.advance(59)

        assert not breaker.allow_request()
        assert not breaker.is_available()
        assert breaker.retry_after() == pytest.approx(1)


class TestHalfOpen:
    def test_single_probe_after_timeout(self, breaker, fake_clock):
        """After the timeout exactly one probe is admitted"""
        trip(breaker)
        fake_clock.advance(60)

        assert breaker.allow_request()
        assert breaker.state == CircuitState.HALF_OPEN
        assert not breaker.allow_request()

    def test_probe_success_closes(self, breaker, fake_clock):
        trip(breaker)
        fake_clock.advance(60)
        breaker.allow_request()

        breaker.record_success()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0

    def test_probe_failure_reopens(self, breaker, fake_clock):
        """A failed probe re-opens with a fresh timeout"""
        trip(breaker)
        fake_clock.advance(60)
        breaker.allow_request()

        assert breaker.record_failure() is True

        snapshot = breaker.snapshot()
        assert snapshot.state == CircuitState.OPEN
        assert snapshot.next_attempt_time == fake_clock.now + 60
        assert snapshot.trips == 2

    def test_released_probe_can_be_reclaimed(self, breaker, fake_clock):
        """An abandoned probe is neither success nor failure"""
        trip(breaker)
        fake_clock.advance(60)
        breaker.allow_request()

        breaker.release_probe()

        assert breaker.state == CircuitState.HALF_OPEN
        assert breaker.failure_count == 3
        assert breaker.is_available()
        assert breaker.allow_request()


class TestReset:
    def test_reset(self, breaker):
        trip(breaker)
        breaker.reset()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.allow_request()

    def test_snapshot_dict(self, breaker):
        data = breaker.snapshot().to_dict()
        assert data["state"] == "closed"
        assert data["failureCount"] == 0


class TestConcurrency:
    def test_concurrent_failures_counted(self, fake_clock):
        """Failures recorded from many threads are all counted"""
        breaker = CircuitBreaker(CircuitBreakerConfig(failure_threshold=1000), clock=fake_clock)

        def worker():
            for _ in range(100):
                breaker.record_failure()

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert breaker.failure_count == 800
        assert breaker.state == CircuitState.CLOSED
