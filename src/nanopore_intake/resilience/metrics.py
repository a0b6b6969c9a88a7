# ============================================================================
# src/nanopore_intake/resilience/metrics.py
# ============================================================================
"""
Service metrics for the resilient extraction service.
"""

import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ServiceMetrics:
    """Immutable snapshot; safe to hand out."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time_ms: float = 0.0
    circuit_breaker_trips: int = 0
    fallback_usage: int = 0
    cache_hits: int = 0
    last_success_time: Optional[datetime] = None
    last_failure_time: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        return self.successful_requests / self.total_requests if self.total_requests else 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["last_success_time"] = self.last_success_time.isoformat() if self.last_success_time else None
        data["last_failure_time"] = self.last_failure_time.isoformat() if self.last_failure_time else None
        data["success_rate"] = self.success_rate
        return data


class MetricsRecorder:
    """Collects counters; every update is atomic with respect to other requests."""

    def __init__(self):
        self._lock = threading.RLock()
        self._reset()

    def _reset(self):
        self._total = 0
        self._successful = 0
        self._failed = 0
        self._average_ms = 0.0
        self._trips = 0
        self._fallbacks = 0
        self._cache_hits = 0
        self._last_success: Optional[datetime] = None
        self._last_failure: Optional[datetime] = None

    def record_request(self):
        with self._lock:
            self._total += 1

    def record_success(self, response_time_ms: float):
        """Count a success and fold its time into the running average."""
        with self._lock:
            self._average_ms = (
                (self._average_ms * self._successful + response_time_ms) / (self._successful + 1)
            )
            self._successful += 1
            self._last_success = datetime.now(timezone.utc)

    def record_failure(self):
        with self._lock:
            self._failed += 1
            self._last_failure = datetime.now(timezone.utc)

    def record_trip(self):
        with self._lock:
            self._trips += 1

    def record_fallback(self):
        with self._lock:
            self._fallbacks += 1

    def record_cache_hit(self):
        with self._lock:
            self._cache_hits += 1

    def reset(self):
        with self._lock:
            self._reset()

    def snapshot(self) -> ServiceMetrics:
        with self._lock:
            return ServiceMetrics(
                total_requests=self._total,
                successful_requests=self._successful,
                failed_requests=self._failed,
                average_response_time_ms=self._average_ms,
                circuit_breaker_trips=self._trips,
                fallback_usage=self._fallbacks,
                cache_hits=self._cache_hits,
                last_success_time=self._last_success,
                last_failure_time=self._last_failure,
            )
