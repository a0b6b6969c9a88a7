# ============================================================================
# src/nanopore_intake/resilience/retry.py
# ============================================================================
"""
Retry policy: exponential backoff with jitter.

    delay(attempt) = min(base_delay * backoff_multiplier ** attempt, max_delay)
                     + random(0, jitter_factor * that delay)
"""

import asyncio
import random
from dataclasses import dataclass, replace
from typing import Callable

from ..core.result import ErrorKind
from ..utils.exceptions import (
    CircuitOpenError,
    ConfigurationError,
    ExternalExtractorConnectionError,
    ExternalExtractorTimeout,
    MalformedResponseError,
    TextExtractionError,
)

# Errors that will fail the same way on every attempt
NON_RETRYABLE = (TextExtractionError, ConfigurationError)


@dataclass(frozen=True)
class RetryConfig:
    max_retries: int = 3             # attempts per call, the first included
    base_delay: float = 1.0          # seconds
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    jitter_factor: float = 0.1

    @classmethod
    def from_settings(cls, settings=None) -> "RetryConfig":
        if settings is None:
            from ..config import resilience_settings as settings
        return cls(
            max_retries=settings.MAX_RETRIES,
            base_delay=settings.BASE_DELAY,
            max_delay=settings.MAX_DELAY,
            backoff_multiplier=settings.BACKOFF_MULTIPLIER,
            jitter_factor=settings.JITTER_FACTOR,
        )

    @property
    def attempts(self) -> int:
        return max(1, self.max_retries)

    def with_overrides(self, **changes) -> "RetryConfig":
        return replace(self, **changes)

    def calculate_delay(self, attempt: int, rng: Callable[[], float] = random.random) -> float:
        """Delay before the attempt after `attempt` (0-based), in seconds."""
        delay = min(self.base_delay * (self.backoff_multiplier ** attempt), self.max_delay)
        jitter = delay * self.jitter_factor * rng()
        return delay + jitter


def is_retryable(error: BaseException) -> bool:
    return not isinstance(error, NON_RETRYABLE)


def classify_error(error: BaseException) -> ErrorKind:
    """Map a dependency exception onto an ErrorKind."""
    if isinstance(error, CircuitOpenError):
        return ErrorKind.CIRCUIT_OPEN
    if isinstance(error, (ExternalExtractorTimeout, asyncio.TimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(error, (ExternalExtractorConnectionError, ConnectionError)):
        return ErrorKind.CONNECTION
    if isinstance(error, MalformedResponseError):
        return ErrorKind.MALFORMED_RESPONSE
    if isinstance(error, TextExtractionError):
        return ErrorKind.INPUT
    return ErrorKind.EXHAUSTED
