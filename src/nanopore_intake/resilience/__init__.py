# ============================================================================
# src/nanopore_intake/resilience/__init__.py
# ============================================================================
"""
Circuit breaker, retry, cache, metrics and the fallback-chain service.
"""

from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig, CircuitBreakerState
from .retry import RetryConfig, classify_error, is_retryable
from .cache import CacheEntry, ResultCache
from .metrics import MetricsRecorder, ServiceMetrics
from .service import (
    FallbackConfig,
    FormExtractionResponse,
    ResilienceWrapper,
    ResilientExtractionService,
    PATTERN_FALLBACK_ISSUE,
    build_extraction_service,
)

__all__ = [
    'CircuitBreaker',
    'CircuitBreakerConfig',
    'CircuitBreakerState',
    'RetryConfig',
    'classify_error',
    'is_retryable',
    'CacheEntry',
    'ResultCache',
    'MetricsRecorder',
    'ServiceMetrics',
    'FallbackConfig',
    'FormExtractionResponse',
    'ResilienceWrapper',
    'ResilientExtractionService',
    'PATTERN_FALLBACK_ISSUE',
    'build_extraction_service',
]
