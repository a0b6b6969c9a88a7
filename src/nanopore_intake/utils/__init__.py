# ============================================================================
# src/nanopore_intake/utils/__init__.py
# ============================================================================
"""
Shared utilities: exceptions and logging setup.
"""

from .exceptions import (
    IntakeExtractionError,
    TextExtractionError,
    StrategyError,
    ExternalExtractorError,
    ExternalExtractorTimeout,
    ExternalExtractorConnectionError,
    MalformedResponseError,
    CircuitOpenError,
    ConfigurationError,
)
from .logging import setup_logging, setup_logging_from_settings, JsonFormatter, LogContext, new_request_id
