# ============================================================================
# src/nanopore_intake/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for the intake extraction pipeline.

Only the network boundary (the external extractor) and the text-extraction
collaborator raise these. Everything above the resilience layer works with
explicit Ok/Err results instead (see core/result.py).
"""


class IntakeExtractionError(Exception):
    """Base exception for all intake extraction errors."""
    pass


class TextExtractionError(IntakeExtractionError):
    """Document could not be converted to text (input error, never retried)."""
    pass


class StrategyError(IntakeExtractionError):
    """A single extraction strategy failed."""
    def __init__(self, message: str, strategy: str):
        super().__init__(message)
        self.strategy = strategy


class ExternalExtractorError(IntakeExtractionError):
    """The remote language-model extractor failed."""
    pass


class ExternalExtractorTimeout(ExternalExtractorError):
    """The remote extractor did not answer in time."""
    pass


class ExternalExtractorConnectionError(ExternalExtractorError):
    """The remote extractor could not be reached."""
    pass


class MalformedResponseError(ExternalExtractorError):
    """The remote extractor replied without a usable structured payload."""
    def __init__(self, message: str, raw_response: str = ""):
        super().__init__(message)
        self.raw_response = raw_response


class CircuitOpenError(IntakeExtractionError):
    """Call rejected because the circuit breaker is open."""
    def __init__(self, message: str, retry_after: float = 0.0):
        super().__init__(message)
        self.retry_after = retry_after


class ConfigurationError(IntakeExtractionError):
    """Invalid configuration."""
    pass
