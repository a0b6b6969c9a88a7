# ============================================================================
# src/nanopore_intake/core/context/enums.py
# ============================================================================
"""
Enumerations shared across extraction strategies.
"""

from enum import Enum


class DataType(Enum):
    """Value type of a form field."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    EMAIL = "email"
    SELECT = "select"


class ExtractionSource(Enum):
    """Strategy that produced a single field value."""
    PATTERN = "pattern"
    ALIAS = "alias"
    LLM = "llm"
    BASIC = "basic"


class ExtractionMethod(Enum):
    """How an aggregate record was produced."""
    PATTERN = "pattern"
    LLM = "llm"
    HYBRID = "hybrid"
    ALIAS = "alias"
    BASIC = "basic"


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"
