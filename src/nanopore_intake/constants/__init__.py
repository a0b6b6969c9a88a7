# ============================================================================
# src/nanopore_intake/constants/__init__.py
# ============================================================================
"""
Convenient imports for all constants
"""

from .field_definitions import (
    FIELD_DEFINITIONS,
    FIELD_DEFINITIONS_BY_NAME,
    FIELD_NAMES,
    REQUIRED_FIELDS,
    TOTAL_FIELD_COUNT,
    EMAIL_PATTERN,
    CONCENTRATION_PATTERN,
    VOLUME_PATTERN,
    get_field_definition,
    coerce_boolean,
)
from .field_patterns import FIELD_PATTERNS, TIER_ORDER, TIER_CONFIDENCE
