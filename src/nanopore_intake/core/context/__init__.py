# ============================================================================
# src/nanopore_intake/core/context/__init__.py
# ============================================================================
"""
Data model for one extraction pass.
"""

from .enums import DataType, ExtractionSource, ExtractionMethod, CircuitState
from .field_definition import FieldDefinition
from .extraction_match import ExtractionMatch
from .extracted_record import ExtractedRecord, dedupe_issues, is_filled
from .field_value import (
    FieldValue,
    Unset,
    FromExternal,
    FromPattern,
    FromAlias,
    select_field_value,
)

__all__ = [
    'DataType',
    'ExtractionSource',
    'ExtractionMethod',
    'CircuitState',
    'FieldDefinition',
    'ExtractionMatch',
    'ExtractedRecord',
    'dedupe_issues',
    'is_filled',
    'FieldValue',
    'Unset',
    'FromExternal',
    'FromPattern',
    'FromAlias',
    'select_field_value',
]
