# ============================================================================
# src/nanopore_intake/core/__init__.py
# ============================================================================
"""
Core data model, result types, scoring, progress and orchestration.

Import the orchestrator from `core.orchestrator` directly; it depends on the
extractors, which themselves import from `core.context`.
"""

from .context import (
    DataType,
    ExtractionSource,
    ExtractionMethod,
    CircuitState,
    FieldDefinition,
    ExtractionMatch,
    ExtractedRecord,
)
from .result import Ok, Err, ErrorKind, Result
