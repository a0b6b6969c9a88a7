# ============================================================================
# src/nanopore_intake/core/context/extraction_match.py
# ============================================================================
"""
Single candidate value for a field, produced by one strategy during one
extraction pass. Never persisted; only the merged record survives.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .enums import ExtractionSource


@dataclass
class ExtractionMatch:
    field_name: str
    extracted_value: str
    confidence: float
    source: ExtractionSource

    # Provenance
    raw_text: str = ""
    offset: int = -1
    pattern: Optional[str] = None
    context: str = ""
    reasoning: str = ""

    # Validation
    validation_passed: bool = True
    issues: List[str] = field(default_factory=list)
