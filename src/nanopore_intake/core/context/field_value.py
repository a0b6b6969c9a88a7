# ============================================================================
# src/nanopore_intake/core/context/field_value.py
# ============================================================================
"""
Per-field merge candidates.

Each strategy's contribution to a field is wrapped in its own type so the
merge is an explicit priority decision instead of an `a or b or c` chain:

    Unset < FromAlias < FromPattern < FromExternal
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Union

from .enums import ExtractionSource
from .extraction_match import ExtractionMatch


@dataclass(frozen=True)
class Unset:
    source: Optional[ExtractionSource] = None
    priority: int = 0


@dataclass(frozen=True)
class FromExternal:
    value: Any
    confidence: float
    source: ExtractionSource = ExtractionSource.LLM
    priority: int = 3


@dataclass(frozen=True)
class FromPattern:
    value: Any
    confidence: float
    match: Optional[ExtractionMatch] = None
    source: ExtractionSource = ExtractionSource.PATTERN
    priority: int = 2


@dataclass(frozen=True)
class FromAlias:
    value: Any
    confidence: float
    match: Optional[ExtractionMatch] = None
    source: ExtractionSource = ExtractionSource.ALIAS
    priority: int = 1


FieldValue = Union[Unset, FromExternal, FromPattern, FromAlias]


def select_field_value(
    candidates: Iterable[FieldValue],
    is_valid: Callable[[Any], bool],
) -> FieldValue:
    """
    Pick the value for one field.

    Highest-priority candidate whose value validates wins. When none
    validates, the highest-priority candidate is kept anyway so its
    validation issue reaches the record.
    """
    present = sorted(
        (c for c in candidates if not isinstance(c, Unset)),
        key=lambda c: c.priority,
        reverse=True,
    )
    if not present:
        return Unset()

    for candidate in present:
        if is_valid(candidate.value):
            return candidate
    return present[0]
