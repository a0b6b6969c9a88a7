# ============================================================================
# src/nanopore_intake/core/context/field_definition.py
# ============================================================================
"""
Static description of one canonical form field.
"""

from dataclasses import dataclass, field
from typing import Optional, Pattern, Tuple

from .enums import DataType


@dataclass(frozen=True)
class FieldDefinition:
    field_name: str
    aliases: Tuple[str, ...] = ()
    data_type: DataType = DataType.STRING
    required: bool = False
    validator: Optional[Pattern[str]] = None
    examples: Tuple[str, ...] = ()
    description: str = ""

    # Allowed values for SELECT fields; informational, not enforced
    options: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def labels(self) -> Tuple[str, ...]:
        """Canonical name followed by every alias."""
        return (self.field_name,) + tuple(self.aliases)
