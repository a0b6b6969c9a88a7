# ============================================================================
# src/nanopore_intake/core/context/extracted_record.py
# ============================================================================
"""
Aggregate output of an extraction pass
- Canonical field values
- Aggregate confidence and method tag
- Deduplicated issues and timing
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional

from .enums import ExtractionMethod, ExtractionSource


def dedupe_issues(issues: Iterable[str]) -> List[str]:
    """Drop repeated issue strings, keeping first-seen order."""
    seen = set()
    result = []
    for issue in issues:
        if issue and issue not in seen:
            seen.add(issue)
            result.append(issue)
    return result


@dataclass
class ExtractedRecord:
    fields: Dict[str, Any] = field(default_factory=dict)
    confidence: float = 0.0
    extraction_method: ExtractionMethod = ExtractionMethod.PATTERN
    issues: List[str] = field(default_factory=list)
    processing_time_ms: float = 0.0

    # Which strategy supplied each field
    field_sources: Dict[str, ExtractionSource] = field(default_factory=dict)

    # Suggestions from the alias mapper (missing required, low confidence)
    recommendations: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.issues = dedupe_issues(self.issues)

    def get(self, field_name: str, default: Optional[Any] = None) -> Any:
        return self.fields.get(field_name, default)

    def add_issue(self, issue: str):
        if issue not in self.issues:
            self.issues.append(issue)

    def copy(self) -> "ExtractedRecord":
        """Independent copy; field values are scalars so the containers are all that is shared."""
        return replace(
            self,
            fields=dict(self.fields),
            issues=list(self.issues),
            field_sources=dict(self.field_sources),
            recommendations=list(self.recommendations),
        )

    @property
    def filled_field_count(self) -> int:
        return sum(1 for value in self.fields.values() if is_filled(value))

    @property
    def is_empty(self) -> bool:
        return self.filled_field_count == 0

    def to_dict(self) -> Dict[str, Any]:
        """Flat, camelCase dict as consumed by the intake UI."""
        data = {name: value for name, value in self.fields.items() if is_filled(value)}
        data.update({
            "extractionMethod": self.extraction_method.value,
            "confidence": round(self.confidence, 4),
            "issues": list(self.issues),
            "processingTimeMs": round(self.processing_time_ms, 2),
            "fieldSources": {name: src.value for name, src in self.field_sources.items()},
        })
        if self.recommendations:
            data["recommendations"] = list(self.recommendations)
        return data


def is_filled(value: Any) -> bool:
    """A value counts as present unless it is None or blank text."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True
