# ============================================================================
# src/nanopore_intake/extractors/alias_mapper.py
# ============================================================================
"""
Alias-Based Label Mapping

Maps free-form form labels ("Contact Email", "PI") onto canonical fields by
plain string similarity against each field's name and aliases:

- exact match (case-insensitive, trimmed)   -> 1.0
- substring containment either direction    -> 0.8
- otherwise word overlap / max word count

The best field wins when its score is at least 0.3.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..constants.field_definitions import (
    BOOLEAN_TOKENS,
    EMAIL_PATTERN,
    FIELD_DEFINITIONS,
    FIELD_DEFINITIONS_BY_NAME,
)
from ..core.context.enums import DataType, ExtractionSource
from ..core.context.extraction_match import ExtractionMatch
from ..core.context.extracted_record import is_filled
from ..core.context.field_definition import FieldDefinition

logger = logging.getLogger(__name__)

MIN_MAPPING_SCORE = 0.3
LOW_CONFIDENCE = 0.7
ENHANCE_MIN_CONFIDENCE = 0.6

# Longest label we still treat as a "key: value" key
MAX_KEY_LENGTH = 60


@dataclass
class FieldMapping:
    field_name: str
    confidence: float
    reasoning: str
    matched_alias: str = ""


@dataclass
class KeyValuePair:
    key: str
    value: str
    offset: int = -1


@dataclass
class AliasMappingResult:
    """Outcome of mapping a batch of key/value pairs."""
    matches: List[ExtractionMatch] = field(default_factory=list)
    overall_confidence: float = 0.0
    total_fields: int = 0           # required fields known to the mapper
    extracted_fields: int = 0       # matches that passed validation
    validation_issues: List[str] = field(default_factory=list)
    processing_time_ms: float = 0.0

    def best_matches(self) -> Dict[str, ExtractionMatch]:
        """Highest-confidence match per field; earliest pair wins ties."""
        best: Dict[str, ExtractionMatch] = {}
        for match in self.matches:
            current = best.get(match.field_name)
            if current is None or match.confidence > current.confidence:
                best[match.field_name] = match
        return best


@dataclass
class AliasEnhancement:
    enhanced_fields: Dict[str, Any]
    insights: AliasMappingResult
    recommendations: List[str] = field(default_factory=list)


class AliasMapper:
    """
    Resolves observed labels to canonical field names.

    Usage:
        mapper = AliasMapper()
        mapping = mapper.find_best_field_mapping("contact email")
        # FieldMapping(field_name="submitterEmail", confidence=1.0, ...)
    """

    def __init__(self, definitions: Optional[Sequence[FieldDefinition]] = None):
        self.definitions: List[FieldDefinition] = list(definitions or FIELD_DEFINITIONS)
        if definitions is None:
            self._by_name = dict(FIELD_DEFINITIONS_BY_NAME)
        else:
            self._by_name = {d.field_name: d for d in self.definitions}

    @staticmethod
    def calculate_similarity(first: str, second: str) -> float:
        s1 = first.lower().strip()
        s2 = second.lower().strip()

        if not s1 or not s2:
            return 0.0
        if s1 == s2:
            return 1.0
        if s1 in s2 or s2 in s1:
            return 0.8

        words1 = s1.split()
        words2 = s2.split()
        overlap = sum(1 for word in words1 if word in words2)
        max_words = max(len(words1), len(words2))
        return overlap / max_words if max_words else 0.0

    def find_best_field_mapping(self, label: str) -> Optional[FieldMapping]:
        best: Optional[FieldMapping] = None
        best_score = 0.0

        for definition in self.definitions:
            score = self.calculate_similarity(label, definition.field_name)
            matched_alias = definition.field_name

            for alias in definition.aliases:
                alias_score = self.calculate_similarity(label, alias)
                if alias_score > score:
                    score = alias_score
                    matched_alias = alias

            if score > best_score and score >= MIN_MAPPING_SCORE:
                best_score = score
                best = FieldMapping(
                    field_name=definition.field_name,
                    confidence=score,
                    reasoning=f'Matched "{label}" to "{matched_alias}" with {score * 100:.1f}% confidence',
                    matched_alias=matched_alias,
                )

        return best

    def validate_field_value(self, field_name: str, value: Any) -> Tuple[bool, List[str]]:
        """Check a value against its field's rules. Never raises."""
        definition = self._by_name.get(field_name)
        if definition is None:
            return False, ["Unknown field"]

        if isinstance(value, bool):
            text = "true" if value else "false"
        elif value is None:
            text = ""
        else:
            text = str(value).strip()

        issues: List[str] = []

        if definition.required and not text:
            issues.append("Required field is empty")

        if text:
            if definition.data_type == DataType.EMAIL:
                if not (definition.validator or EMAIL_PATTERN).match(text):
                    issues.append("Invalid email format")
            elif definition.validator is not None and not definition.validator.match(text):
                issues.append("Value does not match expected format")

            if definition.data_type == DataType.NUMBER:
                try:
                    float(text)
                except ValueError:
                    issues.append("Value is not a valid number")
            elif definition.data_type == DataType.BOOLEAN:
                if text.lower() not in BOOLEAN_TOKENS:
                    issues.append("Value is not a valid boolean")

        return not issues, issues

    def is_valid(self, field_name: str, value: Any) -> bool:
        return self.validate_field_value(field_name, value)[0]

    @staticmethod
    def extract_pairs(text: str) -> List[KeyValuePair]:
        """Split raw text into "key: value" pairs, one per line."""
        pairs = []
        offset = 0
        for line in text.splitlines(keepends=True):
            colon = line.find(":")
            if 0 < colon <= MAX_KEY_LENGTH:
                key = line[:colon].strip()
                value = line[colon + 1:].strip()
                if key and value:
                    value_start = offset + colon + 1 + (len(line[colon + 1:]) - len(line[colon + 1:].lstrip()))
                    pairs.append(KeyValuePair(key=key, value=value, offset=value_start))
            offset += len(line)
        return pairs

    def process_pairs(self, pairs: Sequence[Any]) -> AliasMappingResult:
        """
        Map each pair's key to a field and validate its value.

        Pairs may be KeyValuePair objects, (key, value) tuples or
        {"key": ..., "value": ...} dicts.
        """
        start = time.perf_counter()
        matches: List[ExtractionMatch] = []
        issues: List[str] = []

        for pair in pairs:
            key, value, offset = self._unpack(pair)
            mapping = self.find_best_field_mapping(key)
            if mapping is None:
                continue

            valid, value_issues = self.validate_field_value(mapping.field_name, value)
            matches.append(ExtractionMatch(
                field_name=mapping.field_name,
                extracted_value=value,
                confidence=mapping.confidence,
                source=ExtractionSource.ALIAS,
                raw_text=f"{key}: {value}",
                offset=offset,
                reasoning=mapping.reasoning,
                validation_passed=valid,
                issues=value_issues,
            ))
            if not valid:
                issues.append(f"{mapping.field_name}: {', '.join(value_issues)}")

        overall = sum(m.confidence for m in matches) / len(matches) if matches else 0.0

        return AliasMappingResult(
            matches=matches,
            overall_confidence=overall,
            total_fields=sum(1 for d in self.definitions if d.required),
            extracted_fields=sum(1 for m in matches if m.validation_passed),
            validation_issues=issues,
            processing_time_ms=(time.perf_counter() - start) * 1000,
        )

    def map_text(self, text: str) -> AliasMappingResult:
        return self.process_pairs(self.extract_pairs(text))

    def enhance(self, record_fields: Dict[str, Any]) -> AliasEnhancement:
        """
        Re-map an already extracted record and suggest follow-ups.

        Recommendations list missing required fields and matches with
        confidence below 0.7. Validated matches above 0.6 are copied onto the
        returned fields.
        """
        pairs = [
            KeyValuePair(key=name, value=str(value))
            for name, value in record_fields.items()
            if is_filled(value)
        ]
        insights = self.process_pairs(pairs)

        recommendations = []
        mapped = {m.field_name for m in insights.matches}
        missing = [d.field_name for d in self.definitions if d.required and d.field_name not in mapped]
        if missing:
            recommendations.append(f"Missing required fields: {', '.join(missing)}")

        low = [m.field_name for m in insights.matches if m.confidence < LOW_CONFIDENCE]
        if low:
            recommendations.append(f"Low confidence matches: {', '.join(low)}")

        enhanced = dict(record_fields)
        for match in insights.matches:
            if match.validation_passed and match.confidence > ENHANCE_MIN_CONFIDENCE:
                enhanced.setdefault(match.field_name, match.extracted_value)

        return AliasEnhancement(enhanced_fields=enhanced, insights=insights, recommendations=recommendations)

    @staticmethod
    def _unpack(pair: Any) -> Tuple[str, str, int]:
        if isinstance(pair, KeyValuePair):
            return pair.key, pair.value, pair.offset
        if isinstance(pair, dict):
            return str(pair.get("key", "")), str(pair.get("value", "")), -1
        key, value = pair
        return str(key), str(value), -1
