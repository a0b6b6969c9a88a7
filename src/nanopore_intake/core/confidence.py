# ============================================================================
# src/nanopore_intake/core/confidence.py
# ============================================================================
"""
Confidence Scoring and Aggregation

Provides utilities for:
- Aggregating per-field confidence scores
- Validating a merged record (issues + penalty multiplier)
- Turning a base score into the record's final confidence
- Mapping scores to levels for reporting
"""

from typing import Any, Dict, List, Optional
from enum import Enum
from dataclasses import dataclass, field
import statistics

from ..constants.field_definitions import (
    CONCENTRATION_PATTERN,
    EMAIL_PATTERN,
    TOTAL_FIELD_COUNT,
    VOLUME_PATTERN,
)
from .context.extracted_record import is_filled

# (field, issue text, multiplier) applied when a required field is missing
MISSING_FIELD_PENALTIES = (
    ("sampleName", "Sample name is required", 0.7),
    ("submitterName", "Submitter name is required", 0.8),
    ("submitterEmail", "Submitter email is required", 0.8),
)

INVALID_EMAIL_ISSUE = "Invalid email format"
INVALID_CONCENTRATION_ISSUE = "Invalid concentration format"
INVALID_VOLUME_ISSUE = "Invalid volume format"

INVALID_EMAIL_PENALTY = 0.9
INVALID_SHAPE_PENALTY = 0.95

RECORD_FLOOR = 0.1
RECORD_CAP = 1.0


class AggregationMethod(Enum):
    """Methods for aggregating multiple confidence scores"""
    MINIMUM = "minimum"  # Most conservative (lowest score)
    AVERAGE = "average"  # Mean of all scores
    WEIGHTED_AVERAGE = "weighted_average"
    HARMONIC_MEAN = "harmonic_mean"  # Penalizes low scores
    PRODUCT = "product"


@dataclass
class ConfidenceThresholds:
    """Confidence level thresholds"""
    high: float = 0.85
    medium: float = 0.70
    low: float = 0.0

    def get_level(self, score: float) -> str:
        if score >= self.high:
            return "high"
        elif score >= self.medium:
            return "medium"
        else:
            return "low"


@dataclass
class RecordValidation:
    """Validation outcome for a merged record. Never raised, only reported."""
    issues: List[str] = field(default_factory=list)
    multiplier: float = 1.0

    def penalize(self, issue: str, factor: float):
        self.issues.append(issue)
        self.multiplier *= factor


class ConfidenceCalculator:
    """
    Utility class for calculating and aggregating confidence scores.
    """

    def __init__(
        self,
        thresholds: Optional[ConfidenceThresholds] = None,
        total_fields: int = TOTAL_FIELD_COUNT,
    ):
        self.thresholds = thresholds or ConfidenceThresholds()
        self.total_fields = total_fields

    def aggregate(
        self,
        scores: List[float],
        method: AggregationMethod = AggregationMethod.AVERAGE,
        weights: Optional[List[float]] = None,
    ) -> float:
        """
        Aggregate multiple confidence scores into single value.

        Scores outside [0, 1] are ignored; an empty input gives 0.0.
        """
        valid_scores = [s for s in scores if 0.0 <= s <= 1.0]
        if not valid_scores:
            return 0.0

        if method == AggregationMethod.MINIMUM:
            return min(valid_scores)

        elif method == AggregationMethod.AVERAGE:
            return statistics.mean(valid_scores)

        elif method == AggregationMethod.WEIGHTED_AVERAGE:
            if weights and len(weights) == len(valid_scores):
                total_weight = sum(weights)
                if total_weight > 0:
                    return sum(s * w for s, w in zip(valid_scores, weights)) / total_weight
            return statistics.mean(valid_scores)

        elif method == AggregationMethod.HARMONIC_MEAN:
            try:
                return statistics.harmonic_mean(valid_scores)
            except statistics.StatisticsError:
                return 0.0

        elif method == AggregationMethod.PRODUCT:
            result = 1.0
            for score in valid_scores:
                result *= score
            return result

        return 0.0

    def validate_record(self, fields: Dict[str, Any]) -> RecordValidation:
        """
        Check a merged record and collect penalties.

        - missing sampleName x0.7, submitterName x0.8, submitterEmail x0.8
        - malformed email x0.9
        - malformed concentration / volume x0.95 each
        """
        validation = RecordValidation()

        for field_name, issue, factor in MISSING_FIELD_PENALTIES:
            if not is_filled(fields.get(field_name)):
                validation.penalize(issue, factor)

        email = fields.get("submitterEmail")
        if is_filled(email) and not EMAIL_PATTERN.match(str(email).strip()):
            validation.penalize(INVALID_EMAIL_ISSUE, INVALID_EMAIL_PENALTY)

        concentration = fields.get("concentration")
        if is_filled(concentration) and not CONCENTRATION_PATTERN.match(str(concentration).strip()):
            validation.penalize(INVALID_CONCENTRATION_ISSUE, INVALID_SHAPE_PENALTY)

        volume = fields.get("volume")
        if is_filled(volume) and not VOLUME_PATTERN.match(str(volume).strip()):
            validation.penalize(INVALID_VOLUME_ISSUE, INVALID_SHAPE_PENALTY)

        return validation

    def completeness_factor(self, filled: int) -> float:
        if self.total_fields <= 0:
            return 1.0
        return 0.5 + 0.5 * (min(filled, self.total_fields) / self.total_fields)

    def record_confidence(self, base: float, multiplier: float, filled: int) -> float:
        """
        Final record confidence.

        base x penalties x completeness, floored at 0.1 once any field is
        present and capped at 1.0. An empty record scores 0.0.
        """
        if filled <= 0:
            return 0.0
        score = base * multiplier * self.completeness_factor(filled)
        return max(RECORD_FLOOR, min(RECORD_CAP, score))

    def score_record(self, fields: Dict[str, Any], base: float) -> Dict[str, Any]:
        """Validate and score in one step."""
        validation = self.validate_record(fields)
        filled = sum(1 for value in fields.values() if is_filled(value))
        confidence = self.record_confidence(base, validation.multiplier, filled)
        return {
            "confidence": confidence,
            "level": self.thresholds.get_level(confidence),
            "issues": validation.issues,
            "multiplier": validation.multiplier,
            "filled": filled,
        }


def get_confidence_level(score: float) -> str:
    return ConfidenceThresholds().get_level(score)
