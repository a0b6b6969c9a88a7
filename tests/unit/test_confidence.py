# ============================================================================
# FILE: tests/unit/test_confidence.py
# ============================================================================
"""
Tests for confidence aggregation and record scoring
"""

import pytest

from nanopore_intake.core.confidence import (
    INVALID_EMAIL_ISSUE,
    AggregationMethod,
    ConfidenceCalculator,
    get_confidence_level,
)


@pytest.fixture
def calculator():
    return ConfidenceCalculator()


VALID_RECORD = {
    "sampleName": "NP-1",
    "submitterName": "Jane Doe",
    "submitterEmail": "jane@lab.org",
}


class TestAggregation:
    """Test score aggregation methods"""

    def test_average(self, calculator):
        assert calculator.aggregate([0.8, 0.6]) == pytest.approx(0.7)

    def test_minimum(self, calculator):
        assert calculator.aggregate([0.8, 0.6], AggregationMethod.MINIMUM) == 0.6

    def test_weighted(self, calculator):
        score = calculator.aggregate([1.0, 0.5], AggregationMethod.WEIGHTED_AVERAGE, weights=[3, 1])
        assert score == pytest.approx(0.875)

    def test_product(self, calculator):
        assert calculator.aggregate([0.5, 0.5], AggregationMethod.PRODUCT) == pytest.approx(0.25)

    def test_ignores_out_of_range(self, calculator):
        assert calculator.aggregate([1.5, -1, 0.4]) == pytest.approx(0.4)

    def test_empty(self, calculator):
        assert calculator.aggregate([]) == 0.0


class TestRecordValidation:
    """Test issues and penalty multipliers"""

    def test_clean_record(self, calculator):
        validation = calculator.validate_record(VALID_RECORD)
        assert validation.issues == []
        assert validation.multiplier == 1.0

    def test_missing_required(self, calculator):
        validation = calculator.validate_record({})

        assert validation.issues == [
            "Sample name is required",
            "Submitter name is required",
            "Submitter email is required",
        ]
        assert validation.multiplier == pytest.approx(0.7 * 0.8 * 0.8)

    def test_invalid_email(self, calculator):
        validation = calculator.validate_record({**VALID_RECORD, "submitterEmail": "not-an-email"})

        assert validation.issues == [INVALID_EMAIL_ISSUE]
        assert validation.multiplier == pytest.approx(0.9)

    def test_invalid_shapes(self, calculator):
        validation = calculator.validate_record({**VALID_RECORD, "concentration": "lots", "volume": "some"})

        assert "Invalid concentration format" in validation.issues
        assert "Invalid volume format" in validation.issues
        assert validation.multiplier == pytest.approx(0.95 * 0.95)


class TestRecordConfidence:
    """Test the final record confidence"""

    def test_completeness(self, calculator):
        assert calculator.completeness_factor(0) == 0.5
        assert calculator.completeness_factor(19) == 1.0

    def test_formula(self, calculator):
        expected = 0.9 * 0.9 * (0.5 + 0.5 * 3 / 19)
        assert calculator.record_confidence(0.9, 0.9, 3) == pytest.approx(expected)

    def test_floor(self, calculator):
        """Once any field is present the score never drops below 0.1"""
        assert calculator.record_confidence(0.01, 0.5, 1) == 0.1

    def test_cap(self, calculator):
        assert calculator.record_confidence(5.0, 1.0, 19) == 1.0

    def test_empty_record(self, calculator):
        assert calculator.record_confidence(0.9, 1.0, 0) == 0.0

    def test_score_record(self, calculator):
        scored = calculator.score_record(VALID_RECORD, 1.0)

        assert scored["filled"] == 3
        assert scored["issues"] == []
        assert scored["level"] == "low"
        assert scored["confidence"] == pytest.approx(0.5 + 0.5 * 3 / 19)


class TestLevels:
    @pytest.mark.parametrize("score,level", [(0.9, "high"), (0.75, "medium"), (0.2, "low")])
    def test_levels(self, score, level):
        assert get_confidence_level(score) == level
