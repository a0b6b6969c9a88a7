# ============================================================================
# FILE: tests/unit/test_line_scan.py
# ============================================================================
"""
Tests for the last-resort line scan extractor
"""

from nanopore_intake.core.context.enums import ExtractionMethod, ExtractionSource
from nanopore_intake.extractors.line_scan_extractor import BASIC_FALLBACK_ISSUE, LineScanExtractor


class TestLineScan:
    """Test keyword mapping of key: value lines"""

    def test_scenario(self, scenario_text):
        record = LineScanExtractor().extract(scenario_text)

        assert record.fields == {
            "sampleName": "ABC-001",
            "submitterName": "Jane Doe",
            "submitterEmail": "jane@example.com",
        }
        assert record.extraction_method == ExtractionMethod.BASIC
        assert record.confidence == 0.4
        assert record.issues == [BASIC_FALLBACK_ISSUE]
        assert set(record.field_sources.values()) == {ExtractionSource.BASIC}

    def test_contact_email_goes_to_email(self):
        """Email rule wins over the contact rule"""
        assert LineScanExtractor.field_for_key("Contact Email") == "submitterEmail"
        assert LineScanExtractor.field_for_key("Contact") == "submitterName"

    def test_later_lines_overwrite(self):
        record = LineScanExtractor().extract("Volume: 10 ul\nVolume: 20 ul")
        assert record.fields["volume"] == "20 ul"

    def test_nothing_found(self):
        record = LineScanExtractor().extract("free text without labels")
        assert record.is_empty
        assert record.confidence == 0.0

    def test_custom_confidence(self):
        record = LineScanExtractor(confidence=0.3).extract("Concentration: 5 ng/ul")
        assert record.confidence == 0.3
