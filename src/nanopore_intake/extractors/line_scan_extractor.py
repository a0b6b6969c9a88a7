# ============================================================================
# src/nanopore_intake/extractors/line_scan_extractor.py
# ============================================================================
"""
Minimal last-resort extractor: scans "key: value" lines and maps a small set
of keyword substrings onto fields.
"""

import logging
from typing import Dict, List, Optional, Tuple

from ..core.context.enums import ExtractionMethod, ExtractionSource
from ..core.context.extracted_record import ExtractedRecord

logger = logging.getLogger(__name__)

BASIC_FALLBACK_ISSUE = "Extracted using basic fallback method"

# (keywords that must all appear in the key, field); first hit wins.
# Email is checked before submitter/contact so "Contact Email" lands on the
# email field.
KEYWORD_RULES: List[Tuple[Tuple[str, ...], str]] = [
    (("sample", "name"), "sampleName"),
    (("email",), "submitterEmail"),
    (("submitter",), "submitterName"),
    (("contact",), "submitterName"),
    (("concentration",), "concentration"),
    (("volume",), "volume"),
]


class LineScanExtractor:
    def __init__(self, confidence: float = 0.4):
        self.confidence = confidence

    @staticmethod
    def field_for_key(key: str) -> Optional[str]:
        lowered = key.lower()
        for keywords, field_name in KEYWORD_RULES:
            if all(word in lowered for word in keywords):
                return field_name
        return None

    def extract(self, text: str) -> ExtractedRecord:
        fields: Dict[str, str] = {}
        for line in text.split("\n"):
            colon = line.find(":")
            if colon <= 0:
                continue
            value = line[colon + 1:].strip()
            if not value:
                continue
            field_name = self.field_for_key(line[:colon].strip())
            if field_name:
                # Later lines overwrite earlier ones
                fields[field_name] = value

        logger.debug(f"Line scan found {len(fields)} fields")

        return ExtractedRecord(
            fields=fields,
            confidence=self.confidence if fields else 0.0,
            extraction_method=ExtractionMethod.BASIC,
            issues=[BASIC_FALLBACK_ISSUE],
            field_sources={name: ExtractionSource.BASIC for name in fields},
        )
