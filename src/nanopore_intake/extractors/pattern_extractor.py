# ============================================================================
# src/nanopore_intake/extractors/pattern_extractor.py
# ============================================================================
"""
Pattern-Based Field Extraction

Runs tiered regex tables over raw form text and scores every hit:
1. Base confidence from the tier (primary 0.95 ... fuzzy 0.65)
2. +0.05 per positive keyword within ±50 chars of the match
3. -0.2 per placeholder token inside the value ("example", "test123")
4. Length penalties and a bonus for well-formed value shapes
5. Clamp to [0.1, 1.0]

Candidates are deduplicated by normalized value, filtered (> 0.5) and the
best five kept per field.

Pure and deterministic: no I/O, no shared mutable state after construction.
"""

import logging
import re
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

from ..constants.field_patterns import FIELD_PATTERNS, TIER_CONFIDENCE, TIER_ORDER
from ..constants.indicators import (
    CONTEXT_WINDOW,
    MAX_CONFIDENCE,
    MAX_MATCHES_PER_FIELD,
    MAX_VALUE_LENGTH,
    MIN_CONFIDENCE,
    MIN_VALUE_LENGTH,
    NEGATIVE_INDICATORS,
    NEGATIVE_PENALTY,
    POSITIVE_BONUS,
    POSITIVE_INDICATORS,
    SURVIVAL_THRESHOLD,
    TOO_LONG_PENALTY,
    TOO_SHORT_PENALTY,
    WELL_FORMED_BONUS,
    WELL_FORMED_SHAPES,
)
from ..core.context.enums import ExtractionSource
from ..core.context.extraction_match import ExtractionMatch

logger = logging.getLogger(__name__)


class PatternExtractor:
    """
    Extracts candidate values for each canonical field using regex tiers.

    Usage:
        extractor = PatternExtractor()
        matches = extractor.extract_field("sampleName", text)
        best = matches[0].extracted_value if matches else None
    """

    def __init__(self, patterns: Optional[Dict[str, Dict[str, List[str]]]] = None):
        self._compiled: Dict[str, List[Tuple[str, Pattern[str]]]] = {}
        for field_name, tiers in (patterns or FIELD_PATTERNS).items():
            self._compiled[field_name] = self._compile_tiers(tiers)

        logger.debug(f"PatternExtractor ready with {len(self._compiled)} fields")

    @staticmethod
    def _compile_tiers(tiers: Dict[str, List[str]]) -> List[Tuple[str, Pattern[str]]]:
        compiled = []
        for tier in TIER_ORDER:
            for source in tiers.get(tier, []):
                compiled.append((tier, re.compile(source, re.IGNORECASE)))
        return compiled

    @property
    def field_names(self) -> List[str]:
        return list(self._compiled)

    def add_custom_patterns(
        self,
        field_name: str,
        primary: Iterable[str] = (),
        secondary: Iterable[str] = (),
        contextual: Iterable[str] = (),
        fuzzy: Iterable[str] = (),
    ):
        """Append extra patterns to a field's tiers (creates the field if new)."""
        new_tiers = {
            "primary": list(primary),
            "secondary": list(secondary),
            "contextual": list(contextual),
            "fuzzy": list(fuzzy),
        }
        existing = self._compiled.get(field_name, [])
        merged = existing + self._compile_tiers(new_tiers)
        # Keep tier order stable
        merged.sort(key=lambda item: TIER_ORDER.index(item[0]))
        self._compiled[field_name] = merged

    def extract_field(self, field_name: str, text: str) -> List[ExtractionMatch]:
        """
        Candidate matches for one field, best first.

        Unknown fields and empty text yield an empty list.
        """
        patterns = self._compiled.get(field_name)
        if not patterns or not text:
            return []

        candidates: List[Tuple[ExtractionMatch, int]] = []
        for tier, pattern in patterns:
            tier_rank = TIER_ORDER.index(tier)
            for m in pattern.finditer(text):
                raw_value = m.group(1) if m.lastindex else m.group(0)
                if raw_value is None:
                    continue
                value = raw_value.strip()
                if not value:
                    continue

                start = m.start(1) if m.lastindex else m.start()
                context = self._context_window(text, m.start(), m.end())
                confidence = self._score(value, context, TIER_CONFIDENCE[tier])

                candidates.append((
                    ExtractionMatch(
                        field_name=field_name,
                        extracted_value=value,
                        confidence=confidence,
                        source=ExtractionSource.PATTERN,
                        raw_text=m.group(0),
                        offset=start,
                        pattern=pattern.pattern,
                        context=context,
                        reasoning=f"{tier} pattern matched at offset {start}",
                    ),
                    tier_rank,
                ))

        return self._deduplicate(candidates)

    def extract_all_fields(self, text: str) -> Dict[str, List[ExtractionMatch]]:
        """Run every field; fields without surviving candidates are omitted."""
        results = {}
        for field_name in self._compiled:
            matches = self.extract_field(field_name, text)
            if matches:
                results[field_name] = matches
        return results

    def get_best_match(self, field_name: str, text: str) -> Optional[ExtractionMatch]:
        matches = self.extract_field(field_name, text)
        return matches[0] if matches else None

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    @staticmethod
    def _context_window(text: str, start: int, end: int) -> str:
        return text[max(0, start - CONTEXT_WINDOW):min(len(text), end + CONTEXT_WINDOW)]

    @staticmethod
    def _score(value: str, context: str, base: float) -> float:
        confidence = base

        lowered_context = context.lower()
        for indicator in POSITIVE_INDICATORS:
            if indicator in lowered_context:
                confidence += POSITIVE_BONUS

        lowered_value = value.lower()
        for indicator in NEGATIVE_INDICATORS:
            if indicator in lowered_value:
                confidence -= NEGATIVE_PENALTY

        if len(value) < MIN_VALUE_LENGTH:
            confidence -= TOO_SHORT_PENALTY
        elif len(value) > MAX_VALUE_LENGTH:
            confidence -= TOO_LONG_PENALTY

        if any(shape.match(value) for shape in WELL_FORMED_SHAPES):
            confidence += WELL_FORMED_BONUS

        return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))

    @staticmethod
    def _deduplicate(candidates: List[Tuple[ExtractionMatch, int]]) -> List[ExtractionMatch]:
        def order(item: Tuple[ExtractionMatch, int]):
            match, tier_rank = item
            return (-match.confidence, match.offset, tier_rank)

        best: Dict[str, Tuple[ExtractionMatch, int]] = {}
        for item in sorted(candidates, key=order):
            key = item[0].extracted_value.strip().lower()
            # Sorted best-first, so the first one seen wins its group
            if key not in best:
                best[key] = item

        survivors = [item for item in best.values() if item[0].confidence > SURVIVAL_THRESHOLD]
        survivors.sort(key=order)
        return [match for match, _ in survivors[:MAX_MATCHES_PER_FIELD]]
