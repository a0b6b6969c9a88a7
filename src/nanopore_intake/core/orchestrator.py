# ============================================================================
# src/nanopore_intake/core/orchestrator.py
# ============================================================================
"""
Extraction Orchestrator

Runs every strategy over one document's text and merges the results into a
single ExtractedRecord:

1. Pattern Extractor and Alias Mapper (concurrently, in worker threads)
2. External extractor, through the resilience wrapper, when enabled and
   reachable
3. Per-field merge: external > pattern > alias, validated values first
4. Record confidence: base x validation penalties x completeness

A failing strategy never aborts the run; it just contributes nothing.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..constants.field_definitions import (
    FIELD_DEFINITIONS_BY_NAME,
    FIELD_NAMES,
    coerce_boolean,
)
from ..extractors.alias_mapper import AliasMapper, AliasMappingResult
from ..extractors.pattern_extractor import PatternExtractor
from ..utils.exceptions import StrategyError
from .confidence import ConfidenceCalculator
from .context.enums import DataType, ExtractionMethod, ExtractionSource
from .context.extracted_record import ExtractedRecord, is_filled
from .context.extraction_match import ExtractionMatch
from .context.field_value import (
    FieldValue,
    FromAlias,
    FromExternal,
    FromPattern,
    Unset,
    select_field_value,
)
from .progress import ProcessingStep, ProgressReporter
from .result import Err, ErrorKind, Ok, Result

logger = logging.getLogger(__name__)

EXTERNAL_OPERATION = "external_extract"

# Fields whose format problems are already reported by record validation
RECORD_VALIDATED_FIELDS = {"submitterEmail", "concentration", "volume"}


@dataclass
class OrchestratorConfig:
    use_external: bool = True
    use_alias: bool = True
    attach_recommendations: bool = True


@dataclass
class OrchestrationResult:
    record: ExtractedRecord
    external_outcome: Optional[Result] = None
    pattern_matches: Dict[str, List[ExtractionMatch]] = field(default_factory=dict)
    alias_result: Optional[AliasMappingResult] = None

    @property
    def external_attempted(self) -> bool:
        return self.external_outcome is not None

    @property
    def external_failed(self) -> bool:
        return self.external_outcome is not None and not self.external_outcome.is_ok


class ExtractionOrchestrator:
    """
    Coordinates the strategies for one request at a time. Holds no
    per-request state, so one instance serves concurrent requests.

    Args:
        pattern_extractor: Regex tiers per field
        alias_mapper: Label similarity mapper (also the field validator)
        external_extractor: Optional ExternalExtractorClient
        resilience: Optional ResilienceWrapper guarding the external call
        confidence_calculator: Record scoring
        progress: Default ProgressReporter when a call passes none
    """

    def __init__(
        self,
        pattern_extractor: Optional[PatternExtractor] = None,
        alias_mapper: Optional[AliasMapper] = None,
        external_extractor=None,
        resilience=None,
        confidence_calculator: Optional[ConfidenceCalculator] = None,
        progress: Optional[ProgressReporter] = None,
        config: Optional[OrchestratorConfig] = None,
    ):
        self.pattern_extractor = pattern_extractor or PatternExtractor()
        self.alias_mapper = alias_mapper or AliasMapper()
        self.external_extractor = external_extractor
        self.resilience = resilience
        self.confidence_calculator = confidence_calculator or ConfidenceCalculator()
        self.progress = progress
        self.config = config or OrchestratorConfig()

    @property
    def external_enabled(self) -> bool:
        return self.config.use_external and self.external_extractor is not None

    async def extract(
        self,
        text: str,
        use_external: bool = True,
        use_alias: Optional[bool] = None,
        progress: Optional[ProgressReporter] = None,
        deadline: Optional[float] = None,
    ) -> OrchestrationResult:
        """
        Extract every known field from raw text.

        Args:
            text: Raw document text
            use_external: Consult the external extractor (if configured)
            use_alias: Run the alias mapper (defaults to the config)
            progress: Reporter for this request
            deadline: Monotonic time after which no further external
                attempts are scheduled

        Returns:
            OrchestrationResult; never raises for strategy or dependency
            failures
        """
        start = time.perf_counter()
        progress = progress or self.progress
        use_alias = self.config.use_alias if use_alias is None else use_alias

        self._report(progress, ProcessingStep.PATTERN_MATCHING, 0, "Matching field patterns...")
        pattern_matches, alias_result = await self._run_local_strategies(text, use_alias)
        self._report(
            progress, ProcessingStep.PATTERN_MATCHING, 100,
            f"Pattern matching found {len(pattern_matches)} fields",
        )

        external_outcome: Optional[Result] = None
        if use_external and self.external_enabled:
            self._report(progress, ProcessingStep.LLM_PROCESSING, 0, "Requesting external extraction...")
            external_outcome = await self._request_external(text, deadline)
            self._report(
                progress, ProcessingStep.LLM_PROCESSING, 100,
                "External extraction complete" if external_outcome.is_ok else "External extraction unavailable",
            )

        self._report(progress, ProcessingStep.VALIDATING_DATA, 0, "Merging and validating fields...")
        record = self._merge(pattern_matches, alias_result, external_outcome)

        if use_alias and self.config.attach_recommendations and not record.is_empty:
            record.recommendations = self.alias_mapper.enhance(record.fields).recommendations

        record.processing_time_ms = (time.perf_counter() - start) * 1000
        self._report(progress, ProcessingStep.VALIDATING_DATA, 100, "Validation complete")

        logger.info(
            f"Extracted {record.filled_field_count} fields "
            f"(method={record.extraction_method.value}, confidence={record.confidence:.2f}, "
            f"{record.processing_time_ms:.0f}ms)"
        )

        return OrchestrationResult(
            record=record,
            external_outcome=external_outcome,
            pattern_matches=pattern_matches,
            alias_result=alias_result,
        )

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    @staticmethod
    def _run_strategy(name: str, func, text: str):
        try:
            return func(text)
        except Exception as e:
            raise StrategyError(str(e), strategy=name) from e

    async def _run_local_strategies(self, text: str, use_alias: bool):
        tasks = [asyncio.to_thread(self._run_strategy, "pattern", self.pattern_extractor.extract_all_fields, text)]
        if use_alias:
            tasks.append(asyncio.to_thread(self._run_strategy, "alias", self.alias_mapper.map_text, text))

        results = await asyncio.gather(*tasks, return_exceptions=True)

        pattern_matches: Dict[str, List[ExtractionMatch]] = {}
        if isinstance(results[0], Exception):
            logger.warning(f"Pattern strategy failed: {results[0]}", exc_info=results[0])
        else:
            pattern_matches = results[0]

        alias_result: Optional[AliasMappingResult] = None
        if use_alias:
            if isinstance(results[1], Exception):
                logger.warning(f"Alias strategy failed: {results[1]}", exc_info=results[1])
            else:
                alias_result = results[1]

        return pattern_matches, alias_result

    async def _request_external(self, text: str, deadline: Optional[float]) -> Result:
        if self.resilience is None:
            try:
                return Ok(await self.external_extractor.extract(text))
            except Exception as e:
                logger.warning(f"External extraction failed: {e}")
                return Err(ErrorKind.EXHAUSTED, str(e), e)

        if not self.resilience.is_available():
            logger.info("External extractor unavailable (circuit open); using local strategies")
            return Err(ErrorKind.CIRCUIT_OPEN, "Circuit breaker is open")

        return await self.resilience.execute(
            EXTERNAL_OPERATION,
            lambda: self.external_extractor.extract(text),
            cache_input={"text": text},
            deadline=deadline,
        )

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def _merge(
        self,
        pattern_matches: Dict[str, List[ExtractionMatch]],
        alias_result: Optional[AliasMappingResult],
        external_outcome: Optional[Result],
    ) -> ExtractedRecord:
        external: Optional[ExtractedRecord] = None
        if external_outcome is not None and external_outcome.is_ok:
            external = external_outcome.value

        alias_best = alias_result.best_matches() if alias_result else {}

        fields: Dict[str, Any] = {}
        sources: Dict[str, ExtractionSource] = {}
        field_confidences: List[float] = []
        field_issues: List[str] = []

        for field_name in FIELD_NAMES:
            candidates: List[FieldValue] = []

            if external is not None and is_filled(external.fields.get(field_name)):
                candidates.append(FromExternal(
                    value=self._coerce(field_name, external.fields[field_name]),
                    confidence=external.confidence,
                ))

            matches = pattern_matches.get(field_name) or []
            if matches:
                best = matches[0]
                candidates.append(FromPattern(
                    value=self._coerce(field_name, best.extracted_value),
                    confidence=best.confidence,
                    match=best,
                ))

            alias_match = alias_best.get(field_name)
            if alias_match is not None:
                candidates.append(FromAlias(
                    value=self._coerce(field_name, alias_match.extracted_value),
                    confidence=alias_match.confidence,
                    match=alias_match,
                ))

            chosen = select_field_value(
                candidates,
                lambda value, name=field_name: self.alias_mapper.is_valid(name, value),
            )
            if isinstance(chosen, Unset):
                continue

            fields[field_name] = chosen.value
            sources[field_name] = chosen.source
            field_confidences.append(chosen.confidence)

            if field_name not in RECORD_VALIDATED_FIELDS:
                valid, issues = self.alias_mapper.validate_field_value(field_name, chosen.value)
                if not valid:
                    field_issues.append(f"{field_name}: {', '.join(issues)}")

        if external is not None:
            base = external.confidence
        else:
            base = self.confidence_calculator.aggregate(field_confidences)

        validation = self.confidence_calculator.validate_record(fields)
        filled = sum(1 for value in fields.values() if is_filled(value))
        confidence = self.confidence_calculator.record_confidence(base, validation.multiplier, filled)

        return ExtractedRecord(
            fields=fields,
            confidence=confidence,
            extraction_method=self.determine_method(sources),
            issues=validation.issues + field_issues,
            field_sources=sources,
        )

    @staticmethod
    def determine_method(sources: Dict[str, ExtractionSource]) -> ExtractionMethod:
        """LLM/PATTERN/ALIAS when one source supplied everything, HYBRID otherwise."""
        used = set(sources.values())
        if len(used) > 1:
            return ExtractionMethod.HYBRID
        if used == {ExtractionSource.LLM}:
            return ExtractionMethod.LLM
        if used == {ExtractionSource.ALIAS}:
            return ExtractionMethod.ALIAS
        return ExtractionMethod.PATTERN

    @staticmethod
    def _coerce(field_name: str, value: Any) -> Any:
        definition = FIELD_DEFINITIONS_BY_NAME.get(field_name)
        if definition is not None and definition.data_type == DataType.BOOLEAN:
            coerced = coerce_boolean(value)
            if coerced is not None:
                return coerced
        if isinstance(value, str):
            return value.strip()
        return value

    @staticmethod
    def _report(progress: Optional[ProgressReporter], step: ProcessingStep, percent: float, message: str):
        if progress is not None:
            progress.update_step(step, percent, message)
