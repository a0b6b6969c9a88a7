# ============================================================================
# src/nanopore_intake/resilience/service.py
# ============================================================================
"""
Resilient extraction service.

ResilienceWrapper guards one fallible async dependency (the external
extractor) with a result cache, a circuit breaker and retries with backoff,
and reports the outcome as Ok/Err instead of raising.

ResilientExtractionService is the top-level entry point. It turns an
uploaded document into a FormExtractionResponse and walks the fallback
chain when the primary extraction fails:

    primary (orchestrator + external) -> pattern only -> line scan
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ..core.context.enums import ExtractionMethod
from ..core.context.extracted_record import ExtractedRecord
from ..core.orchestrator import ExtractionOrchestrator
from ..core.progress import ProcessingStep, ProgressReporter, steps_for
from ..core.result import Err, ErrorKind, Ok, Result
from ..extractors.line_scan_extractor import LineScanExtractor
from ..extractors.text_extractor import DocumentInput, RawText, as_document, extract_raw_text
from ..utils.exceptions import CircuitOpenError, TextExtractionError
from ..utils.logging import LogContext, new_request_id
from .cache import ResultCache
from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from .metrics import MetricsRecorder, ServiceMetrics
from .retry import RetryConfig, classify_error, is_retryable

logger = logging.getLogger(__name__)

PATTERN_FALLBACK_ISSUE = "Extracted using pattern matching fallback"
ALL_METHODS_FAILED = "All extraction methods failed"
NO_TEXT_ERROR = "No text could be extracted from the document"
TOP_LEVEL_OPERATION = "extract_form_data"


class ResilienceWrapper:
    """
    Cache -> circuit breaker -> retry around an async callable.

    The breaker is consulted before every attempt, each failed attempt is
    recorded against it, and backoff waits are plain `asyncio.sleep` calls
    made without holding any lock.

    Example:
        wrapper = ResilienceWrapper.from_settings()
        result = await wrapper.execute("external_extract", lambda: client.extract(text),
                                       cache_input={"text": text})
        if result.is_ok:
            record = result.value
    """

    def __init__(
        self,
        retry_config: Optional[RetryConfig] = None,
        breaker: Optional[CircuitBreaker] = None,
        cache: Optional[ResultCache] = None,
        metrics: Optional[MetricsRecorder] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        rng: Callable[[], float] = random.random,
        track_requests: bool = True,
    ):
        self.retry_config = retry_config or RetryConfig()
        self.breaker = breaker or CircuitBreaker(clock=clock)
        self.cache = cache if cache is not None else ResultCache(clock=clock)
        self.metrics = metrics or MetricsRecorder()
        self._sleep = sleep
        self._clock = clock
        self._rng = rng
        # False when an outer service already counts requests in `metrics`
        self.track_requests = track_requests

    @classmethod
    def from_settings(cls, settings=None, **kwargs) -> "ResilienceWrapper":
        if settings is None:
            from ..config import resilience_settings as settings
        clock = kwargs.get("clock", time.monotonic)
        kwargs.setdefault("retry_config", RetryConfig.from_settings(settings))
        kwargs.setdefault("breaker", CircuitBreaker(CircuitBreakerConfig.from_settings(settings), clock=clock))
        kwargs.setdefault("cache", ResultCache.from_settings(settings, clock=clock))
        return cls(**kwargs)

    def is_available(self) -> bool:
        return self.breaker.is_available()

    async def execute(
        self,
        operation_name: str,
        func: Callable[[], Awaitable[Any]],
        cache_input: Any = None,
        deadline: Optional[float] = None,
    ) -> Result:
        """
        Run `func` with caching, circuit breaking and retries.

        Args:
            operation_name: Names the operation in logs and cache keys
            func: Zero-argument coroutine factory, called once per attempt
            cache_input: JSON-able input identifying the call; None disables
                caching for this call
            deadline: Monotonic time after which no attempt is started

        Returns:
            Ok(value) or Err(kind, message, exception)
        """
        start = self._clock()

        cache_key = None
        if cache_input is not None and self.cache.enabled:
            cache_key = self.cache.make_key(operation_name, cache_input)
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"{operation_name}: cache hit")
                self.metrics.record_cache_hit()
                return Ok(cached, cached=True)

        if self.track_requests:
            self.metrics.record_request()

        outcome = await self._attempt(operation_name, func, deadline)

        if outcome.is_ok:
            if cache_key is not None:
                self.cache.set(cache_key, outcome.value)
            if self.track_requests:
                self.metrics.record_success((self._clock() - start) * 1000)
        elif self.track_requests:
            self.metrics.record_failure()

        return outcome

    async def _attempt(
        self,
        operation_name: str,
        func: Callable[[], Awaitable[Any]],
        deadline: Optional[float],
    ) -> Result:
        attempts = self.retry_config.attempts
        last_error: Optional[BaseException] = None

        for attempt in range(attempts):
            if deadline is not None and self._clock() >= deadline:
                return Err(ErrorKind.DEADLINE_EXCEEDED, f"{operation_name}: deadline passed", last_error)

            if not self.breaker.allow_request():
                retry_after = self.breaker.retry_after()
                logger.warning(f"{operation_name}: circuit breaker open, retry after {retry_after:.1f}s")
                return Err(
                    ErrorKind.CIRCUIT_OPEN,
                    f"Circuit breaker open for {operation_name}",
                    CircuitOpenError(f"Circuit breaker open for {operation_name}", retry_after=retry_after),
                )

            try:
                value = await func()
            except asyncio.CancelledError:
                # Caller gave up; a claimed half-open probe must not stay claimed
                self.breaker.release_probe()
                raise
            except Exception as e:
                last_error = e
                if self.breaker.record_failure():
                    self.metrics.record_trip()

                if not is_retryable(e) or attempt + 1 >= attempts:
                    logger.error(f"{operation_name} failed after {attempt + 1} attempt(s): {e}")
                    break

                delay = self.retry_config.calculate_delay(attempt, self._rng)
                if deadline is not None and self._clock() + delay >= deadline:
                    logger.warning(f"{operation_name}: no time left for another attempt")
                    return Err(ErrorKind.DEADLINE_EXCEEDED, f"{operation_name}: deadline passed", e)

                logger.warning(
                    f"{operation_name} attempt {attempt + 1}/{attempts} failed: {e}. "
                    f"Retrying in {delay:.2f}s"
                )
                await self._sleep(delay)
                continue

            self.breaker.record_success()
            return Ok(value)

        return Err(classify_error(last_error), str(last_error), last_error)

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "circuit_breaker": self.breaker.snapshot().to_dict(),
            "cache": self.cache.get_statistics(),
            "metrics": self.metrics.snapshot().to_dict(),
        }


@dataclass(frozen=True)
class FallbackConfig:
    enable_pattern_matching: bool = True
    enable_basic_extraction: bool = True
    enable_cached_results: bool = True
    pattern_confidence: float = 0.6
    basic_confidence: float = 0.4

    @classmethod
    def from_settings(cls, settings=None) -> "FallbackConfig":
        if settings is None:
            from ..config import resilience_settings as settings
        return cls(
            enable_pattern_matching=settings.ENABLE_PATTERN_FALLBACK,
            enable_basic_extraction=settings.ENABLE_BASIC_FALLBACK,
            enable_cached_results=settings.ENABLE_CACHE,
            pattern_confidence=settings.PATTERN_FALLBACK_CONFIDENCE,
            basic_confidence=settings.BASIC_FALLBACK_CONFIDENCE,
        )


@dataclass
class FormExtractionResponse:
    success: bool
    data: Optional[ExtractedRecord] = None
    error: Optional[str] = None
    processing_time_ms: float = 0.0
    fallback_used: bool = False
    cached: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data.to_dict() if self.data is not None else None,
            "error": self.error,
            "processingTimeMs": round(self.processing_time_ms, 2),
            "fallbackUsed": self.fallback_used,
            "cached": self.cached,
        }


ProgressCallback = Callable[[Any], None]


class ResilientExtractionService:
    """
    Top-level extraction entry point.

    Args:
        orchestrator: Strategy runner (its `resilience` guards the external call)
        resilience: Shared breaker, cache and metrics; defaults to the
            orchestrator's wrapper
        text_extractor: Document -> RawText callable; runs in a worker thread
        fallback_config: Which fallback tiers run and their ceilings
        line_scan: Last-resort extractor
    """

    def __init__(
        self,
        orchestrator: ExtractionOrchestrator,
        resilience: Optional[ResilienceWrapper] = None,
        text_extractor: Callable[[DocumentInput], RawText] = extract_raw_text,
        fallback_config: Optional[FallbackConfig] = None,
        line_scan: Optional[LineScanExtractor] = None,
        progress_steps: Optional[List[ProcessingStep]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.orchestrator = orchestrator
        self.resilience = resilience or orchestrator.resilience or ResilienceWrapper(
            clock=clock, track_requests=False
        )
        if orchestrator.resilience is None:
            orchestrator.resilience = self.resilience
        # Requests are counted here, once per document
        self.resilience.track_requests = False

        self.text_extractor = text_extractor
        self.fallback_config = fallback_config or FallbackConfig()
        self.line_scan = line_scan or LineScanExtractor(confidence=self.fallback_config.basic_confidence)
        # None: derive the steps from the run (external or not, file or text)
        self.progress_steps = list(progress_steps) if progress_steps is not None else None
        self._clock = clock
        self._callbacks: List[ProgressCallback] = []

    @property
    def metrics(self) -> MetricsRecorder:
        return self.resilience.metrics

    @property
    def cache(self) -> ResultCache:
        return self.resilience.cache

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def extract_form_data(
        self,
        document: Union[DocumentInput, str, bytes],
        deadline: Optional[float] = None,
    ) -> FormExtractionResponse:
        """
        Extract form fields from an uploaded document.

        Input errors (unreadable file, no text) fail immediately without
        retry or fallback. Everything else ends in a response. Log records
        emitted while handling the request carry its `request_id`.
        """
        with LogContext(request_id=new_request_id()):
            return await self._extract_document(document, deadline)

    async def extract_from_text(self, text: str, deadline: Optional[float] = None) -> FormExtractionResponse:
        """Same chain as extract_form_data for text that is already available."""
        with LogContext(request_id=new_request_id()):
            return await self._extract_text(text, deadline)

    async def _extract_document(
        self,
        document: Union[DocumentInput, str, bytes],
        deadline: Optional[float],
    ) -> FormExtractionResponse:
        start = self._clock()
        reporter = self._new_reporter()
        reporter.start()
        self.metrics.record_request()

        reporter.update_step(ProcessingStep.VALIDATING_FILE, 0, "Validating file...")
        try:
            document = as_document(document)
        except TextExtractionError as e:
            return self._input_failure(reporter, start, f"Cannot read document: {e}")

        cache_key = None
        if self.fallback_config.enable_cached_results:
            cache_key = self.cache.make_key(TOP_LEVEL_OPERATION, {
                "filename": document.filename,
                "size": document.size,
                "hash": document.content_hash,
            })
            cached = self._cached_response(cache_key, start, reporter)
            if cached is not None:
                return cached

        reporter.update_step(ProcessingStep.EXTRACTING_TEXT, 0, f"Extracting text from {document.filename}...")
        try:
            raw = await asyncio.to_thread(self.text_extractor, document)
        except TextExtractionError as e:
            return self._input_failure(reporter, start, str(e))

        if not raw.text or not raw.text.strip():
            return self._input_failure(reporter, start, NO_TEXT_ERROR)
        reporter.update_step(
            ProcessingStep.EXTRACTING_TEXT, 100,
            f"Extracted {len(raw.text)} characters from {raw.page_count} page(s)",
        )

        return await self._extract_with_fallback(raw.text, start, reporter, cache_key, deadline)

    async def _extract_text(self, text: str, deadline: Optional[float]) -> FormExtractionResponse:
        start = self._clock()
        reporter = self._new_reporter(from_file=False)
        reporter.start()
        self.metrics.record_request()

        if not text or not text.strip():
            return self._input_failure(reporter, start, NO_TEXT_ERROR)

        cache_key = None
        if self.fallback_config.enable_cached_results:
            cache_key = self.cache.make_key(TOP_LEVEL_OPERATION, {"text": text})
            cached = self._cached_response(cache_key, start, reporter)
            if cached is not None:
                return cached

        return await self._extract_with_fallback(text, start, reporter, cache_key, deadline)

    # ------------------------------------------------------------------
    # Fallback chain
    # ------------------------------------------------------------------

    async def _extract_with_fallback(
        self,
        text: str,
        start: float,
        reporter: ProgressReporter,
        cache_key: Optional[str],
        deadline: Optional[float],
    ) -> FormExtractionResponse:
        primary = await self._run_primary(text, reporter, deadline)

        if primary.is_ok:
            record = primary.value
            response = self._success(record, start, reporter, fallback_used=False)
            if cache_key is not None:
                # The cache keeps its own copy of the record
                self.cache.set(cache_key, replace(response, data=record.copy()))
            return response

        logger.warning(f"Primary extraction failed ({primary.kind.value}: {primary.message}); using fallback")
        self.metrics.record_fallback()

        if self.fallback_config.enable_pattern_matching:
            record = await self._pattern_fallback(text, reporter)
            if record is not None:
                return self._success(record, start, reporter, fallback_used=True)

        if self.fallback_config.enable_basic_extraction:
            record = self._basic_fallback(text)
            if record is not None:
                return self._success(record, start, reporter, fallback_used=True)

        self.metrics.record_failure()
        reporter.error(ALL_METHODS_FAILED)
        return FormExtractionResponse(
            success=False,
            error=ALL_METHODS_FAILED,
            processing_time_ms=(self._clock() - start) * 1000,
            fallback_used=True,
        )

    async def _run_primary(self, text: str, reporter: ProgressReporter, deadline: Optional[float]) -> Result:
        try:
            outcome = await self.orchestrator.extract(text, use_external=True, progress=reporter, deadline=deadline)
        except Exception as e:
            logger.warning(f"Primary extraction raised: {e}", exc_info=True)
            return Err(ErrorKind.UNKNOWN, str(e), e)

        if outcome.external_failed:
            return outcome.external_outcome
        if outcome.record.is_empty:
            return Err(ErrorKind.NO_DATA, "No fields extracted")
        return Ok(outcome.record)

    async def _pattern_fallback(self, text: str, reporter: ProgressReporter) -> Optional[ExtractedRecord]:
        try:
            outcome = await self.orchestrator.extract(text, use_external=False, use_alias=False, progress=reporter)
        except Exception as e:
            logger.warning(f"Pattern fallback failed: {e}", exc_info=True)
            return None

        record = outcome.record
        if record.is_empty:
            logger.info("Pattern fallback found no fields")
            return None

        record.extraction_method = ExtractionMethod.PATTERN
        record.confidence = min(record.confidence, self.fallback_config.pattern_confidence)
        record.add_issue(PATTERN_FALLBACK_ISSUE)
        logger.info(f"Pattern fallback extracted {record.filled_field_count} fields")
        return record

    def _basic_fallback(self, text: str) -> Optional[ExtractedRecord]:
        try:
            record = self.line_scan.extract(text)
        except Exception as e:
            logger.warning(f"Basic fallback failed: {e}", exc_info=True)
            return None

        if record.is_empty:
            logger.info("Basic fallback found no fields")
            return None

        for issue in self.orchestrator.confidence_calculator.validate_record(record.fields).issues:
            record.add_issue(issue)
        record.confidence = min(record.confidence, self.fallback_config.basic_confidence)
        logger.info(f"Basic fallback extracted {record.filled_field_count} fields")
        return record

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def _success(
        self,
        record: ExtractedRecord,
        start: float,
        reporter: ProgressReporter,
        fallback_used: bool,
    ) -> FormExtractionResponse:
        reporter.update_step(ProcessingStep.FINALIZING, 100, "Finalizing results...")
        elapsed_ms = (self._clock() - start) * 1000
        self.metrics.record_success(elapsed_ms)
        reporter.complete()
        return FormExtractionResponse(
            success=True,
            data=record,
            processing_time_ms=elapsed_ms,
            fallback_used=fallback_used,
        )

    def _cached_response(
        self,
        cache_key: str,
        start: float,
        reporter: ProgressReporter,
    ) -> Optional[FormExtractionResponse]:
        cached = self.cache.get(cache_key)
        if cached is None:
            return None

        logger.info("Returning cached extraction result")
        self.metrics.record_cache_hit()
        elapsed_ms = (self._clock() - start) * 1000
        self.metrics.record_success(elapsed_ms)
        reporter.complete("Loaded cached result")
        return replace(cached, data=cached.data.copy(), processing_time_ms=elapsed_ms, cached=True)

    def _input_failure(self, reporter: ProgressReporter, start: float, message: str) -> FormExtractionResponse:
        logger.error(f"Input error: {message}")
        self.metrics.record_failure()
        reporter.error(message)
        return FormExtractionResponse(
            success=False,
            error=message,
            processing_time_ms=(self._clock() - start) * 1000,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def get_metrics(self) -> ServiceMetrics:
        return self.metrics.snapshot()

    def reset_circuit_breaker(self):
        self.resilience.breaker.reset()

    def clear_cache(self):
        self.cache.clear()

    def on_progress(self, callback: ProgressCallback):
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def off_progress(self, callback: ProgressCallback):
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _new_reporter(self, from_file: bool = True) -> ProgressReporter:
        steps = self.progress_steps
        if steps is None:
            steps = steps_for(self.orchestrator.external_enabled, from_file=from_file)
        return ProgressReporter(steps, clock=self._clock, callbacks=list(self._callbacks))

    async def check_service_health(self) -> Dict[str, Any]:
        """
        Report breaker state, external reachability and metrics.

        status: healthy (external reachable), degraded (local strategies
        only) or unhealthy (fallbacks disabled and external down).
        """
        external_reachable = False
        external_error = None
        extractor = self.orchestrator.external_extractor
        if extractor is not None and self.orchestrator.config.use_external:
            try:
                external_reachable = await extractor.is_available()
            except Exception as e:
                external_error = str(e)
                logger.warning(f"External health check failed: {e}")

        breaker_open = not self.resilience.is_available()
        if external_reachable and not breaker_open:
            status = "healthy"
        elif self.fallback_config.enable_pattern_matching or self.fallback_config.enable_basic_extraction:
            status = "degraded"
        else:
            status = "unhealthy"

        health = {
            "status": status,
            "external_extractor": {
                "configured": extractor is not None,
                "reachable": external_reachable,
            },
            "circuit_breaker": self.resilience.breaker.snapshot().to_dict(),
            "cache": self.cache.get_statistics(),
            "metrics": self.get_metrics().to_dict(),
        }
        if external_error:
            health["external_extractor"]["error"] = external_error
        return health

    def update_config(
        self,
        retry: Optional[Dict[str, Any]] = None,
        fallback: Optional[Dict[str, Any]] = None,
    ):
        """Apply partial overrides, e.g. update_config(retry={"max_retries": 5})."""
        if retry:
            self.resilience.retry_config = replace(self.resilience.retry_config, **retry)
        if fallback:
            self.fallback_config = replace(self.fallback_config, **fallback)
            if "basic_confidence" in fallback:
                self.line_scan.confidence = self.fallback_config.basic_confidence
        logger.info(f"Updated resilience config (retry={retry}, fallback={fallback})")

    async def close(self):
        """Release the external client's HTTP session."""
        extractor = self.orchestrator.external_extractor
        if extractor is not None:
            await extractor.llm_client.close()


def build_extraction_service(llm_client=None, use_external: Optional[bool] = None) -> ResilientExtractionService:
    """
    Wire the default service from settings.

    Args:
        llm_client: BaseLLMClient to use; created from llm settings when
            omitted and the external extractor is enabled
        use_external: Override LLM_ENABLED
    """
    from ..config import llm_settings, resilience_settings
    from ..core.orchestrator import OrchestratorConfig
    from ..llm.client import create_client
    from ..llm.external_extractor import ExternalExtractorClient

    if use_external is None:
        use_external = llm_settings.LLM_ENABLED

    external = None
    if use_external:
        external = ExternalExtractorClient(
            llm_client or create_client(),
            base_confidence=llm_settings.LLM_BASE_CONFIDENCE,
        )

    resilience = ResilienceWrapper.from_settings(resilience_settings)
    orchestrator = ExtractionOrchestrator(
        external_extractor=external,
        resilience=resilience,
        config=OrchestratorConfig(use_external=use_external),
    )
    return ResilientExtractionService(
        orchestrator,
        resilience=resilience,
        fallback_config=FallbackConfig.from_settings(resilience_settings),
    )
