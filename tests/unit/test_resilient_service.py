# ============================================================================
# FILE: tests/unit/test_resilient_service.py
# ============================================================================
"""
Tests for the top-level service and its fallback chain
"""

import json
import logging

import pytest

from nanopore_intake.core.context.enums import CircuitState, ExtractionMethod
from nanopore_intake.core.orchestrator import ExtractionOrchestrator
from nanopore_intake.core.progress import PATTERN_ONLY_STEPS, ProcessingStep
from nanopore_intake.extractors.line_scan_extractor import BASIC_FALLBACK_ISSUE
from nanopore_intake.extractors.text_extractor import DocumentInput, RawText
from nanopore_intake.resilience.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from nanopore_intake.resilience.retry import RetryConfig
from nanopore_intake.resilience.service import (
    ALL_METHODS_FAILED,
    NO_TEXT_ERROR,
    PATTERN_FALLBACK_ISSUE,
    FallbackConfig,
    ResilienceWrapper,
    ResilientExtractionService,
)
from nanopore_intake.utils.exceptions import TextExtractionError
from nanopore_intake.utils.logging import JsonFormatter

from tests.conftest import SCENARIO_TEXT, RecordingSleep, StubExternalExtractor


def make_service(fake_clock, external=None, fallback=None, text_extractor=None, threshold=5):
    wrapper = ResilienceWrapper(
        retry_config=RetryConfig(max_retries=1),
        breaker=CircuitBreaker(CircuitBreakerConfig(failure_threshold=threshold, timeout_seconds=60),
                               clock=fake_clock),
        sleep=RecordingSleep(fake_clock),
        clock=fake_clock,
    )
    orchestrator = ExtractionOrchestrator(external_extractor=external, resilience=wrapper)
    kwargs = {}
    if text_extractor is not None:
        kwargs["text_extractor"] = text_extractor
    return ResilientExtractionService(
        orchestrator,
        fallback_config=fallback or FallbackConfig(),
        clock=fake_clock,
        **kwargs,
    )


def text_document(text, name="form.txt"):
    return DocumentInput(filename=name, content=text.encode("utf-8"))


class TestPrimary:
    @pytest.mark.asyncio
    async def test_external_success(self, fake_clock):
        external = StubExternalExtractor({"sampleName": "ABC-001", "submitterName": "Jane Doe",
                                          "submitterEmail": "jane@example.com"})
        service = make_service(fake_clock, external)

        response = await service.extract_from_text(SCENARIO_TEXT)

        assert response.success
        assert not response.fallback_used
        assert response.data.extraction_method == ExtractionMethod.LLM
        assert service.get_metrics().successful_requests == 1

    @pytest.mark.asyncio
    async def test_pattern_only_service(self, fake_clock):
        """Without an external extractor the local strategies are primary"""
        service = make_service(fake_clock)

        response = await service.extract_form_data(text_document(SCENARIO_TEXT))

        assert response.success
        assert not response.fallback_used
        assert response.data.extraction_method == ExtractionMethod.PATTERN
        assert response.data.fields["submitterEmail"] == "jane@example.com"


class TestFallbackChain:
    @pytest.mark.asyncio
    async def test_external_failure_uses_pattern_fallback(self, fake_clock, failing_external):
        """External error: fallback used and the method is never llm"""
        service = make_service(fake_clock, failing_external)

        response = await service.extract_from_text(SCENARIO_TEXT)

        assert response.success
        assert response.fallback_used
        assert response.data.extraction_method == ExtractionMethod.PATTERN
        assert response.data.confidence <= 0.6
        assert PATTERN_FALLBACK_ISSUE in response.data.issues
        assert service.get_metrics().fallback_usage == 1

    @pytest.mark.asyncio
    async def test_line_scan_when_pattern_disabled(self, fake_clock, failing_external):
        service = make_service(fake_clock, failing_external,
                               fallback=FallbackConfig(enable_pattern_matching=False))

        response = await service.extract_from_text(SCENARIO_TEXT)

        assert response.fallback_used
        assert response.data.extraction_method == ExtractionMethod.BASIC
        assert response.data.confidence == 0.4
        assert BASIC_FALLBACK_ISSUE in response.data.issues

    @pytest.mark.asyncio
    async def test_line_scan_when_patterns_find_nothing(self, fake_clock, failing_external):
        """Labels only the line scan understands still produce a record"""
        service = make_service(fake_clock, failing_external)

        response = await service.extract_from_text("Sample volume: plenty")

        assert response.success
        assert response.data.extraction_method == ExtractionMethod.BASIC
        assert response.data.fields["volume"] == "plenty"
        assert "Invalid volume format" in response.data.issues

    @pytest.mark.asyncio
    async def test_all_tiers_fail(self, fake_clock, failing_external):
        service = make_service(fake_clock, failing_external,
                               fallback=FallbackConfig(enable_pattern_matching=False,
                                                       enable_basic_extraction=False))

        response = await service.extract_from_text(SCENARIO_TEXT)

        assert not response.success
        assert response.error == ALL_METHODS_FAILED
        assert response.fallback_used
        assert service.get_metrics().failed_requests == 1

    @pytest.mark.asyncio
    async def test_open_breaker_short_circuits(self, fake_clock, failing_external):
        """Five failing requests open the breaker; the sixth skips the external call"""
        service = make_service(fake_clock, failing_external, threshold=5)

        for _ in range(5):
            response = await service.extract_from_text(SCENARIO_TEXT + "\n")
            assert response.fallback_used
            service.clear_cache()

        assert service.resilience.breaker.state == CircuitState.OPEN

        response = await service.extract_from_text(SCENARIO_TEXT)

        assert failing_external.calls == 5
        assert response.success
        assert response.fallback_used
        assert response.data.extraction_method != ExtractionMethod.LLM

    @pytest.mark.asyncio
    async def test_reset_circuit_breaker(self, fake_clock, failing_external):
        service = make_service(fake_clock, failing_external, threshold=1)
        await service.extract_from_text(SCENARIO_TEXT)
        assert service.resilience.breaker.state == CircuitState.OPEN

        service.reset_circuit_breaker()

        assert service.resilience.breaker.state == CircuitState.CLOSED


class TestInputErrors:
    @pytest.mark.asyncio
    async def test_empty_text(self, fake_clock):
        service = make_service(fake_clock)
        response = await service.extract_from_text("   ")

        assert not response.success
        assert response.error == NO_TEXT_ERROR
        assert not response.fallback_used

    @pytest.mark.asyncio
    async def test_text_extraction_error_not_retried(self, fake_clock):
        calls = []

        def broken(document):
            calls.append(document)
            raise TextExtractionError("corrupt PDF")

        service = make_service(fake_clock, text_extractor=broken)
        response = await service.extract_form_data(text_document("x", name="form.pdf"))

        assert not response.success
        assert response.error == "corrupt PDF"
        assert len(calls) == 1
        assert service.get_metrics().fallback_usage == 0

    @pytest.mark.asyncio
    async def test_document_without_text(self, fake_clock):
        service = make_service(fake_clock, text_extractor=lambda document: RawText(text="", page_count=1))
        response = await service.extract_form_data(text_document("ignored"))

        assert response.error == NO_TEXT_ERROR

    @pytest.mark.asyncio
    async def test_missing_file(self, fake_clock, tmp_path):
        service = make_service(fake_clock)
        response = await service.extract_form_data(str(tmp_path / "nope.pdf"))

        assert not response.success
        assert response.error.startswith("Cannot read document")


class TestCaching:
    @pytest.mark.asyncio
    async def test_same_document_cached(self, fake_clock):
        service = make_service(fake_clock)
        document = text_document(SCENARIO_TEXT)

        first = await service.extract_form_data(document)
        second = await service.extract_form_data(document)

        assert not first.cached
        assert second.cached
        assert second.data.fields == first.data.fields
        assert service.get_metrics().cache_hits == 1

    @pytest.mark.asyncio
    async def test_cached_record_isolated_from_callers(self, fake_clock):
        """Edits to a returned record never reach later cache hits"""
        service = make_service(fake_clock)

        first = await service.extract_from_text(SCENARIO_TEXT)
        first.data.fields["sampleName"] = "EDITED"
        first.data.add_issue("edited by caller")

        second = await service.extract_from_text(SCENARIO_TEXT)
        second.data.fields["submitterName"] = "Someone Else"

        third = await service.extract_from_text(SCENARIO_TEXT)

        assert third.cached
        assert third.data.fields["sampleName"] == "ABC-001"
        assert third.data.fields["submitterName"] == "Jane Doe"
        assert "edited by caller" not in third.data.issues

    @pytest.mark.asyncio
    async def test_fallback_results_not_cached(self, fake_clock, failing_external):
        service = make_service(fake_clock, failing_external)

        await service.extract_from_text(SCENARIO_TEXT)
        second = await service.extract_from_text(SCENARIO_TEXT)

        assert not second.cached

    @pytest.mark.asyncio
    async def test_clear_cache(self, fake_clock):
        service = make_service(fake_clock)
        await service.extract_from_text(SCENARIO_TEXT)
        service.clear_cache()

        response = await service.extract_from_text(SCENARIO_TEXT)
        assert not response.cached


class TestProgressEvents:
    @pytest.mark.asyncio
    async def test_subscribers_receive_updates(self, fake_clock):
        updates = []
        service = make_service(fake_clock)
        service.on_progress(updates.append)

        await service.extract_form_data(text_document(SCENARIO_TEXT))

        steps = [u.step for u in updates]
        assert steps[0] == ProcessingStep.INITIALIZING
        assert ProcessingStep.EXTRACTING_TEXT in steps
        assert steps[-1] == ProcessingStep.COMPLETED
        assert updates[-1].overall_progress == 100.0

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_abort(self, fake_clock):
        def broken(update):
            raise ValueError("subscriber bug")

        service = make_service(fake_clock)
        service.on_progress(broken)

        response = await service.extract_from_text(SCENARIO_TEXT)
        assert response.success

    @pytest.mark.asyncio
    async def test_off_progress(self, fake_clock):
        updates = []
        service = make_service(fake_clock)
        service.on_progress(updates.append)
        service.off_progress(updates.append)

        await service.extract_from_text(SCENARIO_TEXT)
        assert updates == []

    @pytest.mark.asyncio
    async def test_error_event(self, fake_clock):
        updates = []
        service = make_service(fake_clock)
        service.on_progress(updates.append)

        await service.extract_from_text("")
        assert updates[-1].step == ProcessingStep.ERROR

    @pytest.mark.asyncio
    async def test_only_planned_steps_reported(self, fake_clock):
        """A pattern-only upload reaches 100% at FINALIZING, before COMPLETED"""
        updates = []
        service = make_service(fake_clock)
        service.on_progress(updates.append)

        await service.extract_form_data(text_document(SCENARIO_TEXT))

        reported = {u.step for u in updates} - {ProcessingStep.COMPLETED}
        assert reported <= set(PATTERN_ONLY_STEPS)
        assert updates[-2].step == ProcessingStep.FINALIZING
        assert updates[-2].overall_progress == pytest.approx(100.0)

    @pytest.mark.asyncio
    async def test_fallback_progress_never_rewinds(self, fake_clock, failing_external):
        updates = []
        service = make_service(fake_clock, failing_external)
        service.on_progress(updates.append)

        response = await service.extract_from_text(SCENARIO_TEXT)

        assert response.fallback_used
        overall = [u.overall_progress for u in updates]
        assert overall == sorted(overall)
        assert ProcessingStep.VALIDATING_FILE not in {u.step for u in updates}


class TestOperations:
    @pytest.mark.asyncio
    async def test_health_healthy(self, fake_clock):
        service = make_service(fake_clock, StubExternalExtractor(available=True))
        health = await service.check_service_health()

        assert health["status"] == "healthy"
        assert health["external_extractor"]["reachable"] is True
        assert health["circuit_breaker"]["state"] == "closed"

    @pytest.mark.asyncio
    async def test_health_degraded(self, fake_clock):
        service = make_service(fake_clock, StubExternalExtractor(available=False))
        health = await service.check_service_health()
        assert health["status"] == "degraded"

    @pytest.mark.asyncio
    async def test_health_unhealthy(self, fake_clock):
        service = make_service(fake_clock, fallback=FallbackConfig(enable_pattern_matching=False,
                                                                   enable_basic_extraction=False))
        health = await service.check_service_health()
        assert health["status"] == "unhealthy"

    def test_update_config(self, fake_clock):
        service = make_service(fake_clock)
        service.update_config(retry={"max_retries": 4}, fallback={"basic_confidence": 0.3})

        assert service.resilience.retry_config.max_retries == 4
        assert service.fallback_config.basic_confidence == 0.3
        assert service.line_scan.confidence == 0.3

    def test_metrics_snapshot(self, fake_clock):
        service = make_service(fake_clock)
        assert service.get_metrics().total_requests == 0

    @pytest.mark.asyncio
    async def test_close_releases_client(self, fake_clock):
        external = StubExternalExtractor()
        service = make_service(fake_clock, external)
        await service.close()
        assert external.llm_client.closed


class TestRequestLogContext:
    @pytest.mark.asyncio
    async def test_records_carry_request_id(self, fake_clock, caplog):
        """Every record logged while serving a request is stamped with its id"""
        service = make_service(fake_clock)

        with caplog.at_level(logging.INFO):
            await service.extract_form_data(text_document(SCENARIO_TEXT))
            await service.extract_from_text("Sample Name: XYZ-002")
            logging.getLogger("nanopore_intake.tests").info("after requests")

        served = [r for r in caplog.records if r.name.startswith("nanopore_intake.core")]
        assert len(served) >= 2
        request_ids = {r.request_id for r in served}
        assert len(request_ids) == 2

        trailing = caplog.records[-1]
        assert trailing.getMessage() == "after requests"
        assert not hasattr(trailing, "request_id")

        payload = json.loads(JsonFormatter().format(served[0]))
        assert payload["extra"]["request_id"] == served[0].request_id
