# ============================================================================
# FILE: tests/unit/test_api.py
# ============================================================================
"""
Tests for the REST API, with an injected service
"""

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from nanopore_intake.core.orchestrator import ExtractionOrchestrator
from nanopore_intake.resilience.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from nanopore_intake.resilience.retry import RetryConfig
from nanopore_intake.resilience.service import (
    ALL_METHODS_FAILED,
    FallbackConfig,
    ResilienceWrapper,
    ResilientExtractionService,
)
from nanopore_intake.utils.exceptions import ExternalExtractorConnectionError

from tests.conftest import SCENARIO_TEXT, FakeClock, RecordingSleep, StubExternalExtractor


def build_service(external=None, fallback=None):
    clock = FakeClock()
    wrapper = ResilienceWrapper(
        retry_config=RetryConfig(max_retries=1),
        breaker=CircuitBreaker(CircuitBreakerConfig(failure_threshold=1, timeout_seconds=60), clock=clock),
        sleep=RecordingSleep(clock),
        clock=clock,
    )
    orchestrator = ExtractionOrchestrator(external_extractor=external, resilience=wrapper)
    return ResilientExtractionService(orchestrator, fallback_config=fallback or FallbackConfig(), clock=clock)


@pytest.fixture
def service():
    return build_service()


@pytest.fixture
def client(service):
    with TestClient(create_app(service)) as test_client:
        yield test_client


class TestExtractEndpoint:
    def test_extracts_text_upload(self, client):
        response = client.post(
            "/api/extract",
            files={"file": ("form.txt", SCENARIO_TEXT.encode("utf-8"), "text/plain")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["fallbackUsed"] is False
        assert body["data"]["sampleName"] == "ABC-001"
        assert body["data"]["submitterEmail"] == "jane@example.com"
        assert body["data"]["extractionMethod"] == "pattern"

    def test_empty_upload(self, client):
        response = client.post("/api/extract", files={"file": ("form.txt", b"", "text/plain")})
        assert response.status_code == 400

    def test_unsupported_file(self, client):
        """Input errors are 400, not a fallback failure"""
        response = client.post("/api/extract", files={"file": ("scan.docx", b"PK\x03\x04", "application/zip")})
        assert response.status_code == 400

    def test_all_tiers_failed(self):
        external = StubExternalExtractor(error=ExternalExtractorConnectionError("refused"))
        service = build_service(
            external,
            FallbackConfig(enable_pattern_matching=False, enable_basic_extraction=False),
        )
        with TestClient(create_app(service)) as client:
            response = client.post(
                "/api/extract",
                files={"file": ("form.txt", SCENARIO_TEXT.encode("utf-8"), "text/plain")},
            )

        assert response.status_code == 422
        assert response.json()["detail"] == ALL_METHODS_FAILED


class TestOperationalEndpoints:
    def test_health_without_external(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "degraded"
        assert body["external_extractor"]["configured"] is False
        assert body["circuit_breaker"]["state"] == "closed"

    def test_metrics(self, client):
        client.post("/api/extract", files={"file": ("form.txt", SCENARIO_TEXT.encode("utf-8"), "text/plain")})
        body = client.get("/api/metrics").json()
        assert body["total_requests"] == 1
        assert body["successful_requests"] == 1

    def test_reset_circuit_breaker(self, client):
        body = client.post("/api/circuit-breaker/reset").json()
        assert body["status"] == "reset"
        assert body["circuit_breaker"]["state"] == "closed"

    def test_clear_cache(self, client, service):
        client.post("/api/extract", files={"file": ("form.txt", SCENARIO_TEXT.encode("utf-8"), "text/plain")})
        assert len(service.cache) == 1

        assert client.delete("/api/cache").json() == {"status": "cleared"}
        assert len(service.cache) == 0
