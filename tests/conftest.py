# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

from typing import Any, Dict, List, Optional

import pytest

from nanopore_intake.core.context.enums import ExtractionMethod, ExtractionSource
from nanopore_intake.core.context.extracted_record import ExtractedRecord
from nanopore_intake.llm.base import BackendType, BaseLLMClient
from nanopore_intake.utils.exceptions import ExternalExtractorConnectionError


SCENARIO_TEXT = "Sample Name: ABC-001\nSubmitter: Jane Doe\nEmail: jane@example.com"


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement: records delays and advances the fake clock."""

    def __init__(self, clock: Optional[FakeClock] = None):
        self.clock = clock
        self.delays: List[float] = []

    async def __call__(self, delay: float):
        self.delays.append(delay)
        if self.clock is not None:
            self.clock.advance(delay)


class StubLLMClient(BaseLLMClient):
    """LLM client returning canned replies; raises queued exceptions first."""

    def __init__(self, replies: Optional[List[str]] = None, errors: Optional[List[Exception]] = None,
                 healthy: bool = True):
        super().__init__({})
        self.replies = list(replies or [])
        self.errors = list(errors or [])
        self.healthy = healthy
        self.prompts: List[str] = []
        self.closed = False

    @property
    def backend_type(self) -> BackendType:
        return BackendType.OLLAMA

    @property
    def model_name(self) -> str:
        return "stub"

    async def generate(self, prompt, max_tokens=None, temperature=None, json_mode=False) -> Dict[str, Any]:
        self.prompts.append(prompt)
        if self.errors:
            raise self.errors.pop(0)
        text = self.replies.pop(0) if self.replies else "{}"
        return {"text": text, "model": "stub", "backend": "ollama"}

    async def health_check(self) -> Dict[str, Any]:
        return {"healthy": self.healthy, "backend": "ollama", "model": "stub", "details": ""}

    async def close(self):
        self.closed = True


class StubExternalExtractor:
    """Stands in for ExternalExtractorClient; counts calls."""

    def __init__(self, fields: Optional[Dict[str, Any]] = None, confidence: float = 0.9,
                 error: Optional[Exception] = None, available: bool = True):
        self.fields = fields or {}
        self.confidence = confidence
        self.error = error
        self.available = available
        self.calls = 0
        self.llm_client = StubLLMClient()

    async def extract(self, text: str) -> ExtractedRecord:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return ExtractedRecord(
            fields=dict(self.fields),
            confidence=self.confidence,
            extraction_method=ExtractionMethod.LLM,
            field_sources={name: ExtractionSource.LLM for name in self.fields},
        )

    async def is_available(self) -> bool:
        return self.available


@pytest.fixture
def scenario_text():
    """The three-field reference form"""
    return SCENARIO_TEXT


@pytest.fixture
def full_form_text():
    """A fuller intake form with most sections filled in"""
    return """
    Oxford Nanopore Sequencing Submission Form

    Sample Information
    Sample Name: NP-2024-017
    Sample Type: Genomic DNA
    Concentration: 45.2 ng/ul
    Volume: 30 ul
    Buffer: TE buffer

    Submitter Information
    Submitter Name: Dr. Maria Lopez
    Email: maria.lopez@university.edu
    Lab: Genomics Core
    Department: Molecular Biology
    Phone: (555) 123-4567

    Sequencing Parameters
    Sequencing Type: DNA
    Flow Cell: R10.4.1
    Library Prep: Ligation
    Priority: High
    """


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def recording_sleep(fake_clock):
    return RecordingSleep(fake_clock)


@pytest.fixture
def failing_external():
    return StubExternalExtractor(error=ExternalExtractorConnectionError("connection refused"))
