# ============================================================================
# FILE: tests/unit/test_external_extractor.py
# ============================================================================
"""
Tests for the external (language model) extractor client
"""

import pytest

from nanopore_intake.core.context.enums import ExtractionMethod, ExtractionSource
from nanopore_intake.llm.external_extractor import ExternalExtractorClient
from nanopore_intake.utils.exceptions import (
    ExternalExtractorTimeout,
    MalformedResponseError,
)

from tests.conftest import SCENARIO_TEXT, StubLLMClient


class TestExtract:
    @pytest.mark.asyncio
    async def test_parses_reply(self):
        """A clean JSON reply becomes an llm-tagged record"""
        client = StubLLMClient(replies=[
            '{"sampleName": "ABC-001", "submitterName": "Jane Doe", "submitterEmail": "jane@example.com"}'
        ])
        extractor = ExternalExtractorClient(client, base_confidence=0.9)

        record = await extractor.extract(SCENARIO_TEXT)

        assert record.fields == {
            "sampleName": "ABC-001",
            "submitterName": "Jane Doe",
            "submitterEmail": "jane@example.com",
        }
        assert record.confidence == 0.9
        assert record.extraction_method == ExtractionMethod.LLM
        assert record.field_sources["sampleName"] == ExtractionSource.LLM
        assert SCENARIO_TEXT in client.prompts[0]

    @pytest.mark.asyncio
    async def test_fenced_reply_with_prose(self):
        client = StubLLMClient(replies=[
            'Here is the data:\n```json\n{"sampleName": "S1", "volume": "20 ul"}\n```'
        ])
        record = await ExternalExtractorClient(client).extract("x")
        assert record.fields == {"sampleName": "S1", "volume": "20 ul"}

    @pytest.mark.asyncio
    async def test_null_values_dropped(self):
        """null and placeholder strings never reach the record"""
        client = StubLLMClient(replies=[
            '{"sampleName": "S1", "labName": null, "projectName": "N/A", "priority": "  "}'
        ])
        record = await ExternalExtractorClient(client).extract("x")
        assert record.fields == {"sampleName": "S1"}

    @pytest.mark.asyncio
    async def test_unknown_keys_ignored(self):
        client = StubLLMClient(replies=['{"sampleName": "S1", "favouriteColour": "blue"}'])
        record = await ExternalExtractorClient(client).extract("x")
        assert "favouriteColour" not in record.fields

    @pytest.mark.asyncio
    async def test_boolean_coercion(self):
        client = StubLLMClient(replies=['{"sampleName": "S1", "demultiplexing": "yes"}'])
        record = await ExternalExtractorClient(client).extract("x")
        assert record.fields["demultiplexing"] is True

    @pytest.mark.asyncio
    async def test_list_value_joined(self):
        client = StubLLMClient(replies=['{"analysisType": ["variant calling", "assembly"]}'])
        record = await ExternalExtractorClient(client).extract("x")
        assert record.fields["analysisType"] == "variant calling, assembly"


class TestFailures:
    @pytest.mark.asyncio
    async def test_no_json_is_malformed(self):
        client = StubLLMClient(replies=["I could not find any fields, sorry."])
        with pytest.raises(MalformedResponseError):
            await ExternalExtractorClient(client).extract("x")

    @pytest.mark.asyncio
    async def test_no_known_keys_is_malformed(self):
        client = StubLLMClient(replies=['{"answer": 42}'])
        with pytest.raises(MalformedResponseError) as exc_info:
            await ExternalExtractorClient(client).extract("x")
        assert exc_info.value.raw_response == '{"answer": 42}'

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self):
        client = StubLLMClient(errors=[ExternalExtractorTimeout("timed out")])
        with pytest.raises(ExternalExtractorTimeout):
            await ExternalExtractorClient(client).extract("x")


class TestAvailability:
    @pytest.mark.asyncio
    async def test_healthy(self):
        assert await ExternalExtractorClient(StubLLMClient(healthy=True)).is_available() is True

    @pytest.mark.asyncio
    async def test_unhealthy(self):
        assert await ExternalExtractorClient(StubLLMClient(healthy=False)).is_available() is False
