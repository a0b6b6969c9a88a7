# ============================================================================
# FILE: tests/unit/test_llm_client.py
# ============================================================================
"""
Tests for the LLM client factory and JSON recovery
"""

import pytest

from nanopore_intake.llm.client import create_client, get_default_config
from nanopore_intake.llm.ollama_client import OllamaClient, DEFAULT_OLLAMA_MODEL
from nanopore_intake.llm.prompts import create_form_extraction_prompt
from nanopore_intake.utils.exceptions import ConfigurationError

from tests.conftest import StubLLMClient


@pytest.fixture
def client():
    return StubLLMClient()


class TestExtractJson:
    def test_plain_object(self, client):
        assert client.extract_json('{"sampleName": "S1"}') == {"sampleName": "S1"}

    def test_object_inside_prose(self, client):
        text = 'Sure! {"sampleName": "S1", "volume": "20 ul"} Hope that helps.'
        assert client.extract_json(text) == {"sampleName": "S1", "volume": "20 ul"}

    def test_trailing_comma_repaired(self, client):
        assert client.extract_json('{"sampleName": "S1",}') == {"sampleName": "S1"}

    def test_nested_braces(self, client):
        parsed = client.extract_json('result: {"sampleName": "S1", "meta": {"a": 1}} end')
        assert parsed["meta"] == {"a": 1}

    @pytest.mark.parametrize("text", ["", "   ", "no json here"])
    def test_nothing_recoverable(self, client, text):
        assert client.extract_json(text) is None


class TestFactory:
    def test_creates_ollama_client(self):
        client = create_client({"backend": "ollama", "ollama_model": "llama3.2", "ollama_host": "http://host:1/"})
        assert isinstance(client, OllamaClient)
        assert client.model_name == "llama3.2"
        assert client.host == "http://host:1"

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError):
            create_client({"backend": "carrier-pigeon"})

    def test_default_config(self):
        config = get_default_config()
        assert config["backend"] == "ollama"
        assert config["ollama_model"] == DEFAULT_OLLAMA_MODEL
        assert config["temperature"] == 0.1


class TestStatistics:
    def test_statistics_start_empty(self, client):
        stats = client.get_statistics()
        assert stats["inference_count"] == 0
        assert stats["average_inference_time"] == 0.0
        assert stats["model"] == "stub"


class TestPrompt:
    def test_prompt_lists_fields(self):
        prompt = create_form_extraction_prompt("Sample Name: S1")
        assert "Sample Name: S1" in prompt
        assert "sampleName" in prompt
        assert "submitterEmail" in prompt

    def test_prompt_truncates_long_text(self):
        prompt = create_form_extraction_prompt("x" * 500, max_chars=100)
        assert "x" * 101 not in prompt
