# ============================================================================
# src/nanopore_intake/llm/__init__.py
# ============================================================================
"""
Language-model backends and the external form extractor.
"""

from .base import BaseLLMClient, BackendType
from .ollama_client import OllamaClient
from .client import create_client, get_default_config
from .prompts import create_form_extraction_prompt, build_field_schema
from .external_extractor import ExternalExtractorClient

__all__ = [
    "BaseLLMClient",
    "BackendType",
    "OllamaClient",
    "create_client",
    "get_default_config",
    "create_form_extraction_prompt",
    "build_field_schema",
    "ExternalExtractorClient",
]
