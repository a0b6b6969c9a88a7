# ============================================================================
# src/nanopore_intake/llm/client.py
# ============================================================================
"""
LLM Client Factory

Usage:
    from nanopore_intake.llm.client import create_client

    client = create_client({'backend': 'ollama', 'ollama_model': 'llama3.2'})
    result = await client.generate("Extract the sample name ...")

Every call builds a new client; callers own its lifetime (and close()).
"""

from typing import Dict, Any, Optional
import logging

from .base import BaseLLMClient, BackendType
from .ollama_client import OllamaClient, DEFAULT_OLLAMA_HOST, DEFAULT_OLLAMA_MODEL
from ..utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_BACKEND = "ollama"


def create_client(config: Optional[Dict[str, Any]] = None) -> BaseLLMClient:
    """
    Create an LLM client.

    Settings from the environment (.env) are the base; passed config values
    take precedence.

    Args:
        config: Configuration dict with at minimum:
            - backend: "ollama" (default)
            - ollama_host, ollama_model, max_tokens, temperature, timeout

    Raises:
        ConfigurationError: If backend type is not supported
    """
    from ..config import llm_settings

    config = {**llm_settings.to_client_config(), **(config or {})}
    backend = str(config.get('backend', DEFAULT_BACKEND)).lower()

    if backend == BackendType.OLLAMA.value:
        logger.debug(f"Creating ollama client for {config.get('ollama_model')}")
        return OllamaClient(config)

    raise ConfigurationError(f"Unknown backend: {backend}. Supported backends: ollama")


def get_default_config(backend: str = DEFAULT_BACKEND) -> Dict[str, Any]:
    """Default configuration for a backend, ignoring the environment."""
    return {
        "backend": backend,
        "ollama_host": DEFAULT_OLLAMA_HOST,
        "ollama_model": DEFAULT_OLLAMA_MODEL,
        "max_tokens": 1000,
        "temperature": 0.1,
        "timeout": 120,
    }


__all__ = [
    "create_client",
    "get_default_config",
    "BaseLLMClient",
    "BackendType",
    "OllamaClient",
    "DEFAULT_BACKEND",
    "DEFAULT_OLLAMA_MODEL",
]
