# ============================================================================
# src/nanopore_intake/llm/ollama_client.py
# ============================================================================
"""
Ollama LLM Client

Talks to an Ollama server's HTTP API:
- POST /api/generate for completions
- GET  /api/tags to check the model is pulled

Setup:
    1. Install Ollama: https://ollama.ai
    2. Pull model: ollama pull llama3.2
    3. Start server: ollama serve
"""

import aiohttp
import asyncio
from typing import Dict, Any, Optional
from datetime import datetime

from .base import BaseLLMClient, BackendType
from ..utils.exceptions import (
    ExternalExtractorError,
    ExternalExtractorTimeout,
    ExternalExtractorConnectionError,
)


DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_OLLAMA_MODEL = "llama3.2"


class OllamaClient(BaseLLMClient):
    """
    Ollama-based inference client.

    Config options:
        ollama_host: Ollama server URL (default: http://localhost:11434)
        ollama_model: Model name (default: llama3.2)
        max_tokens: Default max tokens (default: 1000)
        temperature: Default temperature (default: 0.1)
        timeout: Per-request timeout in seconds (default: 120)
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)

        self.host = self.config.get('ollama_host', DEFAULT_OLLAMA_HOST).rstrip('/')
        self._model_name = self.config.get('ollama_model', DEFAULT_OLLAMA_MODEL)

        self.default_max_tokens = self.config.get('max_tokens', 1000)
        self.default_temperature = self.config.get('temperature', 0.1)
        self.timeout = self.config.get('timeout', 120)

        # HTTP session (created lazily, tied to event loop)
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_loop: Optional[asyncio.AbstractEventLoop] = None

        self.logger.info(f"Initialized Ollama client: {self.host} / {self._model_name}")

    @property
    def backend_type(self) -> BackendType:
        return BackendType.OLLAMA

    @property
    def model_name(self) -> str:
        return self._model_name

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session for current event loop."""
        current_loop = asyncio.get_running_loop()

        needs_new_session = (
            self._session is None
            or self._session.closed
            or self._session_loop is not current_loop
        )

        if needs_new_session:
            if self._session is not None and not self._session.closed:
                await self._session.close()

            timeout = aiohttp.ClientTimeout(total=None, sock_connect=30)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._session_loop = current_loop

        return self._session

    async def close(self):
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self._session_loop = None

    async def health_check(self) -> Dict[str, Any]:
        """Check the Ollama server is running and the model is pulled."""
        try:
            session = await self._get_session()

            async with session.get(
                f"{self.host}/api/tags",
                timeout=aiohttp.ClientTimeout(total=10)
            ) as response:
                if response.status != 200:
                    return {
                        "healthy": False,
                        "backend": "ollama",
                        "model": self._model_name,
                        "details": f"Ollama server returned status {response.status}"
                    }

                data = await response.json()
                models = [m.get('name', '') for m in data.get('models', [])]

                if not any(self._model_name in m for m in models):
                    return {
                        "healthy": False,
                        "backend": "ollama",
                        "model": self._model_name,
                        "details": f"Model not found. Available: {models}. Run: ollama pull {self._model_name}"
                    }

                return {
                    "healthy": True,
                    "backend": "ollama",
                    "model": self._model_name,
                    "details": "Ollama server running and model available"
                }

        except aiohttp.ClientConnectorError:
            return {
                "healthy": False,
                "backend": "ollama",
                "model": self._model_name,
                "details": f"Cannot connect to Ollama at {self.host}. Is it running? Try: ollama serve"
            }
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return {
                "healthy": False,
                "backend": "ollama",
                "model": self._model_name,
                "details": f"Health check failed: {e}"
            }

    async def generate(
        self,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False
    ) -> Dict[str, Any]:
        """
        Generate response using Ollama.

        Args:
            prompt: Input prompt
            max_tokens: Max tokens to generate
            temperature: Sampling temperature
            json_mode: Constrain output to valid JSON (Ollama format="json")

        Returns:
            Response dict with text, tokens, timing info
        """
        start_time = datetime.now()

        max_tokens = max_tokens or self.default_max_tokens
        temperature = temperature if temperature is not None else self.default_temperature

        payload = {
            "model": self._model_name,
            "prompt": prompt,
            "stream": False,
            "options": {
                "num_predict": max_tokens,
                "temperature": temperature,
            }
        }
        if json_mode:
            payload["format"] = "json"

        try:
            session = await self._get_session()

            async def _do_request():
                async with session.post(f"{self.host}/api/generate", json=payload) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise ExternalExtractorError(f"Ollama error ({response.status}): {error_text}")
                    return await response.json()

            data = await asyncio.wait_for(_do_request(), timeout=self.timeout)

        except asyncio.TimeoutError:
            self._failure_count += 1
            self.logger.error(f"Ollama request timed out after {self.timeout}s (model={self._model_name})")
            raise ExternalExtractorTimeout(f"LLM request timed out after {self.timeout}s")
        except aiohttp.ClientConnectorError as e:
            self._failure_count += 1
            raise ExternalExtractorConnectionError(
                f"Cannot connect to Ollama at {self.host}. Make sure Ollama is running: ollama serve"
            ) from e
        except aiohttp.ClientError as e:
            self._failure_count += 1
            self.logger.error(f"Ollama inference failed: {e}")
            raise ExternalExtractorError(f"Ollama request failed: {e}") from e
        except ExternalExtractorError:
            self._failure_count += 1
            raise

        generated_text = data.get('response', '')
        inference_time = (datetime.now() - start_time).total_seconds()

        prompt_tokens = data.get('prompt_eval_count', 0)
        generated_tokens = data.get('eval_count', 0)

        self._inference_count += 1
        self._total_inference_time += inference_time

        self.logger.info(f"Generated {generated_tokens} tokens in {inference_time:.2f}s")

        return {
            "text": generated_text.strip(),
            "prompt_tokens": prompt_tokens,
            "generated_tokens": generated_tokens,
            "model": self._model_name,
            "backend": "ollama",
            "inference_time": inference_time,
        }

    def get_statistics(self) -> Dict[str, Any]:
        stats = super().get_statistics()
        stats["ollama_host"] = self.host
        return stats
