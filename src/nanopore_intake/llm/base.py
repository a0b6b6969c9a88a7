# ============================================================================
# src/nanopore_intake/llm/base.py
# ============================================================================
"""
Base LLM Client Interface

Defines the abstract interface every language-model backend implements.
Supported backends:
- ollama: Ollama server over HTTP
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
from enum import Enum
import logging
import json

from json_repair import repair_json


class BackendType(Enum):
    """Supported inference backends."""
    OLLAMA = "ollama"


class BaseLLMClient(ABC):
    """
    Abstract base class for LLM inference clients.

    All backends must implement:
    - generate(): Async text generation
    - health_check(): Verify backend is available
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logging.getLogger(self.__class__.__name__)

        self._inference_count = 0
        self._failure_count = 0
        self._total_inference_time = 0.0

    @property
    @abstractmethod
    def backend_type(self) -> BackendType:
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        pass

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False
    ) -> Dict[str, Any]:
        """
        Generate response from prompt.

        Returns:
            {
                "text": str,              # Generated text
                "prompt_tokens": int,
                "generated_tokens": int,
                "model": str,
                "backend": str,
                "inference_time": float   # Seconds
            }

        Raises:
            ExternalExtractorTimeout, ExternalExtractorConnectionError,
            ExternalExtractorError
        """
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """
        Check if the backend is available and ready.

        Returns:
            {"healthy": bool, "backend": str, "model": str, "details": str}
        """
        pass

    async def close(self):
        """Release network resources (no-op by default)."""
        return None

    def extract_json(self, response_text: str) -> Optional[Dict]:
        """
        Extract JSON object from generated text.

        Models often wrap the object in prose or code fences, or emit
        single quotes and trailing commas. Tries, in order: direct parse,
        json_repair on the whole reply, brace-matched block (direct, then
        repaired). Returns None when no object can be recovered.
        """
        if not response_text or not response_text.strip():
            self.logger.warning("Empty response text, no JSON to extract")
            return None

        try:
            parsed = json.loads(response_text.strip())
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

        start_idx = response_text.find('{')
        if start_idx == -1:
            self.logger.warning("No JSON found in response")
            return None

        try:
            repaired = repair_json(response_text, return_objects=True)
            if isinstance(repaired, dict) and repaired:
                self.logger.debug("json_repair fixed entire response")
                return repaired
        except Exception as e:
            self.logger.debug(f"json_repair failed on full response: {e}")

        # Brace matching
        depth = 0
        end_idx = -1
        for i, char in enumerate(response_text[start_idx:], start=start_idx):
            if char == '{':
                depth += 1
            elif char == '}':
                depth -= 1
                if depth == 0:
                    end_idx = i
                    break

        json_str = response_text[start_idx:end_idx + 1] if end_idx != -1 else response_text[start_idx:]

        try:
            parsed = json.loads(json_str)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

        try:
            repaired = repair_json(json_str, return_objects=True)
            if isinstance(repaired, dict) and repaired:
                self.logger.debug("json_repair fixed extracted JSON block")
                return repaired
        except Exception as e:
            self.logger.debug(f"json_repair failed on extracted block: {e}")

        self.logger.warning(f"Could not parse JSON from response: {response_text[:200]}...")
        return None

    def get_statistics(self) -> Dict[str, Any]:
        avg_time = (
            self._total_inference_time / self._inference_count
            if self._inference_count > 0
            else 0.0
        )
        return {
            "backend": self.backend_type.value,
            "model": self.model_name,
            "inference_count": self._inference_count,
            "failure_count": self._failure_count,
            "total_inference_time": self._total_inference_time,
            "average_inference_time": avg_time,
        }
