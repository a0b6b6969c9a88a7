# ============================================================================
# src/nanopore_intake/config/llm_config.py
# ============================================================================
"""
External extractor (LLM) Configuration
- Ollama host and model
- Max tokens / temperature
- Timeout
- Base confidence assigned to model output
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    LLM_ENABLED: bool = Field(
        default=True,
        description="Use the external language-model extractor at all"
    )
    OLLAMA_HOST: str = Field(
        default="http://localhost:11434",
        description="Ollama server URL"
    )
    OLLAMA_MODEL: str = Field(
        default="llama3.2",
        description="Model used for form extraction"
    )
    LLM_MAX_TOKENS: int = Field(
        default=1000,
        description="Maximum tokens for generation"
    )
    LLM_TEMPERATURE: float = Field(
        default=0.1,
        description="Sampling temperature (0.1 = very deterministic)"
    )
    LLM_TIMEOUT: int = Field(
        default=120,
        description="Per-request timeout in seconds"
    )
    LLM_BASE_CONFIDENCE: float = Field(
        default=0.9,
        description="Confidence assigned to a well-formed model reply before validation penalties"
    )

    def to_client_config(self) -> dict:
        """Config dict understood by llm.client.create_client()"""
        return {
            "backend": "ollama",
            "ollama_host": self.OLLAMA_HOST,
            "ollama_model": self.OLLAMA_MODEL,
            "max_tokens": self.LLM_MAX_TOKENS,
            "temperature": self.LLM_TEMPERATURE,
            "timeout": self.LLM_TIMEOUT,
        }


llm_settings = LLMSettings()
