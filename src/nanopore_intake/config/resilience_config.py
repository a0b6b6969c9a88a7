# ============================================================================
# src/nanopore_intake/config/resilience_config.py
# ============================================================================
"""
Resilience Settings
- Retry with exponential backoff
- Circuit breaker threshold / cooldown
- Result cache TTL
- Fallback chain toggles and confidence ceilings
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ResilienceSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Retry
    MAX_RETRIES: int = Field(default=3, description="Maximum attempts per call, the first included")
    BASE_DELAY: float = Field(default=1.0, description="First backoff delay in seconds")
    MAX_DELAY: float = Field(default=30.0, description="Backoff delay cap in seconds")
    BACKOFF_MULTIPLIER: float = Field(default=2.0, description="Delay growth per attempt")
    JITTER_FACTOR: float = Field(default=0.1, description="Random jitter as a fraction of the delay")

    # Circuit breaker
    FAILURE_THRESHOLD: int = Field(default=5, description="Consecutive failures before opening")
    CIRCUIT_TIMEOUT: float = Field(default=60.0, description="Seconds the breaker stays open")

    # Result cache
    ENABLE_CACHE: bool = Field(default=True, description="Cache successful results")
    CACHE_TTL: float = Field(default=3600.0, description="Cache entry lifetime in seconds")

    # Fallback chain
    ENABLE_PATTERN_FALLBACK: bool = Field(default=True, description="Pattern-only tier")
    ENABLE_BASIC_FALLBACK: bool = Field(default=True, description="Line-scan tier")
    PATTERN_FALLBACK_CONFIDENCE: float = Field(default=0.6, description="Pattern tier confidence ceiling")
    BASIC_FALLBACK_CONFIDENCE: float = Field(default=0.4, description="Line-scan tier confidence ceiling")


resilience_settings = ResilienceSettings()
