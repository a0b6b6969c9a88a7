# ============================================================================
# src/nanopore_intake/config/__init__.py
# ============================================================================
"""
Convenient imports for all settings
"""

from .base_config import base_settings
from .llm_config import llm_settings
from .resilience_config import resilience_settings
from .logging_config import logging_settings
