# ============================================================================
# src/nanopore_intake/llm/external_extractor.py
# ============================================================================
"""
External Extractor Client

The only component that performs network I/O. Sends the form text to a
language model, parses the JSON reply and returns an ExtractedRecord tagged
"llm" with a fixed base confidence. Downstream validation still applies its
penalties.

A reply without a recoverable JSON object, or whose object has none of the
known field keys, is a failure (MalformedResponseError), never a degraded
success.
"""

import logging
import time
from typing import Any, Dict, Optional

from .base import BaseLLMClient
from .prompts import create_form_extraction_prompt
from ..constants.field_definitions import FIELD_DEFINITIONS_BY_NAME, coerce_boolean
from ..core.context.enums import DataType, ExtractionMethod, ExtractionSource
from ..core.context.extracted_record import ExtractedRecord
from ..utils.exceptions import MalformedResponseError

logger = logging.getLogger(__name__)

NULL_TOKENS = {"", "null", "none", "n/a", "na", "unknown", "not specified", "not provided"}


class ExternalExtractorClient:
    """
    Usage:
        extractor = ExternalExtractorClient(create_client())
        record = await extractor.extract(text)   # raises on failure
    """

    def __init__(
        self,
        llm_client: BaseLLMClient,
        base_confidence: float = 0.9,
        max_prompt_chars: int = 12000,
    ):
        self.llm_client = llm_client
        self.base_confidence = base_confidence
        self.max_prompt_chars = max_prompt_chars

    async def extract(self, text: str) -> ExtractedRecord:
        start = time.perf_counter()

        prompt = create_form_extraction_prompt(text, max_chars=self.max_prompt_chars)
        response = await self.llm_client.generate(prompt, json_mode=True)
        raw = response.get("text", "") if isinstance(response, dict) else str(response)

        payload = self.llm_client.extract_json(raw)
        if not isinstance(payload, dict):
            raise MalformedResponseError("No JSON object found in model reply", raw_response=raw)

        known = [key for key in payload if key in FIELD_DEFINITIONS_BY_NAME]
        if not known:
            raise MalformedResponseError("Model reply contains no known form field", raw_response=raw)

        fields = self.normalize_fields(payload)
        logger.info(f"External extractor returned {len(fields)} fields")

        return ExtractedRecord(
            fields=fields,
            confidence=self.base_confidence,
            extraction_method=ExtractionMethod.LLM,
            processing_time_ms=(time.perf_counter() - start) * 1000,
            field_sources={name: ExtractionSource.LLM for name in fields},
        )

    async def is_available(self) -> bool:
        health = await self.llm_client.health_check()
        return bool(health.get("healthy"))

    @staticmethod
    def normalize_fields(payload: Dict[str, Any]) -> Dict[str, Any]:
        """Keep known keys, trim strings, drop null-ish values."""
        fields: Dict[str, Any] = {}
        for name, value in payload.items():
            definition = FIELD_DEFINITIONS_BY_NAME.get(name)
            if definition is None:
                continue

            normalized = _normalize_value(value, definition.data_type)
            if normalized is not None:
                fields[name] = normalized
        return fields


def _normalize_value(value: Any, data_type: DataType) -> Optional[Any]:
    if value is None:
        return None

    if data_type == DataType.BOOLEAN:
        return coerce_boolean(value)

    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v).strip() for v in value if v is not None and str(v).strip())
    elif isinstance(value, dict):
        return None

    text = str(value).strip()
    if text.lower() in NULL_TOKENS:
        return None
    return text
