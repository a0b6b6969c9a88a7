# ============================================================================
# src/nanopore_intake/extractors/__init__.py
# ============================================================================
"""
Extraction strategies and the document-to-text collaborator.
"""

from .pattern_extractor import PatternExtractor
from .alias_mapper import (
    AliasMapper,
    AliasMappingResult,
    AliasEnhancement,
    FieldMapping,
    KeyValuePair,
)
from .line_scan_extractor import LineScanExtractor, BASIC_FALLBACK_ISSUE
from .text_extractor import DocumentInput, RawText, as_document, extract_raw_text

__all__ = [
    'PatternExtractor',
    'AliasMapper',
    'AliasMappingResult',
    'AliasEnhancement',
    'FieldMapping',
    'KeyValuePair',
    'LineScanExtractor',
    'BASIC_FALLBACK_ISSUE',
    'DocumentInput',
    'RawText',
    'as_document',
    'extract_raw_text',
]
