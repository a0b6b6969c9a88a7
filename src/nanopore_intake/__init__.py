# ============================================================================
# src/nanopore_intake/__init__.py
# ============================================================================
"""
Nanopore sample-intake form extraction.
"""

__version__ = "1.0.0"
