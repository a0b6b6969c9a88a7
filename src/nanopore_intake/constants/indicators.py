# ============================================================================
# src/nanopore_intake/constants/indicators.py
# ============================================================================
"""
Confidence Adjustment Tables
- Positive context keywords (near a match)
- Placeholder tokens (inside a matched value)
- Well-formed value shapes
"""

import re

# Substring-tested against the lowercased context window
POSITIVE_INDICATORS = (
    "sample", "name", "id", "code", "submitter", "contact", "email",
    "lab", "laboratory", "project", "study", "sequencing", "library",
    "flow", "cell", "priority", "concentration", "volume", "purity",
)

# Substring-tested against the lowercased matched value
NEGATIVE_INDICATORS = (
    "example", "placeholder", "template", "default", "test", "demo",
    "xxx", "yyy", "zzz", "abc", "123", "sample123", "test123",
)

WELL_FORMED_SHAPES = (
    re.compile(r"^[A-Za-z0-9_.\-#]+$"),                              # identifiers
    re.compile(r"^[A-Za-z\s,.\-']+$"),                               # person / lab names
    re.compile(r"^[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}$"),  # email
    re.compile(r"^[0-9.,]+\s*[A-Za-z/µμ]+$"),                        # measurements
)

CONTEXT_WINDOW = 50

POSITIVE_BONUS = 0.05
NEGATIVE_PENALTY = 0.2
TOO_SHORT_PENALTY = 0.3
TOO_LONG_PENALTY = 0.1
WELL_FORMED_BONUS = 0.1

MIN_VALUE_LENGTH = 2
MAX_VALUE_LENGTH = 100

MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 1.0
SURVIVAL_THRESHOLD = 0.5
MAX_MATCHES_PER_FIELD = 5
