# reconciler/core/__init__.py

from reconciler.core.parser import parse_statement_file, build_transactions
from reconciler.core.formats import detect_layout, KNOWN_LAYOUTS
from reconciler.core.confidence import score_candidate
from reconciler.core.matching import suggest_matches
from reconciler.core.normalizers import (
    normalize_amount,
    normalize_date,
    normalize_string,
    normalize_merchant_name,
)

__all__ = [
    "parse_statement_file",
    "build_transactions",
    "detect_layout",
    "KNOWN_LAYOUTS",
    "score_candidate",
    "suggest_matches",
    "normalize_amount",
    "normalize_date",
    "normalize_string",
    "normalize_merchant_name",
]
