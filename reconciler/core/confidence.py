# reconciler/core/confidence.py

"""
Confidence scoring for transaction matching.

Scoring breakdown (0-100, capped), default weights:
- Amount match:    50 exact / 35 within tolerance
- Date proximity:  30 same day, up to 20 inside the grace window
- Merchant name:   up to 20, scaled by word overlap
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from reconciler.core.normalizers import MINOR_UNIT, normalize_merchant_name, normalize_string
from reconciler.models import MatchCandidate, MatchSuggestion, MatchWeights, Transaction

MAX_SCORE = 100
MIN_TOKEN_LENGTH = 3


def score_candidate(
    transaction: Transaction,
    candidate: MatchCandidate,
    weights: MatchWeights,
) -> MatchSuggestion:
    """
    Score one candidate against a transaction.

    Pure: the result depends only on the arguments.
    """
    reasons: list[str] = []

    # ============================================
    # Amount scoring
    # ============================================
    amount_score = _score_amount(transaction.amount, candidate.amount, weights, reasons)

    # ============================================
    # Date scoring
    # ============================================
    days_apart = _days_apart(transaction.transaction_date, candidate.candidate_date)
    date_score = _score_date(days_apart, weights, reasons)

    # ============================================
    # Merchant / vendor scoring
    # ============================================
    merchant_score = _score_merchant(transaction.description, candidate.merchant_name, weights, reasons)

    total = min(amount_score + date_score + merchant_score, MAX_SCORE)

    return MatchSuggestion(
        candidate_type=candidate.candidate_type,
        candidate_id=candidate.candidate_id,
        score=total,
        reasons=reasons,
        days_apart=days_apart,
    )


def amount_within_tolerance(amount: Decimal, other: Decimal, tolerance_percent: float) -> bool:
    """Inclusive relative tolerance: |diff| <= amount * tolerance%."""
    tolerance = abs(amount) * Decimal(str(tolerance_percent)) / Decimal(100)
    return abs(abs(amount) - abs(other)) <= tolerance


def _score_amount(
    amount: Decimal,
    candidate_amount: Optional[Decimal],
    weights: MatchWeights,
    reasons: list[str],
) -> int:
    if candidate_amount is None:
        return 0

    diff = abs(abs(amount) - abs(candidate_amount))

    if diff < MINOR_UNIT:
        reasons.append("amount matches exactly")
        return weights.amount_exact

    if amount_within_tolerance(amount, candidate_amount, weights.amount_tolerance_percent):
        reasons.append(f"amount within {weights.amount_tolerance_percent:g}% (${diff:,.2f} difference)")
        return weights.amount_close

    return 0


def _days_apart(transaction_date: date, candidate_date: Optional[date]) -> Optional[int]:
    if candidate_date is None:
        return None
    return abs((transaction_date - candidate_date).days)


def _score_date(days_apart: Optional[int], weights: MatchWeights, reasons: list[str]) -> int:
    if days_apart is None:
        return 0

    if days_apart == 0:
        reasons.append("same date")
        return weights.date_same_day

    window = weights.date_window_days
    if window > 0 and days_apart <= window:
        # Linear decay: full near-weight at 1 day, smallest share at the window edge
        reasons.append(f"date within {days_apart} day{'s' if days_apart != 1 else ''}")
        return weights.date_near * (window - days_apart + 1) // window

    return 0


def _score_merchant(
    description: str,
    merchant_name: Optional[str],
    weights: MatchWeights,
    reasons: list[str],
) -> int:
    name = normalize_merchant_name(merchant_name)
    desc = normalize_string(description)
    if not name or not desc:
        return 0

    if name in desc or desc in name:
        reasons.append("merchant name match")
        return weights.merchant

    name_tokens = {t for t in name.split() if len(t) >= MIN_TOKEN_LENGTH}
    desc_tokens = {t for t in desc.split() if len(t) >= MIN_TOKEN_LENGTH}
    if not name_tokens:
        return 0

    common = name_tokens & desc_tokens
    if not common:
        return 0

    reasons.append(f"merchant name overlap ({len(common)}/{len(name_tokens)} words)")
    return weights.merchant * len(common) // len(name_tokens)
