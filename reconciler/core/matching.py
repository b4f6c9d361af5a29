# reconciler/core/matching.py

"""
Core transaction matching engine.

Ranks receipts and purchase orders as evidence for one bank transaction.
The candidate pool is supplied by the caller; nothing here touches storage
or mutates state.
"""

from typing import Iterable, Optional

from reconciler.config import get_settings
from reconciler.core.confidence import score_candidate
from reconciler.models import MatchCandidate, MatchSuggestion, MatchWeights, Transaction


def suggest_matches(
    transaction: Transaction,
    candidates: Iterable[MatchCandidate],
    weights: Optional[MatchWeights] = None,
    limit: Optional[int] = None,
) -> list[MatchSuggestion]:
    """
    Score every candidate and return the best ones.

    Ordering: score descending, then closer date, then candidate id.
    Candidates that score nothing are dropped.
    """
    if weights is None:
        weights = MatchWeights.from_settings()
    if limit is None:
        limit = weights.max_suggestions

    if not is_matchable(transaction):
        return []

    suggestions = []
    for candidate in candidates:
        suggestion = score_candidate(transaction, candidate, weights)
        if suggestion.score > 0:
            suggestions.append(suggestion)

    suggestions.sort(key=_rank_key)
    return suggestions[:limit]


def best_match(
    transaction: Transaction,
    candidates: Iterable[MatchCandidate],
    weights: Optional[MatchWeights] = None,
) -> Optional[MatchSuggestion]:
    """Top suggestion, or None."""
    suggestions = suggest_matches(transaction, candidates, weights, limit=1)
    return suggestions[0] if suggestions else None


def is_matchable(transaction: Transaction) -> bool:
    """
    Whether a transaction should get suggestions at all.

    Resolved transactions never do. Credits (money in) only do when
    match_credits is enabled, since receipts and POs evidence spend.
    """
    if transaction.state.is_resolved:
        return False
    if transaction.polarity == "credit" and not get_settings().match_credits:
        return False
    return True


def _rank_key(suggestion: MatchSuggestion) -> tuple:
    days = suggestion.days_apart
    return (
        -suggestion.score,
        days is None,
        days if days is not None else 0,
        suggestion.candidate_id,
        suggestion.candidate_type,
    )
