# reconciler/core/reconciliation.py

"""
Match orchestration.

Every change to a transaction's evidence link, whether from auto-match or
a manual override, goes through ``apply_action`` / ``commit_suggestion``
inside the store's atomic update, so the one-link invariant holds on
every path.
"""

import logging
from decimal import Decimal
from typing import Callable, Optional

from reconciler.config import get_settings
from reconciler.core.errors import (
    MatchConflictError,
    MatchTargetNotFoundError,
    MissingTargetError,
    StatementNotFoundError,
    TransactionNotFoundError,
)
from reconciler.core.matching import suggest_matches
from reconciler.models import (
    AutoMatchDetail,
    AutoMatchResult,
    MatchSuggestion,
    MatchWeights,
    OverrideAction,
    ReconciliationState,
    ReconciliationSummary,
    Transaction,
)
from reconciler.store import ReconciliationStore

logger = logging.getLogger(__name__)

OVERRIDE_ACTIONS = ("match-receipt", "match-po", "unmatch", "no-receipt")


# ============================================
# State transitions
# ============================================

def apply_action(
    state: ReconciliationState,
    action: OverrideAction,
    target_id: Optional[str] = None,
) -> ReconciliationState:
    """
    Compute the state after a manual override.

    Manual overrides always win: whatever link was there is replaced.
    """
    if action == "match-receipt":
        if not target_id:
            raise MissingTargetError("Receipt ID required")
        return ReconciliationState(matched_receipt_id=target_id)

    if action == "match-po":
        if not target_id:
            raise MissingTargetError("Purchase Order ID required")
        return ReconciliationState(matched_purchase_order_id=target_id)

    if action == "unmatch":
        return ReconciliationState()

    if action == "no-receipt":
        return ReconciliationState(no_evidence_required=True)

    raise ValueError(f"Invalid action. Use: {', '.join(OVERRIDE_ACTIONS)}")


def suggestion_action(suggestion: MatchSuggestion) -> OverrideAction:
    return "match-receipt" if suggestion.candidate_type == "receipt" else "match-po"


def commit_suggestion(
    state: ReconciliationState,
    suggestion: MatchSuggestion,
    transaction_id: str = "",
) -> ReconciliationState:
    """
    Compute the state after auto-committing a suggestion.

    Re-asserting the same link is a no-op; any other existing resolution is
    a conflict.
    """
    target = apply_action(ReconciliationState(), suggestion_action(suggestion), suggestion.candidate_id)

    if state.is_resolved:
        if state == target:
            return state
        raise MatchConflictError(transaction_id)

    return target


# ============================================
# Interactive
# ============================================

def get_suggestions(
    store: ReconciliationStore,
    transaction_id: str,
    weights: Optional[MatchWeights] = None,
    limit: Optional[int] = None,
) -> list[MatchSuggestion]:
    """Ranked suggestions for one transaction. Commits nothing."""
    transaction = store.get_transaction(transaction_id)
    if transaction is None:
        raise TransactionNotFoundError(f"Transaction {transaction_id} not found")

    return suggest_matches(transaction, store.list_candidates(), weights, limit)


# ============================================
# Batch auto-match
# ============================================

def auto_match_statement(
    store: ReconciliationStore,
    statement_id: str,
    min_confidence: Optional[int] = None,
    weights: Optional[MatchWeights] = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> AutoMatchResult:
    """
    Commit the best suggestion of every unresolved transaction that clears
    ``min_confidence``.

    Transactions are processed in date order. ``should_stop`` is checked
    between transactions; stopping leaves every commit so far intact and
    counts the transactions not yet visited as unmatched.
    """
    if store.get_statement(statement_id) is None:
        raise StatementNotFoundError(f"Statement {statement_id} not found")

    if min_confidence is None:
        min_confidence = get_settings().auto_match_threshold
    if weights is None:
        weights = MatchWeights.from_settings()

    result = AutoMatchResult(min_confidence=min_confidence)

    transactions, _ = store.list_transactions(statement_id, status="unmatched")
    candidates = store.list_candidates()

    for index, transaction in enumerate(transactions):
        if should_stop is not None and should_stop():
            result.interrupted = True
            # Transactions never reached are still unmatched
            result.unmatched += len(transactions) - index
            logger.info(f"Auto-match of statement {statement_id} interrupted")
            break

        suggestions = suggest_matches(transaction, candidates, weights)
        best = suggestions[0] if suggestions else None

        if best is None or best.score < min_confidence:
            result.unmatched += 1
            result.details.append(AutoMatchDetail(
                transaction_id=transaction.id,
                outcome="unmatched",
                best_match=best,
                alternative_count=max(len(suggestions) - 1, 0),
            ))
            continue

        try:
            store.update_reconciliation(
                transaction.id,
                lambda state, t=transaction, s=best: commit_suggestion(state, s, t.id),
            )
        except MatchConflictError:
            # Someone else resolved it first
            logger.warning(f"Transaction {transaction.id} was resolved concurrently, skipping")
            result.skipped_conflicts += 1
            result.details.append(AutoMatchDetail(
                transaction_id=transaction.id,
                outcome="conflict",
                best_match=best,
            ))
            continue

        # Evidence is linked to one transaction at most
        candidates = [
            c for c in candidates
            if not (c.candidate_type == best.candidate_type and c.candidate_id == best.candidate_id)
        ]

        result.matched += 1
        result.details.append(AutoMatchDetail(
            transaction_id=transaction.id,
            outcome="matched",
            best_match=best,
            alternative_count=len(suggestions) - 1,
        ))

    logger.info(
        f"Auto-matched statement {statement_id}: {result.matched} matched, "
        f"{result.unmatched} unmatched, {result.skipped_conflicts} conflicts "
        f"(threshold {min_confidence})"
    )
    return result


# ============================================
# Manual overrides
# ============================================

def override_transaction(
    store: ReconciliationStore,
    transaction_id: str,
    action: OverrideAction,
    target_id: Optional[str] = None,
) -> Transaction:
    """
    Apply a manual override. The target must exist.
    """
    if store.get_transaction(transaction_id) is None:
        raise TransactionNotFoundError(f"Transaction {transaction_id} not found")

    if action == "match-receipt":
        if not target_id:
            raise MissingTargetError("Receipt ID required")
        if store.get_receipt(target_id) is None:
            raise MatchTargetNotFoundError(f"Receipt {target_id} not found")
    elif action == "match-po":
        if not target_id:
            raise MissingTargetError("Purchase Order ID required")
        if store.get_purchase_order(target_id) is None:
            raise MatchTargetNotFoundError(f"Purchase Order {target_id} not found")

    updated = store.update_reconciliation(
        transaction_id,
        lambda state: apply_action(state, action, target_id),
    )
    logger.info(f"Transaction {transaction_id}: {action}{f' -> {target_id}' if target_id else ''}")
    return updated


# ============================================
# Summary
# ============================================

def summarize_statement(transactions: list[Transaction]) -> ReconciliationSummary:
    """Counts and totals of a statement's reconciliation progress."""
    summary = ReconciliationSummary()
    zero = Decimal("0.00")
    totals = {"debits": zero, "credits": zero, "matched": zero, "unmatched": zero}

    for t in transactions:
        summary.total_transactions += 1

        if t.polarity == "debit":
            totals["debits"] += t.amount
        else:
            totals["credits"] += t.amount

        if t.matched_receipt_id:
            summary.matched_to_receipt += 1
            totals["matched"] += t.amount
        elif t.matched_purchase_order_id:
            summary.matched_to_purchase_order += 1
            totals["matched"] += t.amount
        elif t.no_evidence_required:
            summary.no_evidence_required += 1
            totals["matched"] += t.amount
        else:
            summary.unmatched += 1
            totals["unmatched"] += t.amount

    summary.total_debits = totals["debits"]
    summary.total_credits = totals["credits"]
    summary.matched_amount = totals["matched"]
    summary.unmatched_amount = totals["unmatched"]
    return summary
