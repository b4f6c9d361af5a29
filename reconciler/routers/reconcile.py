# reconciler/routers/reconcile.py

"""
Reconciliation routes.

Batch auto-match and per-statement summaries.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException

from reconciler.core.errors import StatementNotFoundError
from reconciler.core.reconciliation import auto_match_statement, summarize_statement
from reconciler.dependencies import get_store
from reconciler.models import AutoMatchRequest
from reconciler.store import ReconciliationStore

router = APIRouter()


# ============================================
# Auto-match
# ============================================

@router.post("/{statement_id}/auto-match")
async def run_auto_match(
    statement_id: str,
    request: Optional[AutoMatchRequest] = Body(None),
    store: ReconciliationStore = Depends(get_store),
):
    """
    Auto-match every unresolved transaction of a statement.

    Commits the top suggestion when its score reaches min_confidence
    (settings default when omitted).
    """
    min_confidence = request.min_confidence if request else None

    try:
        result = auto_match_statement(store, statement_id, min_confidence=min_confidence)
    except StatementNotFoundError:
        raise HTTPException(status_code=404, detail="Statement not found")

    return {
        "success": True,
        "matched": result.matched,
        "unmatched": result.unmatched,
        "skipped_conflicts": result.skipped_conflicts,
        "min_confidence": result.min_confidence,
        "details": [d.model_dump() for d in result.details],
    }


# ============================================
# Summary
# ============================================

@router.get("/{statement_id}/summary")
async def get_reconciliation_summary(
    statement_id: str,
    store: ReconciliationStore = Depends(get_store),
):
    """
    Reconciliation progress of a statement.
    """
    if not store.get_statement(statement_id):
        raise HTTPException(status_code=404, detail="Statement not found")

    transactions, _ = store.list_transactions(statement_id)

    return {
        "success": True,
        "statement_id": statement_id,
        "summary": summarize_statement(transactions).model_dump(mode="json"),
    }
