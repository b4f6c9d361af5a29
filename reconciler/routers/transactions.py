# reconciler/routers/transactions.py

"""
Transaction routes.

Listing, match suggestions and manual overrides for statement transactions.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from reconciler.core.errors import (
    MatchConflictError,
    MatchTargetNotFoundError,
    MissingTargetError,
    TransactionNotFoundError,
)
from reconciler.core.reconciliation import get_suggestions, override_transaction
from reconciler.dependencies import get_store
from reconciler.models import OverrideRequest, Transaction
from reconciler.store import ReconciliationStore

router = APIRouter()


def _get_statement_transaction(store: ReconciliationStore, statement_id: str, transaction_id: str) -> Transaction:
    transaction = store.get_transaction(transaction_id)
    if not transaction or transaction.statement_id != statement_id:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction


# ============================================
# List
# ============================================

@router.get("/{statement_id}/transactions")
async def list_transactions(
    statement_id: str,
    status: Optional[Literal["matched", "unmatched", "no-receipt"]] = Query(None, description="Filter by status"),
    polarity: Optional[Literal["debit", "credit"]] = Query(None, description="Filter by polarity"),
    search: Optional[str] = Query(None, description="Search descriptions"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    store: ReconciliationStore = Depends(get_store),
):
    """
    List transactions of a statement with optional filters.
    """
    if not store.get_statement(statement_id):
        raise HTTPException(status_code=404, detail="Statement not found")

    transactions, total = store.list_transactions(
        statement_id,
        status=status,
        polarity=polarity,
        search=search,
        limit=limit,
        offset=offset,
    )

    return {
        "success": True,
        "transactions": [t.model_dump(mode="json") for t in transactions],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total,
        },
    }


# ============================================
# Single transaction + suggestions
# ============================================

@router.get("/{statement_id}/transactions/{transaction_id}")
async def get_transaction(
    statement_id: str,
    transaction_id: str,
    limit: Optional[int] = Query(None, ge=1, le=50, description="Maximum suggestions"),
    store: ReconciliationStore = Depends(get_store),
):
    """
    Get a transaction with ranked match suggestions.

    Suggestions are only computed for unresolved transactions.
    """
    transaction = _get_statement_transaction(store, statement_id, transaction_id)

    suggestions = None
    if not transaction.state.is_resolved:
        suggestions = [s.model_dump() for s in get_suggestions(store, transaction_id, limit=limit)]

    return {
        "success": True,
        "transaction": transaction.model_dump(mode="json"),
        "suggestions": suggestions,
    }


# ============================================
# Manual override
# ============================================

@router.patch("/{statement_id}/transactions/{transaction_id}")
async def update_transaction(
    statement_id: str,
    transaction_id: str,
    request: OverrideRequest,
    store: ReconciliationStore = Depends(get_store),
):
    """
    Match, unmatch, or mark a transaction as needing no evidence.
    """
    _get_statement_transaction(store, statement_id, transaction_id)

    try:
        updated = override_transaction(store, transaction_id, request.action, request.target_id)
    except MissingTargetError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (MatchTargetNotFoundError, TransactionNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MatchConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return {
        "success": True,
        "transaction": updated.model_dump(mode="json"),
    }
