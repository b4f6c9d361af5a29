# reconciler/models/resolution.py

from decimal import Decimal
from typing import Optional, Literal
from pydantic import BaseModel, Field

from reconciler.models.match import MatchSuggestion


# ============================================
# Manual overrides
# ============================================

OverrideAction = Literal[
    "match-receipt",
    "match-po",
    "unmatch",
    "no-receipt",
]


class OverrideRequest(BaseModel):
    """Request to change the evidence link of a transaction."""

    action: OverrideAction
    target_id: Optional[str] = None


# ============================================
# Auto-match
# ============================================

class AutoMatchRequest(BaseModel):
    """Batch auto-match request. Threshold falls back to settings."""

    min_confidence: Optional[int] = Field(default=None, ge=0, le=100)


class AutoMatchDetail(BaseModel):
    """Outcome for one transaction in an auto-match pass."""

    transaction_id: str
    outcome: Literal["matched", "unmatched", "conflict"]
    best_match: Optional[MatchSuggestion] = None
    alternative_count: int = 0


class AutoMatchResult(BaseModel):
    """Aggregate result of an auto-match pass."""

    matched: int = 0
    unmatched: int = 0
    skipped_conflicts: int = 0
    interrupted: bool = False
    min_confidence: int
    details: list[AutoMatchDetail] = Field(default_factory=list)


# ============================================
# Summary
# ============================================

class ReconciliationSummary(BaseModel):
    """Reconciliation progress of one statement."""

    total_transactions: int = 0
    matched_to_receipt: int = 0
    matched_to_purchase_order: int = 0
    no_evidence_required: int = 0
    unmatched: int = 0
    total_debits: Decimal = Decimal("0.00")
    total_credits: Decimal = Decimal("0.00")
    matched_amount: Decimal = Decimal("0.00")
    unmatched_amount: Decimal = Decimal("0.00")
