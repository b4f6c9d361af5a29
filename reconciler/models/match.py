# reconciler/models/match.py

from datetime import date
from decimal import Decimal
from typing import Optional, Literal
from pydantic import BaseModel, Field

from reconciler.config import get_settings

CandidateType = Literal["receipt", "purchase_order"]
ReceiptStatus = Literal["pending", "completed", "failed"]
PurchaseOrderStatus = Literal["draft", "pending", "approved", "completed", "cancelled"]


# ============================================
# Spend evidence
# ============================================

class Receipt(BaseModel):
    """A receipt recorded elsewhere (upload + OCR happen outside this service)."""

    id: str
    merchant_name: Optional[str] = None
    receipt_date: Optional[date] = None
    total_amount: Optional[Decimal] = None
    status: ReceiptStatus = "completed"

    def to_candidate(self) -> "MatchCandidate":
        return MatchCandidate(
            candidate_type="receipt",
            candidate_id=self.id,
            amount=self.total_amount,
            candidate_date=self.receipt_date,
            merchant_name=self.merchant_name,
        )


class PurchaseOrder(BaseModel):
    """A purchase order recorded elsewhere."""

    id: str
    po_number: str
    vendor_name: Optional[str] = None
    po_date: date
    total_amount: Decimal
    status: PurchaseOrderStatus = "approved"

    def to_candidate(self) -> "MatchCandidate":
        return MatchCandidate(
            candidate_type="purchase_order",
            candidate_id=self.id,
            amount=self.total_amount,
            candidate_date=self.po_date,
            merchant_name=self.vendor_name,
            reference=self.po_number,
        )


# ============================================
# Matching
# ============================================

class MatchCandidate(BaseModel):
    """Comparable attributes of a receipt or purchase order."""

    candidate_type: CandidateType
    candidate_id: str
    amount: Optional[Decimal] = None
    candidate_date: Optional[date] = None
    merchant_name: Optional[str] = None
    reference: Optional[str] = None


class MatchSuggestion(BaseModel):
    """A scored candidate with the reasons behind its score."""

    candidate_type: CandidateType
    candidate_id: str
    score: int = Field(ge=0, le=100)
    reasons: list[str] = Field(default_factory=list)
    days_apart: Optional[int] = None


class MatchWeights(BaseModel):
    """Tunable weights for the confidence heuristic."""

    amount_exact: int = 50
    amount_close: int = 35
    amount_tolerance_percent: float = 1.0
    date_same_day: int = 30
    date_near: int = 20
    date_window_days: int = 3
    merchant: int = 20
    max_suggestions: int = 5

    @classmethod
    def from_settings(cls) -> "MatchWeights":
        settings = get_settings()
        return cls(
            amount_tolerance_percent=settings.amount_tolerance_percent,
            date_window_days=settings.date_tolerance_days,
            max_suggestions=settings.max_suggestions,
        )
