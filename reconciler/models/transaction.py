# reconciler/models/transaction.py

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, Literal
from pydantic import BaseModel, Field, model_validator

Polarity = Literal["debit", "credit"]
StatementStatus = Literal["pending", "processing", "completed", "failed"]


# ============================================
# Column mapping
# ============================================

class ColumnMapping(BaseModel):
    """Which headers of a statement carry date, description and value."""

    date_column: str
    description_column: str
    amount_column: Optional[str] = None
    debit_column: Optional[str] = None
    credit_column: Optional[str] = None

    class Config:
        frozen = True

    @model_validator(mode="after")
    def _check_value_columns(self) -> "ColumnMapping":
        if not self.amount_column and not (self.debit_column and self.credit_column):
            raise ValueError("mapping needs an amount column or both debit and credit columns")
        return self

    @property
    def uses_split_columns(self) -> bool:
        return self.amount_column is None

    def columns(self) -> list[str]:
        return [
            c for c in (
                self.date_column,
                self.description_column,
                self.amount_column,
                self.debit_column,
                self.credit_column,
            )
            if c
        ]


# ============================================
# Reconciliation state
# ============================================

class ReconciliationState(BaseModel):
    """The evidence link of one transaction."""

    matched_receipt_id: Optional[str] = None
    matched_purchase_order_id: Optional[str] = None
    no_evidence_required: bool = False

    @model_validator(mode="after")
    def _at_most_one(self) -> "ReconciliationState":
        flags = [
            self.matched_receipt_id is not None,
            self.matched_purchase_order_id is not None,
            self.no_evidence_required,
        ]
        if sum(flags) > 1:
            raise ValueError("a transaction can carry only one evidence link or the no-evidence flag")
        return self

    @property
    def is_resolved(self) -> bool:
        return (
            self.matched_receipt_id is not None
            or self.matched_purchase_order_id is not None
            or self.no_evidence_required
        )

    @property
    def is_matched(self) -> bool:
        return self.matched_receipt_id is not None or self.matched_purchase_order_id is not None


# ============================================
# Transactions
# ============================================

class ParsedTransaction(BaseModel):
    """A statement row after normalization, before it is stored."""

    transaction_date: date
    description: str
    amount: Decimal = Field(ge=0)
    polarity: Polarity


class Transaction(ReconciliationState):
    """A stored statement transaction."""

    id: str
    statement_id: str
    transaction_date: date
    description: str
    amount: Decimal = Field(ge=0)
    polarity: Polarity

    class Config:
        from_attributes = True

    @property
    def state(self) -> ReconciliationState:
        return ReconciliationState(
            matched_receipt_id=self.matched_receipt_id,
            matched_purchase_order_id=self.matched_purchase_order_id,
            no_evidence_required=self.no_evidence_required,
        )

    def with_state(self, state: ReconciliationState) -> "Transaction":
        return self.model_copy(update=state.model_dump())


# ============================================
# Statements
# ============================================

class Statement(BaseModel):
    """One uploaded statement file."""

    id: str
    original_filename: str
    account_label: Optional[str] = None
    uploaded_at: datetime
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: StatementStatus = "pending"
    detected_format: Optional[str] = None
    column_mapping: Optional[ColumnMapping] = None
    error: Optional[str] = None
    transaction_count: int = 0

    class Config:
        from_attributes = True


class ParseResult(BaseModel):
    """Outcome of parsing one statement file."""

    success: bool
    transactions: list[ParsedTransaction] = Field(default_factory=list)
    detected_format: Optional[str] = None
    headers: Optional[list[str]] = None
    column_mapping: Optional[ColumnMapping] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    rows_read: int = 0
    rows_skipped: int = 0
    error: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Parse info without the transaction list."""
        return {
            "success": self.success,
            "transaction_count": len(self.transactions),
            "detected_format": self.detected_format,
            "headers": self.headers,
            "column_mapping": self.column_mapping.model_dump() if self.column_mapping else None,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "rows_read": self.rows_read,
            "rows_skipped": self.rows_skipped,
            "error": self.error,
            "message": self.message,
        }
