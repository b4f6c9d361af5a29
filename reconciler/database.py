# reconciler/database.py

"""
Supabase-backed reconciliation store.

Tables: statements, bank_transactions, receipts, purchase_orders.
Evidence links are written with compare-and-set filters so two writers
can't both claim an unmatched transaction.
"""

import logging
from functools import lru_cache
from typing import Optional

from supabase import create_client, Client

from reconciler.config import get_settings
from reconciler.core.errors import MatchConflictError, StatementNotFoundError, TransactionNotFoundError
from reconciler.models import PurchaseOrder, Receipt, Statement, Transaction
from reconciler.store import ReconciliationStore, StateMutation

logger = logging.getLogger(__name__)

LINK_FIELDS = ("matched_receipt_id", "matched_purchase_order_id", "no_evidence_required")


@lru_cache()
def get_supabase_admin() -> Client:
    """Admin client (bypasses RLS - use carefully)."""
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_service_role_key)


class SupabaseStore(ReconciliationStore):
    """Store backed by Supabase tables."""

    def __init__(self, client: Optional[Client] = None):
        self.client = client or get_supabase_admin()

    # ============================================
    # Statements
    # ============================================

    def create_statement(self, statement: Statement) -> Statement:
        response = self.client.table("statements").insert(_statement_row(statement)).execute()
        return Statement(**response.data[0]) if response.data else statement

    def update_statement(self, statement_id: str, **changes) -> Statement:
        current = self.get_statement(statement_id)
        if current is None:
            raise StatementNotFoundError(f"Statement {statement_id} not found")
        updated = current.model_copy(update=changes)
        self.client.table("statements").update(_statement_row(updated)).eq("id", statement_id).execute()
        return updated

    def get_statement(self, statement_id: str) -> Optional[Statement]:
        response = self.client.table("statements").select("*").eq("id", statement_id).execute()
        return Statement(**response.data[0]) if response.data else None

    def list_statements(self, status=None, limit=20, offset=0):
        query = self.client.table("statements").select("*", count="exact")
        if status:
            query = query.eq("status", status)
        response = query.order("uploaded_at", desc=True).range(offset, offset + limit - 1).execute()
        return [Statement(**row) for row in response.data], response.count or 0

    def delete_statement(self, statement_id: str) -> bool:
        self.client.table("bank_transactions").delete().eq("statement_id", statement_id).execute()
        response = self.client.table("statements").delete().eq("id", statement_id).execute()
        return bool(response.data)

    # ============================================
    # Transactions
    # ============================================

    def add_transactions(self, transactions: list[Transaction]) -> int:
        if not transactions:
            return 0
        rows = [t.model_dump(mode="json") for t in transactions]
        response = self.client.table("bank_transactions").insert(rows).execute()
        return len(response.data) if response.data else 0

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        response = self.client.table("bank_transactions").select("*").eq("id", transaction_id).execute()
        return Transaction(**response.data[0]) if response.data else None

    def list_transactions(self, statement_id, status=None, polarity=None, search=None, limit=None, offset=0):
        query = self.client.table("bank_transactions").select("*", count="exact").eq("statement_id", statement_id)

        if status == "matched":
            query = query.or_("matched_receipt_id.not.is.null,matched_purchase_order_id.not.is.null")
        elif status == "unmatched":
            query = (
                query.is_("matched_receipt_id", "null")
                .is_("matched_purchase_order_id", "null")
                .eq("no_evidence_required", False)
            )
        elif status == "no-receipt":
            query = query.eq("no_evidence_required", True)

        if polarity:
            query = query.eq("polarity", polarity)
        if search:
            query = query.ilike("description", f"%{search}%")

        query = query.order("transaction_date")
        if limit is not None:
            query = query.range(offset, offset + limit - 1)

        response = query.execute()
        return [Transaction(**row) for row in response.data], response.count or 0

    def update_reconciliation(self, transaction_id: str, mutate: StateMutation) -> Transaction:
        current = self.get_transaction(transaction_id)
        if current is None:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")

        new_state = mutate(current.state)

        # Only write if the row still holds the state we read
        query = self.client.table("bank_transactions").update(new_state.model_dump()).eq("id", transaction_id)
        for field_name in LINK_FIELDS:
            value = getattr(current, field_name)
            query = query.is_(field_name, "null") if value is None else query.eq(field_name, value)
        response = query.execute()

        if not response.data:
            logger.warning(f"Compare-and-set on transaction {transaction_id} lost a race")
            raise MatchConflictError(transaction_id, f"Transaction {transaction_id} changed while updating")

        return Transaction(**response.data[0])

    def linked_candidate_ids(self) -> set[tuple[str, str]]:
        response = (
            self.client.table("bank_transactions")
            .select("matched_receipt_id,matched_purchase_order_id")
            .or_("matched_receipt_id.not.is.null,matched_purchase_order_id.not.is.null")
            .execute()
        )
        linked = set()
        for row in response.data:
            if row.get("matched_receipt_id"):
                linked.add(("receipt", row["matched_receipt_id"]))
            if row.get("matched_purchase_order_id"):
                linked.add(("purchase_order", row["matched_purchase_order_id"]))
        return linked

    # ============================================
    # Evidence
    # ============================================

    def save_receipt(self, receipt: Receipt) -> Receipt:
        response = self.client.table("receipts").upsert(receipt.model_dump(mode="json")).execute()
        return Receipt(**response.data[0]) if response.data else receipt

    def get_receipt(self, receipt_id: str) -> Optional[Receipt]:
        response = self.client.table("receipts").select("*").eq("id", receipt_id).execute()
        return Receipt(**response.data[0]) if response.data else None

    def list_receipts(self) -> list[Receipt]:
        response = self.client.table("receipts").select("*").execute()
        return [Receipt(**row) for row in response.data]

    def save_purchase_order(self, purchase_order: PurchaseOrder) -> PurchaseOrder:
        response = self.client.table("purchase_orders").upsert(purchase_order.model_dump(mode="json")).execute()
        return PurchaseOrder(**response.data[0]) if response.data else purchase_order

    def get_purchase_order(self, purchase_order_id: str) -> Optional[PurchaseOrder]:
        response = self.client.table("purchase_orders").select("*").eq("id", purchase_order_id).execute()
        return PurchaseOrder(**response.data[0]) if response.data else None

    def list_purchase_orders(self) -> list[PurchaseOrder]:
        response = self.client.table("purchase_orders").select("*").execute()
        return [PurchaseOrder(**row) for row in response.data]


def _statement_row(statement: Statement) -> dict:
    return statement.model_dump(mode="json")
