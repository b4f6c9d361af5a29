# reconciler/store.py

"""
Reconciliation state store.

``ReconciliationStore`` is the read/write contract the core needs.
``InMemoryStore`` keeps everything in process behind one lock; the
Supabase-backed store lives in ``reconciler.database``.
"""

import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from reconciler.core.errors import (
    StatementNotFoundError,
    TransactionNotFoundError,
)
from reconciler.models import (
    MatchCandidate,
    PurchaseOrder,
    Receipt,
    ReconciliationState,
    Statement,
    Transaction,
)

StateMutation = Callable[[ReconciliationState], ReconciliationState]

# Evidence that counts as a finished record of spend
ELIGIBLE_RECEIPT_STATUSES = {"completed"}
ELIGIBLE_PO_STATUSES = {"approved", "completed"}

TransactionStatusFilter = Optional[str]  # "matched" | "unmatched" | "no-receipt"


class ReconciliationStore(ABC):
    """Storage contract for statements, transactions and evidence."""

    # ============================================
    # Statements
    # ============================================

    @abstractmethod
    def create_statement(self, statement: Statement) -> Statement: ...

    @abstractmethod
    def update_statement(self, statement_id: str, **changes) -> Statement: ...

    @abstractmethod
    def get_statement(self, statement_id: str) -> Optional[Statement]: ...

    @abstractmethod
    def list_statements(
        self,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Statement], int]: ...

    @abstractmethod
    def delete_statement(self, statement_id: str) -> bool:
        """Delete a statement and all of its transactions."""

    # ============================================
    # Transactions
    # ============================================

    @abstractmethod
    def add_transactions(self, transactions: list[Transaction]) -> int: ...

    @abstractmethod
    def get_transaction(self, transaction_id: str) -> Optional[Transaction]: ...

    @abstractmethod
    def list_transactions(
        self,
        statement_id: str,
        status: TransactionStatusFilter = None,
        polarity: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> tuple[list[Transaction], int]:
        """Transactions of a statement, date ascending."""

    @abstractmethod
    def update_reconciliation(self, transaction_id: str, mutate: StateMutation) -> Transaction:
        """
        Atomically read a transaction's state, apply ``mutate`` and write it back.

        ``mutate`` may raise to abort without writing.
        """

    @abstractmethod
    def linked_candidate_ids(self) -> set[tuple[str, str]]:
        """(candidate_type, id) of evidence already linked to some transaction."""

    # ============================================
    # Evidence
    # ============================================

    @abstractmethod
    def save_receipt(self, receipt: Receipt) -> Receipt: ...

    @abstractmethod
    def get_receipt(self, receipt_id: str) -> Optional[Receipt]: ...

    @abstractmethod
    def list_receipts(self) -> list[Receipt]: ...

    @abstractmethod
    def save_purchase_order(self, purchase_order: PurchaseOrder) -> PurchaseOrder: ...

    @abstractmethod
    def get_purchase_order(self, purchase_order_id: str) -> Optional[PurchaseOrder]: ...

    @abstractmethod
    def list_purchase_orders(self) -> list[PurchaseOrder]: ...

    def list_candidates(self, include_linked: bool = False) -> list[MatchCandidate]:
        """
        Evidence eligible for matching: completed receipts and approved or
        completed purchase orders, minus anything already linked.
        """
        linked = set() if include_linked else self.linked_candidate_ids()

        candidates = [
            r.to_candidate()
            for r in self.list_receipts()
            if r.status in ELIGIBLE_RECEIPT_STATUSES and ("receipt", r.id) not in linked
        ]
        candidates.extend(
            po.to_candidate()
            for po in self.list_purchase_orders()
            if po.status in ELIGIBLE_PO_STATUSES and ("purchase_order", po.id) not in linked
        )
        return candidates


def filter_by_status(transaction: Transaction, status: TransactionStatusFilter) -> bool:
    state = transaction.state
    if status == "matched":
        return state.is_matched
    if status == "unmatched":
        return not state.is_resolved
    if status == "no-receipt":
        return state.no_evidence_required
    return True


class InMemoryStore(ReconciliationStore):
    """Process-local store. Every write goes through one re-entrant lock."""

    def __init__(self):
        self._lock = threading.RLock()
        self._statements: dict[str, Statement] = {}
        self._transactions: dict[str, Transaction] = {}
        self._receipts: dict[str, Receipt] = {}
        self._purchase_orders: dict[str, PurchaseOrder] = {}

    # Statements

    def create_statement(self, statement: Statement) -> Statement:
        with self._lock:
            self._statements[statement.id] = statement
            return statement

    def update_statement(self, statement_id: str, **changes) -> Statement:
        with self._lock:
            current = self._statements.get(statement_id)
            if current is None:
                raise StatementNotFoundError(f"Statement {statement_id} not found")
            updated = current.model_copy(update=changes)
            self._statements[statement_id] = updated
            return updated

    def get_statement(self, statement_id: str) -> Optional[Statement]:
        return self._statements.get(statement_id)

    def list_statements(self, status=None, limit=20, offset=0):
        with self._lock:
            statements = [s for s in self._statements.values() if status is None or s.status == status]
        statements.sort(key=lambda s: s.uploaded_at, reverse=True)
        return statements[offset:offset + limit], len(statements)

    def delete_statement(self, statement_id: str) -> bool:
        with self._lock:
            if self._statements.pop(statement_id, None) is None:
                return False
            for transaction_id in [t.id for t in self._transactions.values() if t.statement_id == statement_id]:
                del self._transactions[transaction_id]
            return True

    # Transactions

    def add_transactions(self, transactions: list[Transaction]) -> int:
        with self._lock:
            for transaction in transactions:
                self._transactions[transaction.id] = transaction
            return len(transactions)

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return self._transactions.get(transaction_id)

    def list_transactions(self, statement_id, status=None, polarity=None, search=None, limit=None, offset=0):
        with self._lock:
            transactions = [t for t in self._transactions.values() if t.statement_id == statement_id]

        transactions = [t for t in transactions if filter_by_status(t, status)]
        if polarity:
            transactions = [t for t in transactions if t.polarity == polarity]
        if search:
            needle = search.lower()
            transactions = [t for t in transactions if needle in t.description.lower()]

        transactions.sort(key=lambda t: t.transaction_date)
        total = len(transactions)
        end = None if limit is None else offset + limit
        return transactions[offset:end], total

    def update_reconciliation(self, transaction_id: str, mutate: StateMutation) -> Transaction:
        with self._lock:
            current = self._transactions.get(transaction_id)
            if current is None:
                raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
            new_state = mutate(current.state)
            updated = current.with_state(new_state)
            self._transactions[transaction_id] = updated
            return updated

    def linked_candidate_ids(self) -> set[tuple[str, str]]:
        with self._lock:
            linked = set()
            for t in self._transactions.values():
                if t.matched_receipt_id:
                    linked.add(("receipt", t.matched_receipt_id))
                if t.matched_purchase_order_id:
                    linked.add(("purchase_order", t.matched_purchase_order_id))
            return linked

    # Evidence

    def save_receipt(self, receipt: Receipt) -> Receipt:
        with self._lock:
            self._receipts[receipt.id] = receipt
            return receipt

    def get_receipt(self, receipt_id: str) -> Optional[Receipt]:
        return self._receipts.get(receipt_id)

    def list_receipts(self) -> list[Receipt]:
        with self._lock:
            return list(self._receipts.values())

    def save_purchase_order(self, purchase_order: PurchaseOrder) -> PurchaseOrder:
        with self._lock:
            self._purchase_orders[purchase_order.id] = purchase_order
            return purchase_order

    def get_purchase_order(self, purchase_order_id: str) -> Optional[PurchaseOrder]:
        return self._purchase_orders.get(purchase_order_id)

    def list_purchase_orders(self) -> list[PurchaseOrder]:
        with self._lock:
            return list(self._purchase_orders.values())
