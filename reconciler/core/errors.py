# reconciler/core/errors.py

"""
Domain exceptions.

Parse errors carry a machine-stable ``code`` that ends up in
``ParseResult.error``; routers translate the rest into HTTP status codes.
"""


class ReconcilerError(Exception):
    """Base class for all domain errors."""


# ============================================
# Statement parsing
# ============================================

class StatementParseError(ReconcilerError):
    """A failure that is fatal to the whole statement."""

    code = "parse_failed"

    def __init__(self, message: str, headers: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.headers = headers


class UnsupportedFormatError(StatementParseError):
    code = "unsupported_format"


class EmptyFileError(StatementParseError):
    code = "empty_file"


class UnreadableFileError(StatementParseError):
    code = "unreadable_file"


class UnrecognizedLayoutError(StatementParseError):
    code = "unrecognized_layout"


class InvalidColumnMappingError(StatementParseError):
    code = "invalid_column_mapping"


class NoTransactionsError(StatementParseError):
    code = "no_transactions"


# ============================================
# Lookups
# ============================================

class NotFoundError(ReconcilerError):
    """Referenced record does not exist."""


class StatementNotFoundError(NotFoundError):
    pass


class TransactionNotFoundError(NotFoundError):
    pass


class MatchTargetNotFoundError(NotFoundError):
    """A manual override pointed at a receipt or purchase order that doesn't exist."""


# ============================================
# Reconciliation state
# ============================================

class MissingTargetError(ReconcilerError):
    """A match action was requested without a target id."""


class MatchConflictError(ReconcilerError):
    """The transaction was resolved differently by a concurrent writer."""

    def __init__(self, transaction_id: str, message: str | None = None):
        super().__init__(message or f"Transaction {transaction_id} is already resolved")
        self.transaction_id = transaction_id
