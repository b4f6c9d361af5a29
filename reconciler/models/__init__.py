# reconciler/models/__init__.py

from reconciler.models.transaction import (
    ColumnMapping,
    ParsedTransaction,
    ParseResult,
    Polarity,
    ReconciliationState,
    Statement,
    StatementStatus,
    Transaction,
)
from reconciler.models.match import (
    CandidateType,
    MatchCandidate,
    MatchSuggestion,
    MatchWeights,
    PurchaseOrder,
    Receipt,
)
from reconciler.models.resolution import (
    AutoMatchDetail,
    AutoMatchRequest,
    AutoMatchResult,
    OverrideAction,
    OverrideRequest,
    ReconciliationSummary,
)

__all__ = [
    # Transaction
    "ColumnMapping",
    "ParsedTransaction",
    "ParseResult",
    "Polarity",
    "ReconciliationState",
    "Statement",
    "StatementStatus",
    "Transaction",
    # Match
    "CandidateType",
    "MatchCandidate",
    "MatchSuggestion",
    "MatchWeights",
    "PurchaseOrder",
    "Receipt",
    # Resolution
    "AutoMatchDetail",
    "AutoMatchRequest",
    "AutoMatchResult",
    "OverrideAction",
    "OverrideRequest",
    "ReconciliationSummary",
]
