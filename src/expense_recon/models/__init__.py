"""Data models for reconciliation."""

from .records import (
    ApprovalState,
    Transaction,
    Expense,
    MatchCandidate,
    ReconciliationRecord,
    CommitFailure,
    CommitReport,
    SkippedRecord,
    ReconciliationSummary,
)

__all__ = [
    "ApprovalState",
    "Transaction",
    "Expense",
    "MatchCandidate",
    "ReconciliationRecord",
    "CommitFailure",
    "CommitReport",
    "SkippedRecord",
    "ReconciliationSummary",
]
