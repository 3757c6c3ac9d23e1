"""Reconciliation state storage and commits."""

from .store import ReconciliationStore, InMemoryReconciliationStore
from .committer import ReconciliationCommitter, auto_note, manual_note

__all__ = [
    "ReconciliationStore",
    "InMemoryReconciliationStore",
    "ReconciliationCommitter",
    "auto_note",
    "manual_note",
]
