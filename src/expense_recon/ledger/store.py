"""
Reconciliation state storage.

The store is the only place where reconciliation state changes. Linking a
transaction to an expense is a conditional update on both records: it
succeeds only if neither side is reconciled yet.
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional
import threading

from ..models.records import Expense, ReconciliationRecord, Transaction
from ..utils.exceptions import ConflictError, RecordNotFoundError


class ReconciliationStore(ABC):
    """Abstract base class for reconciliation state storage."""

    @abstractmethod
    def get_transaction(self, transaction_id: str) -> Transaction:
        """
        Return the current state of a transaction.

        Raises:
            RecordNotFoundError: If the id is unknown
        """
        pass

    @abstractmethod
    def get_expense(self, expense_id: str) -> Expense:
        """
        Return the current state of an expense.

        Raises:
            RecordNotFoundError: If the id is unknown
        """
        pass

    @abstractmethod
    def list_transactions(self) -> list[Transaction]:
        pass

    @abstractmethod
    def list_expenses(self) -> list[Expense]:
        pass

    @abstractmethod
    def link(
        self,
        transaction_id: str,
        expense_id: str,
        score: int,
        note: Optional[str] = None,
        automatic: bool = False,
    ) -> ReconciliationRecord:
        """
        Atomically mark both records as reconciled with each other.

        Args:
            transaction_id: Transaction to reconcile
            expense_id: Expense to reconcile against
            score: Confidence score 0-100
            note: Rationale stored on the transaction
            automatic: Whether the link came from the automatic path

        Returns:
            The committed reconciliation record

        Raises:
            RecordNotFoundError: If either id is unknown
            ConflictError: If either side is already reconciled
        """
        pass

    @abstractmethod
    def records(self) -> list[ReconciliationRecord]:
        """All committed reconciliation records, in commit order."""
        pass


class InMemoryReconciliationStore(ReconciliationStore):
    """
    Thread-safe in-memory store.

    Records are kept as private copies and replaced on update, so objects
    returned earlier are snapshots that never change.
    """

    def __init__(
        self,
        transactions: Iterable[Transaction] = (),
        expenses: Iterable[Expense] = (),
    ):
        self._lock = threading.Lock()
        self._transactions: dict[str, Transaction] = {t.id: replace(t) for t in transactions}
        self._expenses: dict[str, Expense] = {e.id: replace(e) for e in expenses}
        self._records: list[ReconciliationRecord] = []

    def get_transaction(self, transaction_id: str) -> Transaction:
        with self._lock:
            return self._require_transaction(transaction_id)

    def get_expense(self, expense_id: str) -> Expense:
        with self._lock:
            return self._require_expense(expense_id)

    def list_transactions(self) -> list[Transaction]:
        with self._lock:
            return list(self._transactions.values())

    def list_expenses(self) -> list[Expense]:
        with self._lock:
            return list(self._expenses.values())

    def records(self) -> list[ReconciliationRecord]:
        with self._lock:
            return list(self._records)

    def link(
        self,
        transaction_id: str,
        expense_id: str,
        score: int,
        note: Optional[str] = None,
        automatic: bool = False,
    ) -> ReconciliationRecord:
        with self._lock:
            transaction = self._require_transaction(transaction_id)
            expense = self._require_expense(expense_id)

            if transaction.reconciled:
                raise ConflictError(
                    f"Transaction {transaction_id} is already reconciled "
                    f"with expense {transaction.expense_id}",
                    transaction_id=transaction_id,
                    expense_id=expense_id,
                )
            if expense.is_reconciled or self._expense_linked(expense_id):
                raise ConflictError(
                    f"Expense {expense_id} is already reconciled",
                    transaction_id=transaction_id,
                    expense_id=expense_id,
                )

            committed_at = datetime.now()
            self._transactions[transaction_id] = replace(
                transaction,
                reconciled=True,
                expense_id=expense_id,
                confidence=score / 100,
                note=note,
                reconciled_at=committed_at,
            )
            self._expenses[expense_id] = replace(
                expense, reconciled_transaction_id=transaction_id
            )

            record = ReconciliationRecord(
                transaction_id=transaction_id,
                expense_id=expense_id,
                score=score,
                note=note,
                automatic=automatic,
                committed_at=committed_at,
            )
            self._records.append(record)
            return record

    def _require_transaction(self, transaction_id: str) -> Transaction:
        try:
            return self._transactions[transaction_id]
        except KeyError:
            raise RecordNotFoundError(f"Unknown transaction: {transaction_id}") from None

    def _require_expense(self, expense_id: str) -> Expense:
        try:
            return self._expenses[expense_id]
        except KeyError:
            raise RecordNotFoundError(f"Unknown expense: {expense_id}") from None

    def _expense_linked(self, expense_id: str) -> bool:
        # Links loaded from ingestion may only be recorded on the transaction side
        return any(
            t.reconciled and t.expense_id == expense_id for t in self._transactions.values()
        )
