"""
Candidate generation for reconciliation.
Pairs every open transaction with every open expense and keeps the pairs
worth showing to a reviewer.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional
import logging

from ..models.records import (
    Expense,
    MatchCandidate,
    SkippedRecord,
    Transaction,
)
from ..utils.exceptions import ValidationError
from .scorer import MatchScorer

logger = logging.getLogger(__name__)


@dataclass
class CandidateBatch:
    """Output of one candidate generation pass."""

    candidates: list[MatchCandidate] = field(default_factory=list)
    skipped: list[SkippedRecord] = field(default_factory=list)
    open_transactions: int = 0
    open_expenses: int = 0


class CandidateGenerator:
    """
    Enumerates and scores transaction x expense pairs.

    Already reconciled records are never offered. Malformed records are
    excluded and reported, never raised.
    """

    def __init__(
        self,
        scorer: MatchScorer,
        min_score: int = 30,
        approval_states: Optional[Iterable[str]] = None,
    ):
        """
        Initialize the generator.

        Args:
            scorer: Pair scorer
            min_score: Default floor below which a pair is dropped
            approval_states: Eligible expense approval states (None for all)
        """
        self.scorer = scorer
        self.min_score = min_score
        self.approval_states = (
            {s.strip().lower() for s in approval_states} if approval_states else None
        )

    def generate(
        self,
        transactions: list[Transaction],
        expenses: list[Expense],
        min_score: Optional[int] = None,
        project_id: Optional[str] = None,
    ) -> CandidateBatch:
        """
        Score every eligible pair.

        Args:
            transactions: Full transaction set
            expenses: Full expense set
            min_score: Override for the score floor
            project_id: Only consider expenses of this project

        Returns:
            Candidates in input order plus the skipped records
        """
        floor = self.min_score if min_score is None else min_score
        batch = CandidateBatch()

        valid_transactions = self._valid_records(transactions, "transaction", batch.skipped)
        valid_expenses = self._valid_records(expenses, "expense", batch.skipped)

        open_transactions = [t for t in valid_transactions if not t.reconciled]

        # Expenses linked by a reconciled transaction count as reconciled
        linked_expense_ids = {
            t.expense_id for t in valid_transactions if t.reconciled and t.expense_id
        }
        open_expenses = [
            e
            for e in valid_expenses
            if not e.is_reconciled
            and e.id not in linked_expense_ids
            and self._is_eligible(e, project_id)
        ]

        batch.open_transactions = len(open_transactions)
        batch.open_expenses = len(open_expenses)

        logger.debug(
            f"Scoring {len(open_transactions)} open transactions against "
            f"{len(open_expenses)} open expenses (min score {floor})"
        )

        for transaction in open_transactions:
            for expense in open_expenses:
                match = self.scorer.score(transaction, expense)
                if match.total < floor:
                    continue

                batch.candidates.append(
                    MatchCandidate(
                        transaction_id=transaction.id,
                        expense_id=expense.id,
                        score=match.total,
                        reasons=match.reasons,
                        transaction_date=transaction.date,
                        breakdown=match.breakdown,
                    )
                )

        logger.debug(f"Generated {len(batch.candidates)} candidates")
        return batch

    def _valid_records(self, records, record_type: str, skipped: list[SkippedRecord]) -> list:
        """Drop records failing validation, reporting each one."""
        valid = []
        for record in records:
            try:
                record.validate()
            except ValidationError as e:
                record_id = str(getattr(record, "id", "") or "")
                logger.warning(f"Skipping {record_type} {record_id or '<no id>'}: {e}")
                skipped.append(
                    SkippedRecord(record_type=record_type, record_id=record_id, reason=str(e))
                )
                continue
            valid.append(record)
        return valid

    def _is_eligible(self, expense: Expense, project_id: Optional[str]) -> bool:
        if project_id is not None and expense.project_id != project_id:
            return False
        if self.approval_states is not None:
            return expense.approval_state.value in self.approval_states
        return True
