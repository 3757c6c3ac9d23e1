"""
Reconciliation policy.
Ranks candidates and decides which ones are reconciled automatically.
"""

from dataclasses import replace
from datetime import date
from typing import Optional
import logging

from ..models.records import MatchCandidate

logger = logging.getLogger(__name__)


def ranking_key(candidate: MatchCandidate) -> tuple:
    """
    Total ordering for candidates.

    Highest score first, then earliest transaction date, then transaction
    id and expense id.
    """
    return (
        -candidate.score,
        candidate.transaction_date or date.max,
        candidate.transaction_id,
        candidate.expense_id,
    )


class ReconciliationPolicy:
    """Tags candidates as automatic or manual and enforces single use."""

    def __init__(self, auto_threshold: int = 70):
        """
        Args:
            auto_threshold: Default score at or above which a match is automatic
        """
        self.auto_threshold = auto_threshold

    def apply(
        self, candidates: list[MatchCandidate], auto_threshold: Optional[int] = None
    ) -> list[MatchCandidate]:
        """
        Rank and tag candidates.

        Walking the ranked list, an automatic candidate whose transaction or
        expense was already claimed by a better automatic candidate is
        demoted to manual review. Candidates touching a claimed record stay
        in the list, flagged as superseded.

        Args:
            candidates: Scored candidates (not modified)
            auto_threshold: Override for the automatic threshold

        Returns:
            New candidate objects in ranked order
        """
        threshold = self.auto_threshold if auto_threshold is None else auto_threshold

        claimed_transactions: set[str] = set()
        claimed_expenses: set[str] = set()
        result: list[MatchCandidate] = []
        demoted = 0

        for candidate in sorted(candidates, key=ranking_key):
            conflicts = (
                candidate.transaction_id in claimed_transactions
                or candidate.expense_id in claimed_expenses
            )
            auto_match = candidate.score >= threshold and not conflicts

            if candidate.score >= threshold and conflicts:
                demoted += 1

            if auto_match:
                claimed_transactions.add(candidate.transaction_id)
                claimed_expenses.add(candidate.expense_id)

            result.append(
                replace(
                    candidate,
                    reasons=list(candidate.reasons),
                    breakdown=dict(candidate.breakdown),
                    auto_match=auto_match,
                    superseded=conflicts,
                )
            )

        logger.debug(
            f"Policy applied at threshold {threshold}: "
            f"{len(claimed_transactions)} automatic, {demoted} demoted to manual"
        )
        return result

    @staticmethod
    def automatic(candidates: list[MatchCandidate]) -> list[MatchCandidate]:
        """Candidates accepted for automatic reconciliation."""
        return [c for c in candidates if c.auto_match]

    @staticmethod
    def manual(candidates: list[MatchCandidate]) -> list[MatchCandidate]:
        """Candidates requiring human review."""
        return [c for c in candidates if not c.auto_match]
