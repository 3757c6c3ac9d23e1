"""Commits accepted matches as persisted reconciliation links."""

from typing import Optional
import logging
import threading

from ..models.records import (
    CommitFailure,
    CommitReport,
    MatchCandidate,
    ReconciliationRecord,
)
from ..utils.exceptions import ReconciliationError, ValidationError
from .store import ReconciliationStore

logger = logging.getLogger(__name__)


def auto_note(candidate: MatchCandidate) -> str:
    """Default rationale for an automatic reconciliation."""
    return f"Auto-reconciled: {', '.join(candidate.reasons)}"


def manual_note(reasons: list[str]) -> str:
    """Default rationale for a manual reconciliation."""
    return f"Manual reconciliation: {', '.join(reasons)}"


class ReconciliationCommitter:
    """
    Persists reconciliations through a store.

    Preconditions are checked by the store at commit time, so two racing
    commits for the same record yield one success and one ConflictError.
    """

    def __init__(self, store: ReconciliationStore):
        """
        Args:
            store: Reconciliation state storage
        """
        self.store = store

    def commit(
        self,
        transaction_id: str,
        expense_id: str,
        score: int,
        note: Optional[str] = None,
        automatic: bool = False,
    ) -> ReconciliationRecord:
        """
        Reconcile one transaction with one expense.

        Args:
            transaction_id: Transaction to reconcile
            expense_id: Expense to reconcile against
            score: Confidence score 0-100
            note: Rationale stored with the link
            automatic: Whether the link came from the automatic path

        Returns:
            The committed record

        Raises:
            ValidationError: If the score is outside [0, 100]
            RecordNotFoundError: If either id is unknown
            ConflictError: If either side is already reconciled
        """
        if isinstance(score, bool) or not isinstance(score, int) or not 0 <= score <= 100:
            raise ValidationError(f"Score must be an integer within [0, 100], got {score!r}")

        record = self.store.link(
            transaction_id, expense_id, score, note=note, automatic=automatic
        )
        logger.info(
            f"Reconciled transaction {transaction_id} with expense {expense_id} "
            f"(score {score}, {'auto' if automatic else 'manual'})"
        )
        return record

    def commit_many(
        self,
        candidates: list[MatchCandidate],
        cancel_event: Optional[threading.Event] = None,
    ) -> CommitReport:
        """
        Commit candidates one by one as automatic reconciliations.

        A failing candidate never stops the others. If cancel_event is set,
        the remaining candidates are reported as skipped and everything
        committed so far stays committed.

        Args:
            candidates: Candidates to commit, in order
            cancel_event: Optional event signalling the caller aborted

        Returns:
            Per-candidate outcome
        """
        report = CommitReport()

        for index, candidate in enumerate(candidates):
            if cancel_event is not None and cancel_event.is_set():
                report.aborted = True
                report.skipped = list(candidates[index:])
                logger.warning(
                    f"Bulk reconciliation aborted after {index} of {len(candidates)} "
                    f"candidates; {len(report.skipped)} not attempted"
                )
                break

            try:
                record = self.commit(
                    candidate.transaction_id,
                    candidate.expense_id,
                    candidate.score,
                    note=auto_note(candidate),
                    automatic=True,
                )
            except ReconciliationError as e:
                logger.warning(
                    f"Could not reconcile transaction {candidate.transaction_id} "
                    f"with expense {candidate.expense_id}: {e}"
                )
                report.failed.append(
                    CommitFailure(
                        transaction_id=candidate.transaction_id,
                        expense_id=candidate.expense_id,
                        score=candidate.score,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                )
                continue

            report.succeeded.append(record)

        return report
