"""
Reconciliation engine for bank transactions and project expenses.
Orchestrates candidate generation, the automation policy and commits.
"""

from dataclasses import replace
from datetime import datetime
from typing import Optional
import logging
import threading

from ..models.records import (
    CommitReport,
    Expense,
    MatchCandidate,
    ReconciliationRecord,
    ReconciliationSummary,
    Transaction,
)
from ..config import (
    ReconConfig,
    validate_config,
    validate_score_threshold,
    validate_thresholds,
)
from ..ledger.committer import ReconciliationCommitter, manual_note
from ..ledger.store import ReconciliationStore
from ..utils.exceptions import ConfigurationError, ValidationError
from .candidates import CandidateBatch, CandidateGenerator
from .categorizer import Categorizer, KeywordCategorizer, categorize_transactions
from .policy import ReconciliationPolicy
from .scorer import MatchScorer

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """
    Main reconciliation engine.

    Scoring and candidate generation are pure. Only commits, which go
    through the configured store, change state.
    """

    def __init__(
        self,
        config: ReconConfig,
        store: Optional[ReconciliationStore] = None,
        categorizer: Optional[Categorizer] = None,
    ):
        """
        Initialize the reconciliation engine.

        Args:
            config: Application configuration
            store: State storage, required for commits
            categorizer: Strategy filling missing transaction categories

        Raises:
            ConfigurationError: If the matching thresholds are invalid
        """
        self.config = validate_config(config)
        matching = config.matching

        self.scorer = MatchScorer(min_token_length=matching.fuzzy_token_min_length)
        self.generator = CandidateGenerator(
            self.scorer,
            min_score=matching.min_score_threshold,
            approval_states=matching.expense_approval_states,
        )
        self.policy = ReconciliationPolicy(auto_threshold=matching.auto_reconcile_threshold)

        self.store = store
        self.committer = ReconciliationCommitter(store) if store is not None else None

        if categorizer is None and config.categorization.enabled:
            categorizer = KeywordCategorizer.from_config(config.categorization)
        self.categorizer = categorizer

    @property
    def min_score_threshold(self) -> int:
        return self.config.matching.min_score_threshold

    @property
    def auto_reconcile_threshold(self) -> int:
        return self.config.matching.auto_reconcile_threshold

    def generate_batch(
        self,
        transactions: list[Transaction],
        expenses: list[Expense],
        min_score: Optional[int] = None,
        project_id: Optional[str] = None,
    ) -> CandidateBatch:
        """
        Score all open transaction/expense pairs.

        Records failing validation are excluded and returned with the batch.
        The engine itself keeps no per-run state.

        Args:
            transactions: Full transaction set
            expenses: Full expense set
            min_score: Override for the minimum score threshold
            project_id: Only consider expenses of this project

        Returns:
            Unsorted candidates scoring at least min_score, skipped records
            and open record counts

        Raises:
            ConfigurationError: If min_score is invalid
        """
        floor = self.min_score_threshold if min_score is None else min_score
        validate_score_threshold("min_score", floor)

        if self.categorizer is not None:
            transactions = categorize_transactions(
                transactions,
                self.categorizer,
                fallback_category=self.config.categorization.fallback_category,
            )

        batch = self.generator.generate(
            transactions, expenses, min_score=floor, project_id=project_id
        )
        if batch.skipped:
            logger.warning(f"{len(batch.skipped)} malformed records excluded from matching")
        return batch

    def generate_candidates(
        self,
        transactions: list[Transaction],
        expenses: list[Expense],
        min_score: Optional[int] = None,
        project_id: Optional[str] = None,
    ) -> list[MatchCandidate]:
        """Unsorted candidates only; see generate_batch."""
        return self.generate_batch(
            transactions, expenses, min_score=min_score, project_id=project_id
        ).candidates

    def apply_policy(
        self,
        candidates: list[MatchCandidate],
        auto_threshold: Optional[int] = None,
    ) -> list[MatchCandidate]:
        """
        Rank candidates and tag automatic matches.

        Args:
            candidates: Candidates from generate_candidates
            auto_threshold: Override for the automatic threshold

        Returns:
            Ranked, tagged candidates; no record appears in two automatic ones

        Raises:
            ConfigurationError: If auto_threshold is invalid
        """
        threshold = self.auto_reconcile_threshold if auto_threshold is None else auto_threshold
        validate_score_threshold("auto_threshold", threshold)
        return self.policy.apply(candidates, auto_threshold=threshold)

    def suggest_batch(
        self,
        transactions: list[Transaction],
        expenses: list[Expense],
        min_score: Optional[int] = None,
        auto_threshold: Optional[int] = None,
        project_id: Optional[str] = None,
    ) -> CandidateBatch:
        """
        Generate candidates and apply the policy in one call.

        Returns:
            Batch whose candidates are ranked and tagged, with the skipped
            records and open counts of the run
        """
        floor, threshold = self._resolve_thresholds(min_score, auto_threshold)
        batch = self.generate_batch(
            transactions, expenses, min_score=floor, project_id=project_id
        )
        return replace(
            batch, candidates=self.apply_policy(batch.candidates, auto_threshold=threshold)
        )

    def suggest(
        self,
        transactions: list[Transaction],
        expenses: list[Expense],
        min_score: Optional[int] = None,
        auto_threshold: Optional[int] = None,
        project_id: Optional[str] = None,
    ) -> list[MatchCandidate]:
        """Ranked, tagged candidates only; see suggest_batch."""
        return self.suggest_batch(
            transactions,
            expenses,
            min_score=min_score,
            auto_threshold=auto_threshold,
            project_id=project_id,
        ).candidates

    def commit(
        self,
        transaction_id: str,
        expense_id: str,
        score: int,
        note: Optional[str] = None,
    ) -> ReconciliationRecord:
        """
        Commit a single reconciliation.

        Raises:
            ConflictError: If either side is already reconciled
            RecordNotFoundError: If either id is unknown
            ValidationError: If the score is out of range
        """
        return self._require_committer().commit(transaction_id, expense_id, score, note=note)

    def auto_reconcile(
        self,
        transactions: Optional[list[Transaction]] = None,
        expenses: Optional[list[Expense]] = None,
        auto_threshold: Optional[int] = None,
        min_score: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
        project_id: Optional[str] = None,
    ) -> CommitReport:
        """
        Commit every automatic match.

        Candidates are computed fresh; when no records are passed the
        current store state is used. Each commit is independent.

        Args:
            transactions: Transactions to match (defaults to the store's)
            expenses: Expenses to match (defaults to the store's)
            auto_threshold: Override for the automatic threshold
            min_score: Override for the minimum score threshold
            cancel_event: Set by the caller to stop before the next commit
            project_id: Only consider expenses of this project

        Returns:
            Succeeded and failed commits
        """
        committer = self._require_committer()
        floor, threshold = self._resolve_thresholds(min_score, auto_threshold)

        if transactions is None:
            transactions = self.store.list_transactions()
        if expenses is None:
            expenses = self.store.list_expenses()

        start_time = datetime.now()
        logger.info(
            f"Starting auto-reconciliation: {len(transactions)} transactions, "
            f"{len(expenses)} expenses, threshold {threshold}"
        )

        ranked = self.suggest(
            transactions,
            expenses,
            min_score=floor,
            auto_threshold=threshold,
            project_id=project_id,
        )
        automatic = ReconciliationPolicy.automatic(ranked)
        report = committer.commit_many(automatic, cancel_event=cancel_event)

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Auto-reconciliation complete in {elapsed:.2f}s: "
            f"{report.succeeded_count} committed, {report.failed_count} failed, "
            f"{len(report.skipped)} not attempted"
        )
        return report

    def manual_reconcile(
        self,
        transaction_id: str,
        expense_id: str,
        note: Optional[str] = None,
    ) -> ReconciliationRecord:
        """
        Commit a pair chosen by a reviewer.

        The pair is scored from the current store state, so it need not be
        among the suggestions.

        Args:
            transaction_id: Transaction to reconcile
            expense_id: Expense to reconcile against
            note: Reviewer note (defaults to the scoring reasons)

        Returns:
            The committed record
        """
        committer = self._require_committer()
        transaction = self.store.get_transaction(transaction_id)
        expense = self.store.get_expense(expense_id)

        try:
            transaction.validate()
            expense.validate()
        except ValidationError:
            logger.warning(f"Manual reconciliation of malformed pair {transaction_id}/{expense_id}")
            raise

        match = self.scorer.score(transaction, expense)
        return committer.commit(
            transaction_id,
            expense_id,
            match.total,
            note=note or manual_note(match.reasons),
            automatic=False,
        )

    def find_best_transaction_match(
        self,
        expense: Expense,
        transactions: list[Transaction],
        min_confidence: Optional[int] = None,
    ) -> Optional[MatchCandidate]:
        """
        Find the best open transaction for a single expense.

        Args:
            expense: Expense to match
            transactions: Available transactions
            min_confidence: Minimum score (defaults to the automatic threshold)

        Returns:
            The best candidate, or None if nothing reaches min_confidence
        """
        floor = self.auto_reconcile_threshold if min_confidence is None else min_confidence
        validate_score_threshold("min_confidence", floor)
        best: Optional[MatchCandidate] = None

        try:
            expense.validate()
        except ValidationError as e:
            logger.warning(f"Cannot match expense {expense.id}: {e}")
            return None

        for transaction in transactions:
            if transaction.reconciled:
                continue
            try:
                transaction.validate()
            except ValidationError:
                continue

            match = self.scorer.score(transaction, expense)
            if match.total >= floor and (best is None or match.total > best.score):
                best = MatchCandidate(
                    transaction_id=transaction.id,
                    expense_id=expense.id,
                    score=match.total,
                    reasons=match.reasons,
                    auto_match=match.total >= self.auto_reconcile_threshold,
                    transaction_date=transaction.date,
                    breakdown=match.breakdown,
                )

        return best

    @staticmethod
    def search_candidates(
        candidates: list[MatchCandidate],
        term: str,
        transactions: list[Transaction],
        expenses: list[Expense],
    ) -> list[MatchCandidate]:
        """
        Filter candidates by free text.

        Matches the transaction description, the expense description or the
        supplier name, case-insensitively. An empty term keeps everything.
        """
        if not term:
            return list(candidates)

        needle = term.casefold()
        transactions_by_id = {t.id: t for t in transactions}
        expenses_by_id = {e.id: e for e in expenses}

        def matches(candidate: MatchCandidate) -> bool:
            txn = transactions_by_id.get(candidate.transaction_id)
            exp = expenses_by_id.get(candidate.expense_id)
            haystacks = [
                txn.description if txn else "",
                exp.description if exp else "",
                (exp.supplier_name or "") if exp else "",
            ]
            return any(needle in (h or "").casefold() for h in haystacks)

        return [c for c in candidates if matches(c)]

    def generate_summary(
        self,
        transactions: list[Transaction],
        expenses: list[Expense],
        batch: CandidateBatch,
        processing_time: float,
        report: Optional[CommitReport] = None,
        auto_threshold: Optional[int] = None,
        min_score: Optional[int] = None,
    ) -> ReconciliationSummary:
        """
        Generate a summary of a reconciliation run.

        Args:
            transactions: All transactions
            expenses: All expenses
            batch: Output of suggest_batch (candidates may be filtered)
            processing_time: Time taken in seconds
            report: Commit report when the automatic path ran
            auto_threshold: Threshold used for the run
            min_score: Score floor used for the run

        Returns:
            Reconciliation summary object
        """
        floor, threshold = self._resolve_thresholds(min_score, auto_threshold)
        candidates = batch.candidates
        auto_count = sum(1 for c in candidates if c.auto_match)

        return ReconciliationSummary(
            reconciliation_date=datetime.now(),
            total_transactions=len(transactions),
            total_expenses=len(expenses),
            open_transactions=batch.open_transactions,
            open_expenses=batch.open_expenses,
            candidate_count=len(candidates),
            auto_match_count=auto_count,
            manual_review_count=len(candidates) - auto_count,
            min_score_threshold=floor,
            auto_reconcile_threshold=threshold,
            skipped_records=list(batch.skipped),
            committed_count=report.succeeded_count if report else None,
            failed_count=report.failed_count if report else None,
            processing_time_seconds=processing_time,
            config_file_used=self.config.config_file_path,
        )

    def _resolve_thresholds(
        self, min_score: Optional[int], auto_threshold: Optional[int]
    ) -> tuple[int, int]:
        """Apply per-call overrides and validate the resulting pair."""
        floor = self.min_score_threshold if min_score is None else min_score
        threshold = self.auto_reconcile_threshold if auto_threshold is None else auto_threshold
        validate_thresholds(
            floor, threshold, self.config.matching.fuzzy_token_min_length
        )
        return floor, threshold

    def _require_committer(self) -> ReconciliationCommitter:
        if self.committer is None:
            raise ConfigurationError("No reconciliation store configured; cannot commit")
        return self.committer
