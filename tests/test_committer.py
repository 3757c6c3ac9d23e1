"""Tests for the reconciliation store and committer."""

import threading

import pytest

from expense_recon.ledger.committer import ReconciliationCommitter, auto_note, manual_note
from expense_recon.ledger.store import InMemoryReconciliationStore
from expense_recon.models.records import MatchCandidate
from expense_recon.utils.exceptions import ConflictError, RecordNotFoundError, ValidationError

from conftest import make_expense, make_transaction


@pytest.fixture
def pool():
    """Three open transactions and three open expenses."""
    return InMemoryReconciliationStore(
        transactions=[make_transaction(id=f"T{i}") for i in range(1, 4)],
        expenses=[make_expense(id=f"E{i}") for i in range(1, 4)],
    )


class CancellingStore(InMemoryReconciliationStore):
    """Store that signals cancellation after its first successful link."""

    def __init__(self, cancel_event, **kwargs):
        super().__init__(**kwargs)
        self.cancel_event = cancel_event

    def link(self, *args, **kwargs):
        record = super().link(*args, **kwargs)
        self.cancel_event.set()
        return record


class TestInMemoryStore:
    """Tests for InMemoryReconciliationStore."""

    def test_link_updates_both_sides(self, pool):
        record = pool.link("T1", "E2", 85, note="ok", automatic=True)

        transaction = pool.get_transaction("T1")
        assert transaction.reconciled is True
        assert transaction.expense_id == "E2"
        assert transaction.confidence == 0.85
        assert transaction.reconciled_at == record.committed_at
        assert pool.get_expense("E2").reconciled_transaction_id == "T1"
        assert pool.records() == [record]

    def test_returned_records_are_snapshots(self, pool):
        before = pool.get_transaction("T1")
        pool.link("T1", "E1", 90)

        assert before.reconciled is False
        assert pool.get_transaction("T1").reconciled is True

    def test_source_objects_untouched(self):
        transaction = make_transaction(id="T1")
        store = InMemoryReconciliationStore([transaction], [make_expense(id="E1")])
        store.link("T1", "E1", 90)

        assert transaction.reconciled is False

    def test_transaction_conflict(self, pool):
        pool.link("T1", "E1", 90)
        with pytest.raises(ConflictError) as exc_info:
            pool.link("T1", "E2", 90)

        assert exc_info.value.transaction_id == "T1"
        assert pool.get_expense("E2").is_reconciled is False

    def test_expense_conflict(self, pool):
        pool.link("T1", "E1", 90)
        with pytest.raises(ConflictError):
            pool.link("T2", "E1", 90)

        assert pool.get_transaction("T2").reconciled is False

    def test_expense_linked_only_from_transaction_side(self):
        store = InMemoryReconciliationStore(
            transactions=[
                make_transaction(id="T1", reconciled=True, expense_id="E1"),
                make_transaction(id="T2"),
            ],
            expenses=[make_expense(id="E1")],
        )
        with pytest.raises(ConflictError):
            store.link("T2", "E1", 90)

    def test_unknown_ids(self, pool):
        with pytest.raises(RecordNotFoundError):
            pool.link("T9", "E1", 90)
        with pytest.raises(RecordNotFoundError):
            pool.get_expense("E9")

    def test_many_threads_one_winner(self, pool):
        barrier = threading.Barrier(3)
        outcomes = []

        def attempt(transaction_id):
            barrier.wait()
            try:
                pool.link(transaction_id, "E3", 80)
                outcomes.append(("ok", transaction_id))
            except ConflictError:
                outcomes.append(("conflict", transaction_id))

        threads = [threading.Thread(target=attempt, args=(f"T{i}",)) for i in range(1, 4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        winners = [t for status, t in outcomes if status == "ok"]
        assert len(winners) == 1
        assert len(outcomes) == 3
        assert [r.transaction_id for r in pool.records()] == winners


class TestCommitter:
    """Tests for ReconciliationCommitter."""

    @pytest.mark.parametrize("score", [-1, 101, 85.5, True, "90"])
    def test_score_validated(self, pool, score):
        with pytest.raises(ValidationError):
            ReconciliationCommitter(pool).commit("T1", "E1", score)
        assert pool.records() == []

    def test_score_bounds_accepted(self, pool):
        committer = ReconciliationCommitter(pool)
        assert committer.commit("T1", "E1", 0).score == 0
        assert committer.commit("T2", "E2", 100).confidence == 1.0

    def test_commit_many_partial_failure(self, pool):
        pool.link("T2", "E2", 90)
        candidates = [
            MatchCandidate("T1", "E1", 90, reasons=["Exact amount match"], auto_match=True),
            MatchCandidate("T3", "E2", 80, reasons=["Same date"], auto_match=True),
            MatchCandidate("T3", "E3", 75, reasons=["Same date"], auto_match=True),
        ]

        report = ReconciliationCommitter(pool).commit_many(candidates)

        assert [(r.transaction_id, r.expense_id) for r in report.succeeded] == [
            ("T1", "E1"),
            ("T3", "E3"),
        ]
        assert len(report.failed) == 1
        failure = report.failed[0]
        assert (failure.transaction_id, failure.expense_id) == ("T3", "E2")
        assert failure.error_type == "ConflictError"
        assert report.aborted is False

    def test_commit_many_notes(self, pool):
        candidate = MatchCandidate(
            "T1", "E1", 90, reasons=["Exact amount match", "Same date"], auto_match=True
        )
        ReconciliationCommitter(pool).commit_many([candidate])

        assert pool.get_transaction("T1").note == "Auto-reconciled: Exact amount match, Same date"
        assert pool.records()[0].automatic is True

    def test_cancel_mid_run(self):
        cancel = threading.Event()
        store = CancellingStore(
            cancel,
            transactions=[make_transaction(id="T1"), make_transaction(id="T2")],
            expenses=[make_expense(id="E1"), make_expense(id="E2")],
        )
        candidates = [
            MatchCandidate("T1", "E1", 90, auto_match=True),
            MatchCandidate("T2", "E2", 90, auto_match=True),
        ]

        report = ReconciliationCommitter(store).commit_many(candidates, cancel_event=cancel)

        assert report.aborted is True
        assert report.succeeded_count == 1
        assert [c.pair for c in report.skipped] == [("T2", "E2")]
        assert store.get_transaction("T1").reconciled is True
        assert store.get_transaction("T2").reconciled is False


class TestNotes:
    """Default reconciliation notes."""

    def test_auto_note(self):
        candidate = MatchCandidate("T1", "E1", 90, reasons=["Exact amount match"])
        assert auto_note(candidate) == "Auto-reconciled: Exact amount match"

    def test_manual_note(self):
        assert manual_note(["Same date", "Category match"]) == (
            "Manual reconciliation: Same date, Category match"
        )
