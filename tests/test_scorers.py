"""Tests for the similarity scorers and the combined match scorer."""

from datetime import date, timedelta

import pytest

from expense_recon.matching.scorer import MatchScorer
from expense_recon.matching.scorers import (
    AmountScorer,
    CategoryScorer,
    DateScorer,
    ReferenceScorer,
    SemanticScorer,
    SupplierScorer,
)

from conftest import make_expense, make_transaction


class TestAmountScorer:
    """Amount closeness tiers."""

    @pytest.mark.parametrize(
        "transaction_amount,points",
        [
            ("-100.00", 50),
            ("100.00", 50),
            ("-100.005", 50),
            ("-101.50", 45),
            ("-104.00", 35),
            ("-108.00", 20),
            ("-115.00", 10),
            ("-125.00", 0),
        ],
    )
    def test_tiers(self, transaction_amount, points):
        result = AmountScorer().score(
            make_transaction(amount=transaction_amount), make_expense(amount="100.00")
        )
        assert result.points == points

    def test_boundary_is_exclusive(self):
        """Exactly 2% off falls into the 5% tier."""
        result = AmountScorer().score(make_transaction(amount="-102.00"), make_expense(amount="100"))
        assert result.points == 35

    def test_exact_reason(self):
        result = AmountScorer().score(make_transaction(amount="-100"), make_expense(amount="100"))
        assert result.reason == "Exact amount match"

    def test_zero_expense_amount(self):
        result = AmountScorer().score(make_transaction(amount="-100"), make_expense(amount="0"))
        assert result.points == 0
        assert result.reason is None

    def test_half_amount_scores_nothing(self):
        result = AmountScorer().score(make_transaction(amount="500"), make_expense(amount="1000"))
        assert result.points == 0


class TestSupplierScorer:
    """Supplier fallback chain."""

    def test_counterpart_containment(self):
        result = SupplierScorer().score(
            make_transaction(counterpart_name="ACME SRL Milano"),
            make_expense(supplier_name="ACME Srl"),
        )
        assert result.points == 30

    def test_counterpart_contained_in_supplier(self):
        result = SupplierScorer().score(
            make_transaction(counterpart_name="ACME"),
            make_expense(supplier_name="ACME S.r.l."),
        )
        assert result.points == 30

    def test_description_containment(self):
        result = SupplierScorer().score(
            make_transaction(description="Bonifico a ACME s.r.l. saldo"),
            make_expense(supplier_name="ACME S.r.l."),
        )
        assert result.points == 25

    def test_strong_word_overlap(self):
        result = SupplierScorer().score(
            make_transaction(counterpart_name="Rossi Mario Costruzioni"),
            make_expense(supplier_name="Costruzioni Rossi Spa"),
        )
        assert result.points == 20
        assert result.reason == "Similar supplier name"

    def test_weak_word_overlap(self):
        result = SupplierScorer().score(
            make_transaction(counterpart_name="Verdi Impianti Nord"),
            make_expense(supplier_name="Impianti Bianchi Sud"),
        )
        assert result.points == 10

    def test_overlap_falls_back_to_description(self):
        result = SupplierScorer().score(
            make_transaction(description="Rossi Mario Costruzioni"),
            make_expense(supplier_name="Costruzioni Rossi Spa"),
        )
        assert result.points == 20

    def test_punctuation_variants_are_similar(self):
        result = SupplierScorer().score(
            make_transaction(counterpart_name="ACME SRL"),
            make_expense(supplier_name="ACME S.r.l."),
        )
        assert result.points == 20
        assert result.reason == "Similar supplier name"

    def test_short_compact_names_not_contained(self):
        scorer = SupplierScorer()
        assert scorer.word_overlap("a b", "xab yz") == 0.0

    def test_short_words_not_counted(self):
        result = SupplierScorer().score(
            make_transaction(counterpart_name="ab cd"),
            make_expense(supplier_name="ab ef"),
        )
        assert result.points == 0

    def test_no_supplier(self):
        result = SupplierScorer().score(
            make_transaction(counterpart_name="ACME"), make_expense(supplier_name=None)
        )
        assert result.points == 0


class TestReferenceScorer:
    """Reference overlap."""

    def test_receipt_number_match(self):
        result = ReferenceScorer().score(
            make_transaction(description="Pagamento fattura 4521"),
            make_expense(receipt_number="FT-4521"),
        )
        assert result.points == 20

    def test_partial_reference_match(self):
        result = ReferenceScorer().score(
            make_transaction(description="Saldo n. 45"),
            make_expense(description="Fattura 4521"),
        )
        assert result.points == 20

    def test_different_references(self):
        result = ReferenceScorer().score(
            make_transaction(description="Fattura 1111"),
            make_expense(description="Fattura 2222"),
        )
        assert result.points == 0

    def test_no_references(self):
        result = ReferenceScorer().score(
            make_transaction(description="Bonifico"),
            make_expense(description="Fattura 2222"),
        )
        assert result.points == 0


class TestSemanticScorer:
    """Description word overlap."""

    def test_identical(self):
        text = "Consulenza tecnica progetto industria"
        result = SemanticScorer().score(
            make_transaction(description=text), make_expense(description=text)
        )
        assert result.points == 15

    def test_similar(self):
        result = SemanticScorer().score(
            make_transaction(description="consulenza tecnica progetto"),
            make_expense(description="consulenza legale varia"),
        )
        assert result.points == 10

    def test_some_words(self):
        result = SemanticScorer().score(
            make_transaction(description="alpha bravo charlie delta echo"),
            make_expense(description="alpha kilo lima mike oscar"),
        )
        assert result.points == 5

    def test_only_short_words(self):
        result = SemanticScorer().score(
            make_transaction(description="di a la"), make_expense(description="di a la")
        )
        assert result.points == 0

    def test_similarity_percentage(self):
        scorer = SemanticScorer()
        assert scorer.similarity("alpha bravo", "alpha bravo") == 100
        assert scorer.similarity("", "alpha") == 0


class TestDateScorer:
    """Date proximity tiers."""

    @pytest.mark.parametrize(
        "days,points",
        [(0, 10), (2, 8), (3, 8), (5, 5), (7, 5), (20, 3), (30, 3), (31, 0)],
    )
    def test_tiers(self, days, points):
        base = date(2024, 3, 10)
        result = DateScorer().score(
            make_transaction(on=base + timedelta(days=days)), make_expense(on=base)
        )
        assert result.points == points

    def test_symmetric(self):
        base = date(2024, 3, 10)
        result = DateScorer().score(
            make_transaction(on=base - timedelta(days=2)), make_expense(on=base)
        )
        assert result.points == 8


class TestCategoryScorer:
    """Category equality."""

    def test_equal_categories(self):
        result = CategoryScorer().score(
            make_transaction(category="software"), make_expense(category="Software")
        )
        assert result.points == 5

    def test_missing_category(self):
        result = CategoryScorer().score(
            make_transaction(category=None), make_expense(category="software")
        )
        assert result.points == 0

    def test_both_empty(self):
        result = CategoryScorer().score(make_transaction(category=""), make_expense(category=""))
        assert result.points == 0


class TestMatchScorer:
    """Combined scoring."""

    def test_invoice_payment_is_capped(self, acme_transaction, acme_expense):
        match = MatchScorer().score(acme_transaction, acme_expense)

        assert match.total == 100
        assert match.raw_total == 115
        assert match.breakdown == {
            "amount": 50,
            "supplier": 25,
            "reference": 20,
            "semantic": 10,
            "date": 10,
            "category": 0,
        }

    def test_reasons_in_scorer_order(self, acme_transaction, acme_expense):
        match = MatchScorer().score(acme_transaction, acme_expense)
        assert match.reasons == [
            "Exact amount match",
            "Supplier found in description",
            "Invoice/reference number match",
            "Similar descriptions",
            "Same date",
        ]

    def test_reasons_are_reproducible(self, acme_transaction, acme_expense):
        scorer = MatchScorer()
        first = scorer.score(acme_transaction, acme_expense)
        second = scorer.score(acme_transaction, acme_expense)
        assert first == second

    def test_sum_equals_total_below_cap(self):
        match = MatchScorer().score(
            make_transaction(amount="-104", on=date(2024, 3, 12)),
            make_expense(amount="100", on=date(2024, 3, 10)),
        )
        assert match.total == match.raw_total == 35 + 8

    def test_nothing_in_common(self):
        match = MatchScorer().score(
            make_transaction(amount="-500", description="Stipendio", on=date(2024, 1, 1)),
            make_expense(amount="1000", description="Noleggio", on=date(2024, 6, 1)),
        )
        assert match.total == 0
        assert match.reasons == []
