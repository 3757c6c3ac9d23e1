"""
Similarity scorers for transaction/expense matching.

Each scorer compares one aspect of a pair and awards partial points.
Any award above zero carries a human-readable reason.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ..models.records import Expense, Transaction
from .text import extract_references, normalize_text, tokenize


@dataclass(frozen=True)
class PartialScore:
    """Points awarded by a single scorer."""

    points: int
    reason: Optional[str] = None


NO_SCORE = PartialScore(0)


class SimilarityScorer(ABC):
    """Abstract base class for similarity scorers."""

    name: str = ""
    max_points: int = 0

    @abstractmethod
    def score(self, transaction: Transaction, expense: Expense) -> PartialScore:
        """
        Score one aspect of a transaction/expense pair.

        Args:
            transaction: Bank transaction
            expense: Candidate expense

        Returns:
            Partial score, with a reason when points > 0
        """
        pass


class AmountScorer(SimilarityScorer):
    """
    Amount closeness - the strongest signal.
    Compares the absolute transaction amount with the expense amount.
    """

    name = "amount"
    max_points = 50

    EXACT_TOLERANCE = Decimal("0.01")

    # (percent upper bound, points, reason), checked in order
    TIERS = (
        (Decimal("2"), 45, "Amount within 2%"),
        (Decimal("5"), 35, "Amount within 5%"),
        (Decimal("10"), 20, "Amount within 10%"),
        (Decimal("20"), 10, "Amount within 20%"),
    )

    def score(self, transaction: Transaction, expense: Expense) -> PartialScore:
        """Score based on the relative amount difference."""
        # A zero or negative expense amount cannot be compared as a percentage
        if expense.amount <= 0:
            return NO_SCORE

        diff = abs(abs(transaction.amount) - expense.amount)
        if diff < self.EXACT_TOLERANCE:
            return PartialScore(self.max_points, "Exact amount match")

        percent = diff / expense.amount * 100
        for bound, points, reason in self.TIERS:
            if percent < bound:
                return PartialScore(points, reason)
        return NO_SCORE


class SupplierScorer(SimilarityScorer):
    """
    Supplier name matching against counterpart and description.

    Ordered fallback: containment in the counterpart name, containment in
    the description, then word overlap. Names that only differ in
    punctuation or spacing (ACME SRL, ACME S.r.l.) count as full overlap.
    """

    name = "supplier"
    max_points = 30

    def __init__(self, min_token_length: int = 3):
        """
        Initialize with the word length threshold.

        Args:
            min_token_length: Shortest word counted as a shared word
        """
        self.min_token_length = min_token_length

    def score(self, transaction: Transaction, expense: Expense) -> PartialScore:
        """Score supplier name similarity."""
        supplier = normalize_text(expense.supplier_name)
        if not supplier:
            return NO_SCORE

        counterpart = normalize_text(transaction.counterpart_name)
        description = normalize_text(transaction.description)

        if counterpart and _contains_either(counterpart, supplier):
            return PartialScore(30, "Supplier matches counterpart name")

        if description and _contains_either(description, supplier):
            return PartialScore(25, "Supplier found in description")

        overlap = self.word_overlap(counterpart or description, supplier)
        if overlap > 0.6:
            return PartialScore(20, "Similar supplier name")
        if overlap > 0.3:
            return PartialScore(10, "Possible supplier match")
        return NO_SCORE

    def word_overlap(self, first: str, second: str) -> float:
        """
        Share of common words relative to the longer text.

        Returns:
            Ratio between 0.0 and 1.0
        """
        words1 = set(tokenize(first))
        words2 = set(tokenize(second))
        if not words1 or not words2:
            return 0.0

        compact1 = "".join(tokenize(first))
        compact2 = "".join(tokenize(second))
        shorter = min(compact1, compact2, key=len)
        if len(shorter) >= self.min_token_length and _contains_either(compact1, compact2):
            return 1.0

        common = {w for w in words1 & words2 if len(w) >= self.min_token_length}
        return len(common) / max(len(words1), len(words2))


class ReferenceScorer(SimilarityScorer):
    """Invoice/receipt number matching."""

    name = "reference"
    max_points = 20

    def score(self, transaction: Transaction, expense: Expense) -> PartialScore:
        """Award points when any reference overlaps."""
        transaction_refs = extract_references(transaction.description)
        if not transaction_refs:
            return NO_SCORE

        expense_refs = extract_references(expense.description) | extract_references(
            expense.receipt_number
        )

        for t_ref in transaction_refs:
            for e_ref in expense_refs:
                if t_ref in e_ref or e_ref in t_ref:
                    return PartialScore(self.max_points, "Invoice/reference number match")
        return NO_SCORE


class SemanticScorer(SimilarityScorer):
    """Description word overlap."""

    name = "semantic"
    max_points = 15

    def __init__(self, min_token_length: int = 3):
        """
        Args:
            min_token_length: Only words longer than this are compared
        """
        self.min_token_length = min_token_length

    def score(self, transaction: Transaction, expense: Expense) -> PartialScore:
        """Score based on the percentage of shared description words."""
        similarity = self.similarity(transaction.description, expense.description)

        if similarity > 50:
            return PartialScore(15, "Very similar descriptions")
        if similarity > 25:
            return PartialScore(10, "Similar descriptions")
        if similarity > 10:
            return PartialScore(5, "Some words in common")
        return NO_SCORE

    def similarity(self, first: Optional[str], second: Optional[str]) -> float:
        """Shared words as a percentage of the larger word set."""
        words1 = set(tokenize(first, self.min_token_length + 1))
        words2 = set(tokenize(second, self.min_token_length + 1))
        if not words1 or not words2:
            return 0.0
        return len(words1 & words2) / max(len(words1), len(words2)) * 100


class DateScorer(SimilarityScorer):
    """Booking date proximity."""

    name = "date"
    max_points = 10

    # (max days, points, reason), checked in order
    TIERS = (
        (0, 10, "Same date"),
        (3, 8, "Within 3 days"),
        (7, 5, "Within a week"),
        (30, 3, "Within a month"),
    )

    def score(self, transaction: Transaction, expense: Expense) -> PartialScore:
        """Score decreases with the day difference."""
        days = abs((transaction.date - expense.date).days)
        for max_days, points, reason in self.TIERS:
            if days <= max_days:
                return PartialScore(points, reason)
        return NO_SCORE


class CategoryScorer(SimilarityScorer):
    """Category equality."""

    name = "category"
    max_points = 5

    def score(self, transaction: Transaction, expense: Expense) -> PartialScore:
        t_category = (transaction.category or "").strip().casefold()
        e_category = (expense.category or "").strip().casefold()
        if t_category and t_category == e_category:
            return PartialScore(self.max_points, "Category match")
        return NO_SCORE


def _contains_either(first: str, second: str) -> bool:
    return first in second or second in first


def default_scorers(min_token_length: int = 3) -> list[SimilarityScorer]:
    """
    Build the scorers in their fixed evaluation order.

    The order determines the order of reasons on every candidate.
    """
    return [
        AmountScorer(),
        SupplierScorer(min_token_length=min_token_length),
        ReferenceScorer(),
        SemanticScorer(min_token_length=min_token_length),
        DateScorer(),
        CategoryScorer(),
    ]
