"""Weighted confidence scoring for a transaction/expense pair."""

from dataclasses import dataclass, field
from typing import Optional

from ..models.records import Expense, Transaction
from .scorers import SimilarityScorer, default_scorers

MAX_SCORE = 100


@dataclass
class MatchScore:
    """Combined score for one pair."""

    total: int
    reasons: list[str] = field(default_factory=list)
    breakdown: dict[str, int] = field(default_factory=dict)

    @property
    def raw_total(self) -> int:
        """Sum of the partial scores before clamping."""
        return sum(self.breakdown.values())


class MatchScorer:
    """
    Sums the similarity scorers into a 0-100 confidence score.

    Reasons are always reported in scorer order, so identical inputs give
    identical reason lists.
    """

    def __init__(
        self,
        scorers: Optional[list[SimilarityScorer]] = None,
        min_token_length: int = 3,
    ):
        """
        Args:
            scorers: Scorers in evaluation order (defaults to the standard six)
            min_token_length: Word length threshold for the default scorers
        """
        self.scorers = scorers if scorers is not None else default_scorers(min_token_length)

    def score(self, transaction: Transaction, expense: Expense) -> MatchScore:
        """
        Score a single pair.

        Args:
            transaction: Bank transaction
            expense: Candidate expense

        Returns:
            Clamped total with reasons and per-scorer points
        """
        reasons: list[str] = []
        breakdown: dict[str, int] = {}

        for scorer in self.scorers:
            partial = scorer.score(transaction, expense)
            breakdown[scorer.name] = partial.points
            if partial.points > 0 and partial.reason:
                reasons.append(partial.reason)

        total = max(0, min(sum(breakdown.values()), MAX_SCORE))
        return MatchScore(total=total, reasons=reasons, breakdown=breakdown)
