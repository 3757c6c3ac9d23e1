"""
Keyword categorization for bank transactions.

Any callable mapping text to (category, confidence) can be plugged into the
engine; KeywordCategorizer is the rule-table implementation.
"""

from dataclasses import replace
from typing import Callable, Optional
import logging

from ..config import CategorizationConfig, CategorizationRule, get_default_config
from ..models.records import Transaction
from .text import normalize_text

logger = logging.getLogger(__name__)

Categorizer = Callable[[str], tuple[str, float]]


class KeywordCategorizer:
    """
    First matching keyword rule wins, in priority order.

    Confidence decreases with rule priority: 0.8 - priority * 0.1.
    """

    def __init__(
        self,
        rules: list[CategorizationRule],
        fallback_category: str = "other",
        fallback_confidence: float = 0.3,
    ):
        self.rules = sorted(rules, key=lambda r: r.priority)
        self.fallback_category = fallback_category
        self.fallback_confidence = fallback_confidence

    @classmethod
    def from_config(cls, config: CategorizationConfig) -> "KeywordCategorizer":
        """Build from configuration, using the built-in rule table when none is set."""
        rules = config.rules
        if not rules:
            rules = [
                CategorizationRule(**r)
                for r in get_default_config()["categorization"]["rules"]
            ]
        return cls(
            rules,
            fallback_category=config.fallback_category,
            fallback_confidence=config.fallback_confidence,
        )

    def __call__(self, text: str) -> tuple[str, float]:
        normalized = normalize_text(text)
        for rule in self.rules:
            if normalize_text(rule.keyword) in normalized:
                confidence = max(0.0, round(0.8 - rule.priority * 0.1, 2))
                return rule.category, confidence
        return self.fallback_category, self.fallback_confidence


def categorize_transactions(
    transactions: list[Transaction],
    categorizer: Categorizer,
    fallback_category: Optional[str] = "other",
) -> list[Transaction]:
    """
    Fill in missing transaction categories.

    Transactions that already carry a category are returned unchanged.
    Fallback results are not applied, so an unknown text stays uncategorized.

    Args:
        transactions: Input transactions (not modified)
        categorizer: Text categorization strategy
        fallback_category: Category value meaning "no rule matched"

    Returns:
        New list with categorized copies where a rule matched
    """
    result: list[Transaction] = []
    filled = 0

    for txn in transactions:
        if txn.category:
            result.append(txn)
            continue

        text = " ".join(filter(None, [txn.description, txn.counterpart_name]))
        category, confidence = categorizer(text)
        if category and category != fallback_category:
            result.append(replace(txn, category=category))
            filled += 1
            logger.debug(f"Transaction {txn.id} categorized as {category} ({confidence:.2f})")
        else:
            result.append(txn)

    if filled:
        logger.info(f"Categorized {filled} of {len(transactions)} transactions")
    return result
