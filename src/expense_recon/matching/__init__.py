"""Matching engine, scorers and reconciliation policy."""

from .engine import ReconciliationEngine
from .candidates import CandidateGenerator, CandidateBatch
from .policy import ReconciliationPolicy
from .scorer import MatchScorer, MatchScore
from .scorers import (
    SimilarityScorer,
    PartialScore,
    AmountScorer,
    SupplierScorer,
    ReferenceScorer,
    SemanticScorer,
    DateScorer,
    CategoryScorer,
)
from .categorizer import Categorizer, KeywordCategorizer, categorize_transactions
from .text import normalize_text, tokenize, extract_references

__all__ = [
    "ReconciliationEngine",
    "CandidateGenerator",
    "CandidateBatch",
    "ReconciliationPolicy",
    "MatchScorer",
    "MatchScore",
    "SimilarityScorer",
    "PartialScore",
    "AmountScorer",
    "SupplierScorer",
    "ReferenceScorer",
    "SemanticScorer",
    "DateScorer",
    "CategoryScorer",
    "Categorizer",
    "KeywordCategorizer",
    "categorize_transactions",
    "normalize_text",
    "tokenize",
    "extract_references",
]
