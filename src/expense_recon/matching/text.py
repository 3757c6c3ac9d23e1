"""
Text helpers shared by the similarity scorers.

Normalization, tokenization and invoice/receipt reference extraction.
"""

from typing import Optional
import re

# Any run of non-alphanumeric characters separates tokens
_SEPARATOR_RE = re.compile(r"[\W_]+", re.UNICODE)

# Applied in order; each captures a number that may contain one slash
REFERENCE_PATTERNS = (
    re.compile(r"\b(?:fattura|ft|inv|invoice)[:\s#]*(\d+(?:/\d+)?)", re.IGNORECASE),
    re.compile(r"\b(?:n\.?|num|nr)[:\s]*(\d+(?:/\d+)?)", re.IGNORECASE),
    re.compile(r"\b(\d{4,})\b"),
)


def normalize_text(text: Optional[str]) -> str:
    """
    Case-fold text and collapse separators to single spaces.

    >>> normalize_text("ACME S.r.l. - Fattura #12")
    'acme s r l fattura 12'
    """
    if not text:
        return ""
    return " ".join(tokenize(text))


def tokenize(text: Optional[str], min_length: int = 1) -> list[str]:
    """
    Split text into lower-case alphanumeric tokens.

    Args:
        text: Raw text
        min_length: Drop tokens shorter than this

    Returns:
        Tokens in their original order
    """
    if not text:
        return []
    return [
        token
        for token in _SEPARATOR_RE.split(text.casefold())
        if token and len(token) >= min_length
    ]


def extract_references(text: Optional[str]) -> set[str]:
    """
    Extract invoice/receipt reference numbers from free text.

    Args:
        text: Description, receipt number or similar

    Returns:
        Digit-only reference strings
    """
    if not text:
        return set()

    references: set[str] = set()
    for pattern in REFERENCE_PATTERNS:
        for match in pattern.finditer(text):
            digits = re.sub(r"\D", "", match.group(1))
            if digits:
                references.add(digits)
    return references
