"""Utility modules."""

from .exceptions import (
    ReconciliationError,
    ConflictError,
    RecordNotFoundError,
    ValidationError,
    ConfigurationError,
    RecordsParseError,
    ReportGenerationError,
)
from .logging_config import setup_logging, level_from_name

__all__ = [
    "ReconciliationError",
    "ConflictError",
    "RecordNotFoundError",
    "ValidationError",
    "ConfigurationError",
    "RecordsParseError",
    "ReportGenerationError",
    "setup_logging",
    "level_from_name",
]
