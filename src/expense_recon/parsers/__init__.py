"""Loaders for normalized transaction and expense records."""

from .records_parser import RecordsParser

__all__ = ["RecordsParser"]
