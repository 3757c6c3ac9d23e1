"""Bank transaction to project expense reconciliation."""

__version__ = "0.1.0"
