"""Custom exceptions for the expense reconciliation engine."""


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class ConflictError(ReconciliationError):
    """Transaction or expense is already reconciled."""

    def __init__(self, message: str, transaction_id: str = "", expense_id: str = ""):
        super().__init__(message)
        self.transaction_id = transaction_id
        self.expense_id = expense_id


class RecordNotFoundError(ReconciliationError):
    """Transaction or expense id is unknown to the store."""

    pass


class ValidationError(ReconciliationError):
    """Malformed input record or commit argument."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class RecordsParseError(ReconciliationError):
    """Error reading a transaction or expense records file."""

    pass


class ReportGenerationError(ReconciliationError):
    """Error generating Excel report."""

    pass
