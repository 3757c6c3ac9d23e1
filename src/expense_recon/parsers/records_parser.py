"""
Loader for normalized transaction and expense record files.
Reads CSV exports with one record per row and converts them to models.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional
import logging

import pandas as pd

from ..models.records import Expense, SkippedRecord, Transaction
from ..config import ReconConfig
from ..utils.exceptions import RecordsParseError, ValidationError

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"true", "1", "yes", "y", "t", "x"}


class RecordsParser:
    """
    Parser for normalized record CSV files.

    Malformed rows are skipped and reported rather than failing the file.
    """

    def __init__(self, config: ReconConfig):
        """
        Initialize the parser with configuration.

        Args:
            config: Application configuration object
        """
        self.config = config
        self.records_config = config.input.records

    def parse_transactions(
        self, file_path: Path
    ) -> tuple[list[Transaction], list[SkippedRecord]]:
        """
        Parse a transaction records file.

        Args:
            file_path: Path to the CSV file

        Returns:
            Tuple of (transactions, skipped rows)

        Raises:
            RecordsParseError: If the file cannot be read
        """
        df = self._read_csv(file_path)
        columns = self.records_config.transaction_columns

        transactions: list[Transaction] = []
        skipped: list[SkippedRecord] = []

        for idx, row in df.iterrows():
            try:
                txn = self._transaction_from_row(row, columns)
                txn.validate()
            except ValidationError as e:
                skipped.append(self._skip("transaction", row, columns, int(idx), e))
                continue
            transactions.append(txn)

        logger.info(
            f"Extracted {len(transactions)} transactions from {file_path.name}"
            f" ({len(skipped)} skipped)"
        )
        return transactions, skipped

    def parse_expenses(self, file_path: Path) -> tuple[list[Expense], list[SkippedRecord]]:
        """
        Parse an expense records file.

        Args:
            file_path: Path to the CSV file

        Returns:
            Tuple of (expenses, skipped rows)

        Raises:
            RecordsParseError: If the file cannot be read
        """
        df = self._read_csv(file_path)
        columns = self.records_config.expense_columns

        expenses: list[Expense] = []
        skipped: list[SkippedRecord] = []

        for idx, row in df.iterrows():
            try:
                expense = self._expense_from_row(row, columns)
                expense.validate()
            except ValidationError as e:
                skipped.append(self._skip("expense", row, columns, int(idx), e))
                continue
            expenses.append(expense)

        logger.info(
            f"Extracted {len(expenses)} expenses from {file_path.name}"
            f" ({len(skipped)} skipped)"
        )
        return expenses, skipped

    def _read_csv(self, file_path: Path) -> pd.DataFrame:
        logger.info(f"Parsing records file: {file_path}")
        try:
            return pd.read_csv(
                file_path,
                encoding=self.records_config.encoding,
                delimiter=self.records_config.delimiter,
                dtype=str,
            )
        except Exception as e:
            logger.error(f"Failed to read CSV file: {e}")
            raise RecordsParseError(f"Failed to read CSV file {file_path}: {e}") from e

    def _transaction_from_row(self, row: pd.Series, columns: dict[str, str]) -> Transaction:
        """Convert a DataFrame row to a Transaction."""
        record_id = self._text(row, columns, "id")
        if not record_id:
            raise ValidationError("Transaction is missing an id")

        return Transaction(
            id=record_id,
            date=self._required_date(row, columns, record_id),
            amount=self._required_amount(row, columns, record_id),
            currency=self._text(row, columns, "currency") or "EUR",
            description=self._text(row, columns, "description") or "",
            counterpart_name=self._text(row, columns, "counterpart_name"),
            reference_number=self._text(row, columns, "reference_number"),
            category=self._text(row, columns, "category"),
            project_id=self._text(row, columns, "project_id"),
            reconciled=self._flag(self._text(row, columns, "reconciled")),
            expense_id=self._text(row, columns, "expense_id"),
        )

    def _expense_from_row(self, row: pd.Series, columns: dict[str, str]) -> Expense:
        """Convert a DataFrame row to an Expense."""
        record_id = self._text(row, columns, "id")
        if not record_id:
            raise ValidationError("Expense is missing an id")

        return Expense(
            id=record_id,
            date=self._required_date(row, columns, record_id),
            amount=self._required_amount(row, columns, record_id),
            description=self._text(row, columns, "description") or "",
            supplier_name=self._text(row, columns, "supplier_name"),
            receipt_number=self._text(row, columns, "receipt_number"),
            category=self._text(row, columns, "category"),
            approval_state=self._text(row, columns, "approval_state") or "pending",
            project_id=self._text(row, columns, "project_id"),
            reconciled_transaction_id=self._text(row, columns, "reconciled_transaction_id"),
        )

    def _skip(
        self,
        record_type: str,
        row: pd.Series,
        columns: dict[str, str],
        idx: int,
        error: Exception,
    ) -> SkippedRecord:
        record_id = self._text(row, columns, "id") or f"row {idx + 1}"
        logger.warning(f"Row {idx}: skipping {record_type} {record_id}: {error}")
        return SkippedRecord(record_type=record_type, record_id=record_id, reason=str(error))

    def _text(self, row: pd.Series, columns: dict[str, str], field: str) -> Optional[str]:
        """Return a stripped cell value, None for missing or blank cells."""
        column = columns.get(field, field)
        value = row.get(column)
        if value is None or pd.isna(value):
            return None
        text = str(value).strip()
        return text or None

    def _required_date(self, row: pd.Series, columns: dict[str, str], record_id: str) -> date:
        raw = self._text(row, columns, "date")
        parsed = self._parse_date(raw)
        if parsed is None:
            raise ValidationError(f"{record_id}: unparseable date {raw!r}")
        return parsed

    def _required_amount(
        self, row: pd.Series, columns: dict[str, str], record_id: str
    ) -> Decimal:
        raw = self._text(row, columns, "amount")
        parsed = self._parse_amount(raw)
        if parsed is None:
            raise ValidationError(f"{record_id}: missing or invalid amount {raw!r}")
        return parsed

    def _parse_date(self, date_value: Any) -> Optional[date]:
        """
        Parse a date value from the CSV.

        Args:
            date_value: Date string

        Returns:
            Python date object or None
        """
        if date_value is None:
            return None

        try:
            return datetime.strptime(str(date_value), self.records_config.date_format).date()
        except ValueError:
            # Try pandas parser as fallback
            try:
                parsed = pd.to_datetime(date_value)
            except (ValueError, TypeError):
                return None
            return None if pd.isna(parsed) else parsed.date()

    def _parse_amount(self, amount_value: Optional[str]) -> Optional[Decimal]:
        """
        Parse an amount value from the CSV.

        Accepts currency symbols and either "1,234.56" or "1.234,56" grouping.

        Args:
            amount_value: Amount string

        Returns:
            Decimal amount or None
        """
        if not amount_value:
            return None

        value = amount_value.replace("€", "").replace("$", "").replace(" ", "").strip()

        if "," in value and "." in value:
            # The right-most separator is the decimal one
            if value.rfind(",") > value.rfind("."):
                value = value.replace(".", "").replace(",", ".")
            else:
                value = value.replace(",", "")
        elif "," in value:
            value = value.replace(",", ".")

        try:
            amount = Decimal(value)
        except (InvalidOperation, ValueError):
            return None
        return amount if amount.is_finite() else None

    @staticmethod
    def _flag(value: Optional[str]) -> bool:
        return bool(value) and value.strip().lower() in _TRUE_VALUES
