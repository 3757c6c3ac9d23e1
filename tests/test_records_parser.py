"""Tests for the normalized records CSV parser."""

from datetime import date
from decimal import Decimal

import pytest

from expense_recon.config import ReconConfig
from expense_recon.models.records import ApprovalState
from expense_recon.parsers.records_parser import RecordsParser
from expense_recon.utils.exceptions import RecordsParseError

TRANSACTIONS_CSV = """id,date,amount,description,counterpart_name,category,reconciled,expense_id
T1,2024-03-10,-120.00,Fattura 4521 ACME Srl,ACME Srl,,,
T2,2024/03/11,"-1.234,56",Affitto ufficio,,rent,yes,E7
T3,invalid,-10.00,Broken date,,,,
T4,2024-03-12,,Missing amount,,,,
,2024-03-12,-5.00,Missing id,,,,
"""

EXPENSES_CSV = """id,date,amount,description,supplier_name,receipt_number,approval_state,project_id
E1,2024-03-09,120.00,"Fornitura materiali, fattura 4521",ACME Srl,FT-4521,Approved,P1
E2,2024-03-01,€ 900,Affitto,,,,
E3,2024-03-01,50.00,Unknown state,,,archived,
"""


@pytest.fixture
def parser():
    return RecordsParser(ReconConfig())


class TestParseTransactions:
    """Tests for parse_transactions."""

    def test_valid_rows(self, tmp_path, parser):
        path = tmp_path / "transactions.csv"
        path.write_text(TRANSACTIONS_CSV)

        transactions, _ = parser.parse_transactions(path)

        assert [t.id for t in transactions] == ["T1", "T2"]
        first, second = transactions
        assert first.date == date(2024, 3, 10)
        assert first.amount == Decimal("-120.00")
        assert first.counterpart_name == "ACME Srl"
        assert first.category is None
        assert first.reconciled is False
        assert first.currency == "EUR"

        assert second.date == date(2024, 3, 11)
        assert second.amount == Decimal("-1234.56")
        assert second.reconciled is True
        assert second.expense_id == "E7"

    def test_malformed_rows_skipped(self, tmp_path, parser):
        path = tmp_path / "transactions.csv"
        path.write_text(TRANSACTIONS_CSV)

        _, skipped = parser.parse_transactions(path)

        assert [s.record_id for s in skipped] == ["T3", "T4", "row 5"]
        assert all(s.record_type == "transaction" for s in skipped)
        assert "date" in skipped[0].reason
        assert "amount" in skipped[1].reason

    def test_custom_column_names(self, tmp_path):
        config = ReconConfig()
        config.input.records.transaction_columns.update(
            {"id": "ID", "date": "Booking Date", "amount": "Amount"}
        )
        config.input.records.delimiter = ";"
        path = tmp_path / "bank.csv"
        path.write_text("ID;Booking Date;Amount\nB-1;2024-01-31;-42,50\n")

        transactions, skipped = RecordsParser(config).parse_transactions(path)

        assert skipped == []
        assert transactions[0].id == "B-1"
        assert transactions[0].amount == Decimal("-42.50")

    def test_unreadable_file(self, tmp_path, parser):
        with pytest.raises(RecordsParseError):
            parser.parse_transactions(tmp_path / "missing.csv")


class TestParseExpenses:
    """Tests for parse_expenses."""

    def test_expenses(self, tmp_path, parser):
        path = tmp_path / "expenses.csv"
        path.write_text(EXPENSES_CSV, encoding="utf-8")

        expenses, skipped = parser.parse_expenses(path)

        assert [e.id for e in expenses] == ["E1", "E2"]
        acme, rent = expenses
        assert acme.approval_state is ApprovalState.APPROVED
        assert acme.receipt_number == "FT-4521"
        assert acme.project_id == "P1"
        assert acme.description == "Fornitura materiali, fattura 4521"
        assert rent.amount == Decimal("900")
        assert rent.approval_state is ApprovalState.PENDING
        assert rent.is_reconciled is False

        assert [s.record_id for s in skipped] == ["E3"]
        assert "approval state" in skipped[0].reason
