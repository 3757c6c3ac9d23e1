"""Shared fixtures for reconciliation tests."""

from datetime import date
from decimal import Decimal

import pytest

from expense_recon.config import ReconConfig
from expense_recon.ledger.store import InMemoryReconciliationStore
from expense_recon.matching.engine import ReconciliationEngine
from expense_recon.models.records import ApprovalState, Expense, Transaction


def make_transaction(id="T1", amount="-120.00", on=date(2024, 3, 10), **kwargs) -> Transaction:
    """Build a transaction with sensible defaults."""
    kwargs.setdefault("description", "")
    return Transaction(id=id, date=on, amount=Decimal(amount), **kwargs)


def make_expense(id="E1", amount="120.00", on=date(2024, 3, 10), **kwargs) -> Expense:
    """Build an expense with sensible defaults."""
    kwargs.setdefault("description", "")
    kwargs.setdefault("approval_state", ApprovalState.PENDING)
    return Expense(id=id, date=on, amount=Decimal(amount), **kwargs)


@pytest.fixture
def config():
    """Default configuration."""
    return ReconConfig()


@pytest.fixture
def acme_transaction():
    """Bank payment of an ACME invoice."""
    return make_transaction(
        id="T-ACME",
        amount="-120.00",
        description="Fattura 4521 ACME Srl",
    )


@pytest.fixture
def acme_expense():
    """The ACME expense paid by acme_transaction."""
    return make_expense(
        id="E-ACME",
        amount="120.00",
        supplier_name="ACME Srl",
        description="Fornitura materiali, fattura 4521",
    )


@pytest.fixture
def engine(config):
    """Engine without a store (suggestions only)."""
    return ReconciliationEngine(config)


@pytest.fixture
def store(acme_transaction, acme_expense):
    """Store holding the ACME pair plus an unrelated pair."""
    return InMemoryReconciliationStore(
        transactions=[
            acme_transaction,
            make_transaction(id="T-RENT", amount="-900.00", description="Affitto ufficio marzo"),
        ],
        expenses=[
            acme_expense,
            make_expense(
                id="E-RENT",
                amount="900.00",
                supplier_name="Immobiliare Rossi",
                description="Affitto ufficio marzo",
            ),
        ],
    )


@pytest.fixture
def store_engine(config, store):
    """Engine committing into the shared store."""
    return ReconciliationEngine(config, store=store)
