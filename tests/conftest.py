"""Shared fixtures and helpers for the reconciliation test suite."""

from datetime import date, datetime, timezone
from decimal import Decimal
import os

import pytest

from ledger_bank_recon.config import DatabaseConfig
from ledger_bank_recon.models.transaction import (
    BankStatementLine,
    EntryType,
    LedgerTransaction,
)
from ledger_bank_recon.storage.bank_repository import SqlBankStatementRepository
from ledger_bank_recon.storage.database import (
    create_db_and_tables,
    create_engine_from_config,
    create_session_factory,
)
from ledger_bank_recon.storage.ledger_repository import SqlLedgerRepository
from ledger_bank_recon.storage.recon_result_repository import SqlReconResultRepository

JAN_1 = datetime(2024, 1, 1, tzinfo=timezone.utc)
JAN_31 = datetime(2024, 1, 31, 23, 59, 59, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep RECON_* variables from the outer shell out of every test."""
    for name in list(os.environ):
        if name.upper().startswith("RECON_"):
            monkeypatch.delenv(name)


def _txn(id: str, amount, type: EntryType = EntryType.CREDIT, day: int = 15, **kwargs) -> LedgerTransaction:
    """Helper to create a ledger transaction in January 2024."""
    return LedgerTransaction(
        id=id,
        amount=Decimal(str(amount)),
        transaction_time=datetime(2024, 1, day, 12, 0, tzinfo=timezone.utc),
        type=type,
        **kwargs,
    )


def _line(id: str, amount, day: int = 15, **kwargs) -> BankStatementLine:
    """Helper to create a bank statement line in January 2024."""
    return BankStatementLine(id=id, amount=Decimal(str(amount)), date=date(2024, 1, day), **kwargs)


@pytest.fixture
def engine():
    """In-memory SQLite engine with every table created."""
    e = create_engine_from_config(DatabaseConfig(url="sqlite://"))
    create_db_and_tables(e)
    yield e
    e.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def ledger_repo(session_factory):
    return SqlLedgerRepository(session_factory)


@pytest.fixture
def bank_repo(session_factory):
    return SqlBankStatementRepository(session_factory)


@pytest.fixture
def recon_repo(session_factory):
    return SqlReconResultRepository(session_factory)


@pytest.fixture
def sample_ledger():
    """Two credits of 100 and one debit of 200."""
    return [
        _txn("L1", "100.00"),
        _txn("L2", "100.00"),
        _txn("L3", "200.00", EntryType.DEBIT),
    ]


@pytest.fixture
def sample_bank():
    """Three credits of 100."""
    return [_line("B1", "100.00"), _line("B2", "100.00"), _line("B3", "100.00")]
