"""
Capability interfaces for the stores the core reads from and writes to.
Services receive implementations at construction.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, BinaryIO, ContextManager, Sequence

from ..models.transaction import (
    BankStatementLine,
    LedgerTransaction,
    ReconciliationSummary,
)


class LedgerRepository(ABC):
    """Access to internal ledger transactions."""

    @abstractmethod
    def fetch_all(self, start: datetime, end: datetime) -> list[LedgerTransaction]:
        """Transactions with ``start <= transaction_time <= end``, ordered by time then id."""
        pass

    @abstractmethod
    def save(self, transaction: LedgerTransaction) -> None:
        pass

    @abstractmethod
    def save_batch(self, transactions: Sequence[LedgerTransaction]) -> None:
        """Persist a whole batch in one commit."""
        pass

    @abstractmethod
    def find_by_id(self, transaction_id: str) -> LedgerTransaction:
        pass


class BankStatementRepository(ABC):
    """Access to bank statement lines."""

    @abstractmethod
    def fetch_all(self, start: datetime, end: datetime) -> list[BankStatementLine]:
        """Lines dated within ``[start, end]``, ordered by date then id."""
        pass

    @abstractmethod
    def save(self, statement: BankStatementLine) -> None:
        pass

    @abstractmethod
    def save_batch(self, statements: Sequence[BankStatementLine]) -> None:
        """Persist a whole batch in one commit."""
        pass

    @abstractmethod
    def find_by_id(self, statement_id: str) -> BankStatementLine:
        pass


class ReconResultRepository(ABC):
    """Storage of reconciliation summaries and their unmatched records."""

    @abstractmethod
    def store_summary(
        self, summary: ReconciliationSummary, start_date: datetime, end_date: datetime
    ) -> None:
        """Write the summary row and both unmatched lists atomically."""
        pass

    @abstractmethod
    def get_summary(self, task_id: str) -> Any:
        pass

    @abstractmethod
    def list_summaries(self, limit: int, offset: int) -> tuple[list[Any], int]:
        pass

    @abstractmethod
    def get_unmatched_transactions(
        self, task_id: str, limit: int, offset: int
    ) -> tuple[list[Any], int]:
        pass

    @abstractmethod
    def get_unmatched_bank_statements(
        self, task_id: str, limit: int, offset: int
    ) -> tuple[list[Any], int]:
        pass


class ObjectStore(ABC):
    """Read access to uploaded files by object reference."""

    @abstractmethod
    def open(self, object_ref: str) -> ContextManager[BinaryIO]:
        """Open an object as a binary stream."""
        pass

    @abstractmethod
    def exists(self, object_ref: str) -> bool:
        pass
