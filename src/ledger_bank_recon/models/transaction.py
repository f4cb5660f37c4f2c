"""Data models for ledger transactions, bank statement lines and results."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Union

TRANSACTION_FILE = "transactions.csv"
BANK_STATEMENT_FILE = "bank_statement.csv"


class EntryType(Enum):
    """Ledger entry classification."""

    CREDIT = "CREDIT"  # Money in
    DEBIT = "DEBIT"  # Money out, keyed and summed negated


@dataclass
class LedgerTransaction:
    """
    Internal ledger record.

    ``amount`` is kept at full precision exactly as ingested; the direction
    of money lives in ``type``.
    """

    id: str
    amount: Decimal
    transaction_time: datetime
    type: EntryType = EntryType.CREDIT
    description: str = ""

    @property
    def is_debit(self) -> bool:
        return self.type is EntryType.DEBIT

    @property
    def signed_amount(self) -> Decimal:
        """Amount with DEBIT entries negated."""
        return -self.amount if self.is_debit else self.amount


@dataclass
class BankStatementLine:
    """Externally reported bank statement line with a single signed amount."""

    id: str
    amount: Decimal
    date: date
    reference: str = ""
    bank_name: str = ""

    @property
    def signed_amount(self) -> Decimal:
        return self.amount


Record = Union[LedgerTransaction, BankStatementLine]


@dataclass
class ReconciliationSummary:
    """Outcome of one reconciliation run."""

    task_id: str = ""
    total_matched: int = 0
    total_discrepancy: Decimal = Decimal("0")
    unmatched_internal: list[LedgerTransaction] = field(default_factory=list)
    unmatched_bank: list[BankStatementLine] = field(default_factory=list)

    @property
    def total_transaction(self) -> int:
        """Matched pairs plus every unmatched record on either side."""
        return self.total_matched + len(self.unmatched_internal) + len(self.unmatched_bank)

    @property
    def total_unmatched_internal(self) -> int:
        return len(self.unmatched_internal)

    @property
    def total_unmatched_bank(self) -> int:
        return len(self.unmatched_bank)
