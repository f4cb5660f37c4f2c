"""
Amount-bucketed multiset matching engine.
Pairs ledger transactions with bank statement lines by count per amount key.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional
import logging

from ..models.transaction import (
    BankStatementLine,
    LedgerTransaction,
    ReconciliationSummary,
)
from .index import RecordIndex
from .selection import SelectionPolicy, TailSelection

logger = logging.getLogger(__name__)


@dataclass
class MatchOutcome:
    """Raw result of matching two record indexes."""

    matched: int = 0
    unmatched_ledger: list[LedgerTransaction] = field(default_factory=list)
    unmatched_bank: list[BankStatementLine] = field(default_factory=list)
    discrepancy: Decimal = Decimal("0")

    @property
    def total_transaction(self) -> int:
        return self.matched + len(self.unmatched_ledger) + len(self.unmatched_bank)


class MatchingEngine:
    """
    Matches ledger and bank records that share a canonical amount key.

    Within a key the smaller side is fully matched; the surplus on the larger
    side is left unmatched, chosen by the selection policy. Keys are visited
    in first-seen order so identical input always yields identical output.
    """

    def __init__(self, selection: Optional[SelectionPolicy] = None):
        """
        Initialize the matching engine.

        Args:
            selection: Policy choosing surplus records; tail selection by default
        """
        self.selection = selection or TailSelection()

    def match(
        self,
        ledger_index: RecordIndex[LedgerTransaction],
        bank_index: RecordIndex[BankStatementLine],
    ) -> MatchOutcome:
        """
        Match two indexes.

        Args:
            ledger_index: Index over ledger transactions
            bank_index: Index over bank statement lines

        Returns:
            Match outcome with matched count, surplus on each side and the
            signed discrepancy
        """
        outcome = MatchOutcome()

        for key, ledger_count in ledger_index.counts.items():
            bank_count = bank_index.count(key)
            outcome.matched += min(ledger_count, bank_count)

            if ledger_count > bank_count:
                outcome.unmatched_ledger.extend(
                    self.selection.select(ledger_index.lists[key], ledger_count - bank_count)
                )

        for key, bank_count in bank_index.counts.items():
            ledger_count = ledger_index.count(key)
            if bank_count > ledger_count:
                outcome.unmatched_bank.extend(
                    self.selection.select(bank_index.lists[key], bank_count - ledger_count)
                )

        outcome.discrepancy = sum_discrepancy(outcome.unmatched_bank, outcome.unmatched_ledger)
        return outcome

    def reconcile(
        self,
        ledger_records: Iterable[LedgerTransaction],
        bank_records: Iterable[BankStatementLine],
        task_id: str = "",
    ) -> ReconciliationSummary:
        """
        Index both record sets, match them and build the run summary.

        Args:
            ledger_records: Ledger transactions in arrival order
            bank_records: Bank statement lines in arrival order
            task_id: Task the summary belongs to

        Returns:
            Reconciliation summary
        """
        start_time = datetime.now()

        ledger_index = RecordIndex.build(ledger_records)
        bank_index = RecordIndex.build(bank_records)
        logger.info(
            f"Matching {len(ledger_index)} ledger txns across {len(ledger_index.counts)} keys "
            f"against {len(bank_index)} bank lines across {len(bank_index.counts)} keys"
        )

        outcome = self.match(ledger_index, bank_index)

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Matching complete in {elapsed:.2f}s: {outcome.matched} matched, "
            f"{len(outcome.unmatched_ledger)} ledger-only, "
            f"{len(outcome.unmatched_bank)} bank-only, discrepancy {outcome.discrepancy}"
        )

        return ReconciliationSummary(
            task_id=task_id,
            total_matched=outcome.matched,
            total_discrepancy=outcome.discrepancy,
            unmatched_internal=outcome.unmatched_ledger,
            unmatched_bank=outcome.unmatched_bank,
        )


def sum_discrepancy(
    unmatched_bank: Iterable[BankStatementLine],
    unmatched_ledger: Iterable[LedgerTransaction],
) -> Decimal:
    """Signed sum of every unmatched amount; DEBIT ledger entries count negative."""
    total = sum((line.signed_amount for line in unmatched_bank), Decimal("0"))
    return total + sum((txn.signed_amount for txn in unmatched_ledger), Decimal("0"))
