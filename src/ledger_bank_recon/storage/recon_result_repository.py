"""
Reconciliation result repository.

A summary and both of its unmatched lists are written in one transaction;
the unmatched lists go out in fixed-size chunks, one batch insert each.
"""

from datetime import datetime
from typing import Sequence
import logging

from sqlalchemy import func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..models.transaction import (
    BankStatementLine,
    LedgerTransaction,
    ReconciliationSummary,
)
from ..utils.chunking import chunk
from ..utils.dates import as_utc
from ..utils.exceptions import NotFoundError
from .database import storage_error
from .interfaces import ReconResultRepository
from .tables import ReconSummaryRow, UnmatchedBankStatementRow, UnmatchedTransactionRow

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000


class SqlReconResultRepository(ReconResultRepository):
    """Summaries in ``recon_summary``; unmatched records in their own tables."""

    def __init__(self, session_factory: sessionmaker, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize the repository.

        Args:
            session_factory: Session factory bound to the reconciliation database
            chunk_size: Rows per batch insert for unmatched lists
        """
        self._session_factory = session_factory
        self.chunk_size = chunk_size

    def store_summary(
        self, summary: ReconciliationSummary, start_date: datetime, end_date: datetime
    ) -> None:
        """
        Persist a summary with its unmatched records.

        Everything is committed once at the end; any failure rolls the whole
        write back so no partial summary is ever visible.

        Raises:
            StorageError: If any write fails
        """
        try:
            with self._session_factory.begin() as session:
                self._insert_summary(session, summary, start_date, end_date)
                self._insert_unmatched_transactions(
                    session, summary.task_id, summary.unmatched_internal
                )
                self._insert_unmatched_bank_statements(
                    session, summary.task_id, summary.unmatched_bank
                )
        except SQLAlchemyError as e:
            raise storage_error(e, "error storing reconciliation summary", "store_summary") from e

        logger.info(
            f"Stored summary {summary.task_id}: {summary.total_unmatched_internal} unmatched "
            f"internal, {summary.total_unmatched_bank} unmatched bank"
        )

    def _insert_summary(
        self,
        session: Session,
        summary: ReconciliationSummary,
        start_date: datetime,
        end_date: datetime,
    ) -> None:
        session.add(
            ReconSummaryRow(
                id=summary.task_id,
                matched=summary.total_matched,
                discrepancy=summary.total_discrepancy,
                total_transaction=summary.total_transaction,
                total_unmatched_bank=summary.total_unmatched_bank,
                total_unmatched_internal=summary.total_unmatched_internal,
                start_date=as_utc(start_date),
                end_date=as_utc(end_date),
            )
        )
        # Summary row must exist before its unmatched rows reference it
        session.flush()

    def _insert_unmatched_transactions(
        self, session: Session, task_id: str, transactions: Sequence[LedgerTransaction]
    ) -> None:
        if not transactions:
            return

        for part in chunk(transactions, self.chunk_size):
            rows = [
                {
                    "task_id": task_id,
                    "transaction_id": txn.id,
                    "amount": txn.amount,
                    "transaction_time": as_utc(txn.transaction_time),
                    "type": txn.type.value,
                    "description": txn.description,
                }
                for txn in part
            ]
            self._insert_chunk(session, UnmatchedTransactionRow, rows)

    def _insert_unmatched_bank_statements(
        self, session: Session, task_id: str, statements: Sequence[BankStatementLine]
    ) -> None:
        if not statements:
            return

        for part in chunk(statements, self.chunk_size):
            rows = [
                {
                    "task_id": task_id,
                    "statement_id": stmt.id,
                    "amount": stmt.amount,
                    "date": stmt.date,
                    "reference": stmt.reference,
                    "bank_name": stmt.bank_name,
                }
                for stmt in part
            ]
            self._insert_chunk(session, UnmatchedBankStatementRow, rows)

    def _insert_chunk(self, session: Session, entity: type, rows: list[dict]) -> None:
        """Write one chunk with a single batch insert."""
        session.execute(insert(entity), rows)
        logger.debug(f"Inserted {len(rows)} rows into {entity.__tablename__}")

    def get_summary(self, task_id: str) -> ReconSummaryRow:
        try:
            with self._session_factory() as session:
                row = session.get(ReconSummaryRow, task_id)
        except SQLAlchemyError as e:
            raise storage_error(e, "error loading summary", "get_summary") from e

        if row is None:
            raise NotFoundError(f"summary for task {task_id!r} not found", stage="get_summary")
        return row

    def list_summaries(self, limit: int, offset: int) -> tuple[list[ReconSummaryRow], int]:
        stmt = (
            select(ReconSummaryRow)
            .order_by(ReconSummaryRow.created_at.desc(), ReconSummaryRow.id.desc())
            .limit(limit)
            .offset(offset)
        )
        try:
            with self._session_factory() as session:
                rows = list(session.scalars(stmt).all())
                total = session.scalar(select(func.count()).select_from(ReconSummaryRow))
        except SQLAlchemyError as e:
            raise storage_error(e, "error listing summaries", "list_summaries") from e
        return rows, total or 0

    def get_unmatched_transactions(
        self, task_id: str, limit: int, offset: int
    ) -> tuple[list[UnmatchedTransactionRow], int]:
        stmt = (
            select(UnmatchedTransactionRow)
            .where(UnmatchedTransactionRow.task_id == task_id)
            .order_by(
                UnmatchedTransactionRow.transaction_time.desc(), UnmatchedTransactionRow.id.desc()
            )
            .limit(limit)
            .offset(offset)
        )
        count_stmt = (
            select(func.count())
            .select_from(UnmatchedTransactionRow)
            .where(UnmatchedTransactionRow.task_id == task_id)
        )
        try:
            with self._session_factory() as session:
                rows = list(session.scalars(stmt).all())
                total = session.scalar(count_stmt)
        except SQLAlchemyError as e:
            raise storage_error(
                e, "error listing unmatched transactions", "get_unmatched_transactions"
            ) from e
        return rows, total or 0

    def get_unmatched_bank_statements(
        self, task_id: str, limit: int, offset: int
    ) -> tuple[list[UnmatchedBankStatementRow], int]:
        stmt = (
            select(UnmatchedBankStatementRow)
            .where(UnmatchedBankStatementRow.task_id == task_id)
            .order_by(UnmatchedBankStatementRow.date.desc(), UnmatchedBankStatementRow.id.desc())
            .limit(limit)
            .offset(offset)
        )
        count_stmt = (
            select(func.count())
            .select_from(UnmatchedBankStatementRow)
            .where(UnmatchedBankStatementRow.task_id == task_id)
        )
        try:
            with self._session_factory() as session:
                rows = list(session.scalars(stmt).all())
                total = session.scalar(count_stmt)
        except SQLAlchemyError as e:
            raise storage_error(
                e, "error listing unmatched bank statements", "get_unmatched_bank_statements"
            ) from e
        return rows, total or 0
