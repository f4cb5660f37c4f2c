"""SQL-backed ledger transaction repository."""

from datetime import datetime
from typing import Sequence
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..models.transaction import EntryType, LedgerTransaction
from ..utils.dates import as_utc
from ..utils.exceptions import NotFoundError
from .database import storage_error, upsert
from .interfaces import LedgerRepository
from .tables import TransactionRow

logger = logging.getLogger(__name__)


class SqlLedgerRepository(LedgerRepository):
    """Ledger transactions stored in the ``transactions`` table."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def fetch_all(self, start: datetime, end: datetime) -> list[LedgerTransaction]:
        stmt = (
            select(TransactionRow)
            .where(TransactionRow.transaction_time.between(as_utc(start), as_utc(end)))
            .order_by(TransactionRow.transaction_time, TransactionRow.id)
        )
        try:
            with self._session_factory() as session:
                rows = session.scalars(stmt).all()
        except SQLAlchemyError as e:
            raise storage_error(e, "error fetching ledger transactions", "ledger.fetch_all") from e

        logger.debug(f"Fetched {len(rows)} ledger transactions between {start} and {end}")
        return [_to_domain(row) for row in rows]

    def save(self, transaction: LedgerTransaction) -> None:
        self.save_batch([transaction])

    def save_batch(self, transactions: Sequence[LedgerTransaction]) -> None:
        if not transactions:
            return

        rows = [
            {
                "id": txn.id,
                "transaction_time": as_utc(txn.transaction_time),
                "amount": txn.amount,
                "type": txn.type.value,
                "description": txn.description,
            }
            for txn in transactions
        ]
        try:
            with self._session_factory.begin() as session:
                upsert(
                    session,
                    TransactionRow.__table__,
                    rows,
                    key_columns=("id", "transaction_time"),
                    update_columns=("amount", "type", "description"),
                )
        except SQLAlchemyError as e:
            raise storage_error(e, "error saving ledger transactions", "ledger.save_batch") from e

    def find_by_id(self, transaction_id: str) -> LedgerTransaction:
        stmt = select(TransactionRow).where(TransactionRow.id == transaction_id).limit(1)
        try:
            with self._session_factory() as session:
                row = session.scalars(stmt).first()
        except SQLAlchemyError as e:
            raise storage_error(e, "error finding ledger transaction", "ledger.find_by_id") from e

        if row is None:
            raise NotFoundError(f"transaction {transaction_id!r} not found", stage="ledger.find_by_id")
        return _to_domain(row)


def _to_domain(row: TransactionRow) -> LedgerTransaction:
    return LedgerTransaction(
        id=row.id,
        amount=row.amount,
        transaction_time=as_utc(row.transaction_time),
        type=EntryType(row.type),
        description=row.description or "",
    )
