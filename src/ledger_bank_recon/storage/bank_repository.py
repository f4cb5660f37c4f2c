"""SQL-backed bank statement repository."""

from datetime import datetime
from typing import Sequence
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..models.transaction import BankStatementLine
from ..utils.dates import as_utc
from ..utils.exceptions import NotFoundError
from .database import storage_error, upsert
from .interfaces import BankStatementRepository
from .tables import BankStatementRow

logger = logging.getLogger(__name__)


class SqlBankStatementRepository(BankStatementRepository):
    """Bank statement lines stored in the ``bank_statements`` table."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def fetch_all(self, start: datetime, end: datetime) -> list[BankStatementLine]:
        # Statement lines carry a calendar date; the window is compared on UTC dates
        stmt = (
            select(BankStatementRow)
            .where(BankStatementRow.date.between(as_utc(start).date(), as_utc(end).date()))
            .order_by(BankStatementRow.date, BankStatementRow.id)
        )
        try:
            with self._session_factory() as session:
                rows = session.scalars(stmt).all()
        except SQLAlchemyError as e:
            raise storage_error(e, "error fetching bank statements", "bank.fetch_all") from e

        logger.debug(f"Fetched {len(rows)} bank statement lines between {start} and {end}")
        return [_to_domain(row) for row in rows]

    def save(self, statement: BankStatementLine) -> None:
        self.save_batch([statement])

    def save_batch(self, statements: Sequence[BankStatementLine]) -> None:
        if not statements:
            return

        rows = [
            {
                "id": stmt.id,
                "date": stmt.date,
                "bank": stmt.bank_name,
                "amount": stmt.amount,
                "reference": stmt.reference,
            }
            for stmt in statements
        ]
        try:
            with self._session_factory.begin() as session:
                upsert(
                    session,
                    BankStatementRow.__table__,
                    rows,
                    key_columns=("id", "date", "bank"),
                    update_columns=("amount", "reference"),
                )
        except SQLAlchemyError as e:
            raise storage_error(e, "error saving bank statements", "bank.save_batch") from e

    def find_by_id(self, statement_id: str) -> BankStatementLine:
        stmt = select(BankStatementRow).where(BankStatementRow.id == statement_id).limit(1)
        try:
            with self._session_factory() as session:
                row = session.scalars(stmt).first()
        except SQLAlchemyError as e:
            raise storage_error(e, "error finding bank statement", "bank.find_by_id") from e

        if row is None:
            raise NotFoundError(f"bank statement {statement_id!r} not found", stage="bank.find_by_id")
        return _to_domain(row)


def _to_domain(row: BankStatementRow) -> BankStatementLine:
    return BankStatementLine(
        id=row.id,
        amount=row.amount,
        date=row.date,
        reference=row.reference or "",
        bank_name=row.bank or "",
    )
