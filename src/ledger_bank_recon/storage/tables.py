"""SQLAlchemy models for the ledger, bank and reconciliation result tables."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, Numeric, String

from ..utils.dates import utcnow
from .database import Base

AMOUNT = Numeric(20, 6)


class TransactionRow(Base):
    """Internal ledger transaction. Re-ingesting the same (id, time) updates it."""

    __tablename__ = "transactions"

    id = Column(String(100), primary_key=True)
    transaction_time = Column(DateTime(timezone=True), primary_key=True)
    amount = Column(AMOUNT, nullable=False)
    type = Column(String(10), nullable=False)
    description = Column(String(500), nullable=False, default="")

    __table_args__ = (Index("ix_transactions_time", "transaction_time"),)

    def __repr__(self):
        return f"<TransactionRow(id='{self.id}', amount={self.amount}, type='{self.type}')>"


class BankStatementRow(Base):
    """Bank statement line. Re-ingesting the same (id, date, bank) updates it."""

    __tablename__ = "bank_statements"

    id = Column(String(100), primary_key=True)
    date = Column(Date, primary_key=True)
    bank = Column(String(100), primary_key=True, default="")
    amount = Column(AMOUNT, nullable=False)
    reference = Column(String(255), nullable=False, default="")

    __table_args__ = (Index("ix_bank_statements_date", "date"),)

    def __repr__(self):
        return f"<BankStatementRow(id='{self.id}', amount={self.amount}, bank='{self.bank}')>"


class ReconSummaryRow(Base):
    """One row per reconciliation run, keyed by task id."""

    __tablename__ = "recon_summary"

    id = Column(String(100), primary_key=True)
    matched = Column(Integer, nullable=False, default=0)
    discrepancy = Column(AMOUNT, nullable=False)
    total_transaction = Column(Integer, nullable=False, default=0)
    total_unmatched_bank = Column(Integer, nullable=False, default=0)
    total_unmatched_internal = Column(Integer, nullable=False, default=0)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (Index("ix_recon_summary_created", "created_at"),)

    def __repr__(self):
        return f"<ReconSummaryRow(id='{self.id}', matched={self.matched})>"


class UnmatchedTransactionRow(Base):
    """Ledger transaction left unmatched by a run."""

    __tablename__ = "unmatched_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(String(100), ForeignKey("recon_summary.id"), nullable=False)
    transaction_id = Column(String(100), nullable=False)
    amount = Column(AMOUNT, nullable=False)
    transaction_time = Column(DateTime(timezone=True), nullable=False)
    type = Column(String(10), nullable=False)
    description = Column(String(500), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (Index("ix_unmatched_txn_task_time", "task_id", "transaction_time"),)


class UnmatchedBankStatementRow(Base):
    """Bank statement line left unmatched by a run."""

    __tablename__ = "unmatched_bank_statements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(String(100), ForeignKey("recon_summary.id"), nullable=False)
    statement_id = Column(String(100), nullable=False)
    amount = Column(AMOUNT, nullable=False)
    date = Column(Date, nullable=False)
    reference = Column(String(255), nullable=False, default="")
    bank_name = Column(String(100), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (Index("ix_unmatched_bank_task_date", "task_id", "date"),)
