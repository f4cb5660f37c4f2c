"""Persistence: capability interfaces and their SQLAlchemy / filesystem implementations."""

from .bank_repository import SqlBankStatementRepository
from .database import (
    Base,
    create_db_and_tables,
    create_engine_from_config,
    create_session_factory,
)
from .interfaces import (
    BankStatementRepository,
    LedgerRepository,
    ObjectStore,
    ReconResultRepository,
)
from .ledger_repository import SqlLedgerRepository
from .object_store import LocalObjectStore
from .recon_result_repository import SqlReconResultRepository

__all__ = [
    "Base",
    "create_db_and_tables",
    "create_engine_from_config",
    "create_session_factory",
    "BankStatementRepository",
    "LedgerRepository",
    "ObjectStore",
    "ReconResultRepository",
    "SqlBankStatementRepository",
    "SqlLedgerRepository",
    "SqlReconResultRepository",
    "LocalObjectStore",
]
