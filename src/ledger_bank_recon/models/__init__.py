"""Data models for reconciliation."""

from .transaction import (
    BANK_STATEMENT_FILE,
    TRANSACTION_FILE,
    BankStatementLine,
    EntryType,
    LedgerTransaction,
    ReconciliationSummary,
)
from .events import CompilerEvent, CompilerRequest, ReconciliationEvent, UploadTask
from .api import (
    Page,
    ReconSummaryResponse,
    UnmatchedBankStatementResponse,
    UnmatchedTransactionResponse,
)

__all__ = [
    "BANK_STATEMENT_FILE",
    "TRANSACTION_FILE",
    "BankStatementLine",
    "EntryType",
    "LedgerTransaction",
    "ReconciliationSummary",
    "CompilerEvent",
    "CompilerRequest",
    "ReconciliationEvent",
    "UploadTask",
    "Page",
    "ReconSummaryResponse",
    "UnmatchedBankStatementResponse",
    "UnmatchedTransactionResponse",
]
