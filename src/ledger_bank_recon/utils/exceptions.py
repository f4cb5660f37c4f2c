"""Custom exceptions for the reconciliation application."""

from typing import Optional


class ReconciliationError(Exception):
    """
    Base exception for reconciliation errors.

    Carries an optional stage marker naming the step that failed, rendered
    as ``[stage] message``.
    """

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class ValidationError(ReconciliationError):
    """Invalid trigger, request or query input. Raised before any I/O."""

    pass


class NotFoundError(ReconciliationError):
    """Requested record or summary does not exist."""

    pass


class RowParseError(ReconciliationError):
    """A single delimited row could not be parsed."""

    pass


class IngestionError(ReconciliationError):
    """Error reading or flushing an ingested record stream."""

    pass


class StorageError(ReconciliationError):
    """Persistence read or write failure."""

    pass


class TransientError(StorageError):
    """Storage failure caused by a lost connection or timeout; safe to redrive."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class ReportGenerationError(ReconciliationError):
    """Error generating Excel report."""

    pass
