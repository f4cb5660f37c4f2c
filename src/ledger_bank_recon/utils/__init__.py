"""Utility modules."""

from .chunking import chunk
from .exceptions import (
    ReconciliationError,
    ValidationError,
    NotFoundError,
    RowParseError,
    IngestionError,
    StorageError,
    TransientError,
    ConfigurationError,
    ReportGenerationError,
)
from .logging_config import setup_logging

__all__ = [
    "chunk",
    "ReconciliationError",
    "ValidationError",
    "NotFoundError",
    "RowParseError",
    "IngestionError",
    "StorageError",
    "TransientError",
    "ConfigurationError",
    "ReportGenerationError",
    "setup_logging",
]
