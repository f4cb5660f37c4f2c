"""Streaming file ingestion."""

from .ingestor import BANK_BATCH_SIZE, IngestionResult, StreamingIngestor, read_rows

__all__ = ["BANK_BATCH_SIZE", "IngestionResult", "StreamingIngestor", "read_rows"]
