"""
File compilation: stream uploaded ledger and bank statement objects into
their stores, then trigger reconciliation for the task.
"""

from typing import Union
import logging

from ..ingestion.ingestor import IngestionResult, StreamingIngestor
from ..models.events import CompilerEvent, ReconciliationEvent
from ..storage.interfaces import ObjectStore
from ..utils.dates import as_utc
from ..utils.exceptions import (
    IngestionError,
    NotFoundError,
    ReconciliationError,
    ValidationError,
)
from .events import EventPublisher, decode_event

logger = logging.getLogger(__name__)


class FileCompiler:
    """Consumes compiler events."""

    def __init__(
        self,
        object_store: ObjectStore,
        ingestor: StreamingIngestor,
        publisher: EventPublisher,
        recon_topic: str,
    ):
        """
        Initialize the compiler.

        Args:
            object_store: Source of uploaded objects
            ingestor: Streams objects into the ledger and bank repositories
            publisher: Where the follow-up reconciliation trigger is published
            recon_topic: Topic of the reconciliation trigger
        """
        self.object_store = object_store
        self.ingestor = ingestor
        self.publisher = publisher
        self.recon_topic = recon_topic

    def process_event(self, event: Union[bytes, str]) -> dict[str, IngestionResult]:
        """
        Ingest the objects named by a compiler event.

        The ledger object is ingested first, then the bank statement object;
        an empty reference means that file was not uploaded and is skipped.

        Returns:
            Ingestion results keyed by ``"ledger"`` / ``"bank"``

        Raises:
            ValidationError: If the payload is malformed or names no object
            IngestionError: If reading or saving an object fails
        """
        compiler_event = parse_compiler_event(event)

        results: dict[str, IngestionResult] = {}
        if compiler_event.transaction:
            results["ledger"] = self._process_file(compiler_event.transaction, "ledger", "")
        if compiler_event.bank_statement:
            results["bank"] = self._process_file(
                compiler_event.bank_statement, "bank", compiler_event.bank_name
            )

        if compiler_event.start_date is None or compiler_event.end_date is None:
            logger.info(
                f"Task {compiler_event.task_id} has no complete window; reconciliation not triggered"
            )
            return results

        self.publisher.publish(
            self.recon_topic,
            compiler_event.task_id,
            ReconciliationEvent(
                task_id=compiler_event.task_id,
                start_date=compiler_event.start_date,
                end_date=compiler_event.end_date,
            ),
        )
        return results

    def _process_file(self, object_ref: str, source: str, bank_name: str) -> IngestionResult:
        logger.info(f"Compiling {source} object {object_ref}")
        try:
            with self.object_store.open(object_ref) as stream:
                if source == "bank":
                    return self.ingestor.ingest_bank(stream, bank_name)
                return self.ingestor.ingest_ledger(stream)
        except (IngestionError, NotFoundError):
            raise
        except ReconciliationError as e:
            raise IngestionError(
                f"error processing {source} file {object_ref}: {e}", stage="process_file"
            ) from e


def parse_compiler_event(event: Union[bytes, str]) -> CompilerEvent:
    """Decode and validate a compiler event; nothing is read or written here."""
    compiler_event = decode_event(CompilerEvent, event, stage="parse_event")
    if not compiler_event.task_id.strip():
        raise ValidationError("taskID is required", stage="parse_event")
    if not compiler_event.bank_name.strip():
        raise ValidationError("bankName is required", stage="parse_event")
    if not compiler_event.bank_statement and not compiler_event.transaction:
        raise ValidationError("bank statement and transaction is empty", stage="parse_event")
    if (
        compiler_event.start_date is not None
        and compiler_event.end_date is not None
        and as_utc(compiler_event.start_date) > as_utc(compiler_event.end_date)
    ):
        raise ValidationError("startDate is after endDate", stage="parse_event")
    return compiler_event
