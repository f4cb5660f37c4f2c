"""Reconciliation run: fetch the window, match, persist the summary."""

from typing import Optional, Union
import logging

from ..matching.engine import MatchingEngine
from ..models.events import ReconciliationEvent
from ..models.transaction import ReconciliationSummary
from ..storage.interfaces import (
    BankStatementRepository,
    LedgerRepository,
    ReconResultRepository,
)
from ..utils.dates import as_utc
from ..utils.exceptions import ValidationError
from .events import decode_event

logger = logging.getLogger(__name__)


class ReconciliationService:
    """
    Runs one reconciliation per trigger.

    A run is single-shot: nothing is persisted until the summary write, and
    a failure anywhere aborts the run without retry.
    """

    def __init__(
        self,
        ledger_repo: LedgerRepository,
        bank_repo: BankStatementRepository,
        recon_repo: ReconResultRepository,
        engine: Optional[MatchingEngine] = None,
    ):
        self.ledger_repo = ledger_repo
        self.bank_repo = bank_repo
        self.recon_repo = recon_repo
        self.engine = engine or MatchingEngine()

    def process_event(self, event: Union[bytes, str]) -> ReconciliationSummary:
        """Decode a reconciliation trigger and run it."""
        recon_event = decode_event(ReconciliationEvent, event, stage="parse_event")
        return self.reconcile(recon_event)

    def reconcile(self, event: ReconciliationEvent) -> ReconciliationSummary:
        """
        Reconcile ledger against bank records for the event's window.

        Args:
            event: Trigger holding task id and window bounds

        Returns:
            The stored summary

        Raises:
            ValidationError: If the task id or a window bound is missing
            StorageError: If fetching or storing fails
        """
        validate_event(event)

        logger.info(
            f"Reconciling task {event.task_id} for {event.start_date} to {event.end_date}"
        )
        ledger_records = self.ledger_repo.fetch_all(event.start_date, event.end_date)
        bank_records = self.bank_repo.fetch_all(event.start_date, event.end_date)

        summary = self.engine.reconcile(ledger_records, bank_records, task_id=event.task_id)

        try:
            self.recon_repo.store_summary(summary, event.start_date, event.end_date)
        except Exception:
            logger.error(f"Failed to store summary for task {event.task_id}")
            raise

        return summary


def validate_event(event: ReconciliationEvent) -> None:
    if not event.task_id:
        raise ValidationError("taskID is required", stage="parse_event")
    if not event.has_window:
        raise ValidationError("startDate and endDate are required fields", stage="parse_event")
    if as_utc(event.start_date) > as_utc(event.end_date):
        raise ValidationError("startDate must not be after endDate", stage="parse_event")
