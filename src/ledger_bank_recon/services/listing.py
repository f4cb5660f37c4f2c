"""Paginated read access to persisted reconciliation results."""

from ..models.api import (
    Page,
    ReconSummaryResponse,
    UnmatchedBankStatementResponse,
    UnmatchedTransactionResponse,
)
from ..storage.interfaces import ReconResultRepository
from ..utils.dates import as_utc
from ..utils.exceptions import ValidationError


class ListService:
    """Listing operations for reconciliation data."""

    def __init__(self, recon_repo: ReconResultRepository):
        self.recon_repo = recon_repo

    def get_summary(self, task_id: str) -> ReconSummaryResponse:
        _require_task(task_id)
        return _summary_response(self.recon_repo.get_summary(task_id))

    def list_summaries(self, limit: int, offset: int) -> Page:
        """Summaries newest first."""
        _validate_page(limit, offset)
        rows, total = self.recon_repo.list_summaries(limit, offset)
        return Page(
            data=[_summary_response(row) for row in rows],
            total_count=total,
            limit=limit,
            offset=offset,
        )

    def list_unmatched_transactions(self, task_id: str, limit: int, offset: int) -> Page:
        """Unmatched ledger transactions of a task, latest transaction time first."""
        _require_task(task_id)
        _validate_page(limit, offset)
        rows, total = self.recon_repo.get_unmatched_transactions(task_id, limit, offset)
        data = [
            UnmatchedTransactionResponse(
                id=row.transaction_id,
                task_id=row.task_id,
                amount=row.amount,
                transaction_time=as_utc(row.transaction_time),
                type=row.type,
                description=row.description or "",
            )
            for row in rows
        ]
        return Page(data=data, total_count=total, limit=limit, offset=offset)

    def list_unmatched_bank_statements(self, task_id: str, limit: int, offset: int) -> Page:
        """Unmatched bank statement lines of a task, latest date first."""
        _require_task(task_id)
        _validate_page(limit, offset)
        rows, total = self.recon_repo.get_unmatched_bank_statements(task_id, limit, offset)
        data = [
            UnmatchedBankStatementResponse(
                id=row.statement_id,
                task_id=row.task_id,
                amount=row.amount,
                date=row.date,
                reference=row.reference or "",
                bank_name=row.bank_name or "",
            )
            for row in rows
        ]
        return Page(data=data, total_count=total, limit=limit, offset=offset)


def _summary_response(row) -> ReconSummaryResponse:
    return ReconSummaryResponse(
        task_id=row.id,
        total_matched=row.matched,
        total_discrepancy=row.discrepancy,
        total_transaction=row.total_transaction,
        total_unmatched_bank=row.total_unmatched_bank,
        total_unmatched_internal=row.total_unmatched_internal,
        start_date=as_utc(row.start_date),
        end_date=as_utc(row.end_date),
        created_at=as_utc(row.created_at) if row.created_at else None,
        updated_at=as_utc(row.updated_at) if row.updated_at else None,
    )


def _require_task(task_id: str) -> None:
    if not task_id:
        raise ValidationError("task ID is required", stage="list")


def _validate_page(limit: int, offset: int) -> None:
    if limit <= 0:
        raise ValidationError(f"limit must be positive, got {limit}", stage="list")
    if offset < 0:
        raise ValidationError(f"offset must not be negative, got {offset}", stage="list")
