"""Read-side response shapes for persisted reconciliation results."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReconSummaryResponse(_CamelModel):
    task_id: str
    total_matched: int
    total_discrepancy: Decimal
    total_transaction: int
    total_unmatched_bank: int
    total_unmatched_internal: int
    start_date: datetime
    end_date: datetime
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UnmatchedTransactionResponse(_CamelModel):
    id: str
    task_id: str
    amount: Decimal
    transaction_time: datetime
    type: str
    description: str = ""


class UnmatchedBankStatementResponse(_CamelModel):
    id: str
    task_id: str
    amount: Decimal
    date: date
    reference: str = ""
    bank_name: str = ""


class Page(_CamelModel):
    """One page of a listing plus the total row count behind it."""

    data: list[Any]
    total_count: int
    limit: int
    offset: int
