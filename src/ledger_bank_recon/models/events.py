"""Trigger payloads exchanged between the compilation and reconciliation steps."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ReconciliationEvent(BaseModel):
    """Starts a reconciliation run for a task over a time window."""

    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(default="", alias="taskID")
    start_date: Optional[datetime] = Field(default=None, alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")

    @property
    def has_window(self) -> bool:
        return self.start_date is not None and self.end_date is not None


class CompilerEvent(BaseModel):
    """Asks the compiler to ingest uploaded ledger and bank statement objects."""

    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(default="", alias="taskID")
    bank_name: str = Field(default="", alias="bankName")
    transaction: str = ""
    bank_statement: str = ""
    start_date: Optional[datetime] = Field(default=None, alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")


class CompilerRequest(BaseModel):
    """Caller request to compile the files uploaded for a task."""

    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(default="", alias="taskID")
    bank_name: str = Field(default="", alias="bankName")
    start_date: Optional[datetime] = Field(default=None, alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")


class UploadTask(BaseModel):
    """A freshly allocated task and the object references its files go to."""

    task_id: str
    transaction_object: str
    bank_statement_object: str
