"""
Excel report generator for persisted reconciliation results.
Creates a workbook with the summary and both unmatched lists of a task.
"""

from datetime import datetime
from pathlib import Path
from typing import Sequence
import logging

from openpyxl import Workbook
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..config import ReconConfig
from ..models.api import (
    ReconSummaryResponse,
    UnmatchedBankStatementResponse,
    UnmatchedTransactionResponse,
)
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
MATCH_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
UNMATCHED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class ExcelReportGenerator:
    """Generates Excel reconciliation reports with multiple sheets."""

    def __init__(self, config: ReconConfig):
        """
        Initialize the report generator.

        Args:
            config: Application configuration
        """
        self.config = config
        self.excel_config = config.output.excel
        self.sheet_config = config.output.sheets

    def default_filename(self, task_id: str) -> str:
        return self.excel_config.filename_template.format(
            task_id=task_id, date=datetime.now().strftime("%Y%m%d")
        )

    def generate_report(
        self,
        summary: ReconSummaryResponse,
        unmatched_transactions: Sequence[UnmatchedTransactionResponse],
        unmatched_bank: Sequence[UnmatchedBankStatementResponse],
        output_path: Path,
    ) -> Path:
        """
        Generate the complete reconciliation report.

        Args:
            summary: Stored summary of the task
            unmatched_transactions: Unmatched internal ledger transactions
            unmatched_bank: Unmatched bank statement lines
            output_path: Path for output file

        Returns:
            Path to generated report

        Raises:
            ReportGenerationError: If the workbook cannot be written
        """
        logger.info(f"Generating Excel report: {output_path}")

        wb = Workbook()

        # Remove default sheet
        if wb.active:
            wb.remove(wb.active)

        if self.sheet_config.summary.enabled:
            self._create_summary_sheet(wb, summary)
        if self.sheet_config.unmatched_internal.enabled:
            self._create_unmatched_internal_sheet(wb, unmatched_transactions)
        if self.sheet_config.unmatched_bank.enabled:
            self._create_unmatched_bank_sheet(wb, unmatched_bank)

        # openpyxl refuses to save a workbook without sheets
        if not wb.worksheets:
            raise ReportGenerationError("all report sheets are disabled", stage="generate_report")

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(
                f"cannot write report {output_path}: {e}", stage="generate_report"
            ) from e

        logger.info(f"Report saved: {output_path}")
        return output_path

    def _create_summary_sheet(self, wb: Workbook, summary: ReconSummaryResponse) -> None:
        """Create the summary sheet with key metrics."""
        ws = wb.create_sheet(self.sheet_config.summary.name)

        ws["A1"] = "Ledger to Bank Reconciliation Summary"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")

        ws["A3"] = "Task"
        ws["A3"].font = Font(bold=True)

        task_info = [
            ("Task ID:", summary.task_id),
            ("Window Start:", summary.start_date.strftime(TIMESTAMP_FORMAT)),
            ("Window End:", summary.end_date.strftime(TIMESTAMP_FORMAT)),
            (
                "Reconciled At:",
                summary.created_at.strftime(TIMESTAMP_FORMAT) if summary.created_at else "",
            ),
        ]
        for i, (label, value) in enumerate(task_info, start=4):
            ws[f"A{i}"] = label
            ws[f"B{i}"] = value

        ws["A9"] = "Totals"
        ws["A9"].font = Font(bold=True)

        count_data = [
            ("Total Records:", summary.total_transaction),
            ("Matched Pairs:", summary.total_matched),
            ("Unmatched Internal:", summary.total_unmatched_internal),
            ("Unmatched Bank:", summary.total_unmatched_bank),
            ("Discrepancy:", float(summary.total_discrepancy)),
        ]
        for i, (label, value) in enumerate(count_data, start=10):
            ws[f"A{i}"] = label
            ws[f"B{i}"] = value

        ws["B14"].number_format = "#,##0.00"
        ws["B14"].fill = MATCH_FILL if summary.total_discrepancy == 0 else UNMATCHED_FILL

        ws.column_dimensions["A"].width = 30
        ws.column_dimensions["B"].width = 40

    def _create_unmatched_internal_sheet(
        self, wb: Workbook, transactions: Sequence[UnmatchedTransactionResponse]
    ) -> None:
        """Create the unmatched internal transactions sheet."""
        ws = wb.create_sheet(self.sheet_config.unmatched_internal.name)
        self._write_headers(ws, ["Transaction ID", "Time", "Amount", "Type", "Description"])

        for row_num, txn in enumerate(transactions, start=2):
            row_data = [
                txn.id,
                txn.transaction_time.strftime(TIMESTAMP_FORMAT),
                float(txn.amount),
                txn.type,
                txn.description,
            ]
            self._write_row(ws, row_num, row_data)

        self._auto_fit_columns(ws)

    def _create_unmatched_bank_sheet(
        self, wb: Workbook, statements: Sequence[UnmatchedBankStatementResponse]
    ) -> None:
        """Create the unmatched bank statement lines sheet."""
        ws = wb.create_sheet(self.sheet_config.unmatched_bank.name)
        self._write_headers(ws, ["Statement ID", "Date", "Amount", "Reference", "Bank"])

        for row_num, line in enumerate(statements, start=2):
            row_data = [
                line.id,
                line.date.isoformat(),
                float(line.amount),
                line.reference,
                line.bank_name,
            ]
            self._write_row(ws, row_num, row_data)

        self._auto_fit_columns(ws)

    def _write_headers(self, ws: Worksheet, headers: list[str]) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    def _write_row(self, ws: Worksheet, row_num: int, row_data: list) -> None:
        for col, value in enumerate(row_data, start=1):
            cell = ws.cell(row=row_num, column=col, value=value)
            cell.border = THIN_BORDER
            cell.fill = UNMATCHED_FILL

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            column = column_cells[0].column_letter
            max_length = max(
                (len(str(cell.value)) for cell in column_cells if cell.value is not None),
                default=0,
            )
            ws.column_dimensions[column].width = min(max_length + 2, 50)
