from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from openpyxl import load_workbook

from ledger_bank_recon.config import load_config
from ledger_bank_recon.models.api import (
    ReconSummaryResponse,
    UnmatchedBankStatementResponse,
    UnmatchedTransactionResponse,
)
from ledger_bank_recon.reports.excel_generator import ExcelReportGenerator
from ledger_bank_recon.utils.exceptions import ReportGenerationError

SUMMARY = ReconSummaryResponse(
    task_id="task-1",
    total_matched=2,
    total_discrepancy=Decimal("-100"),
    total_transaction=4,
    total_unmatched_bank=1,
    total_unmatched_internal=1,
    start_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
    end_date=datetime(2024, 1, 31, tzinfo=timezone.utc),
    created_at=datetime(2024, 2, 1, 8, 30, tzinfo=timezone.utc),
)
TRANSACTIONS = [
    UnmatchedTransactionResponse(
        id="L3",
        task_id="task-1",
        amount=Decimal("200"),
        transaction_time=datetime(2024, 1, 12, 9, 0, tzinfo=timezone.utc),
        type="DEBIT",
        description="supplier",
    )
]
STATEMENTS = [
    UnmatchedBankStatementResponse(
        id="B3", task_id="task-1", amount=Decimal("100"), date=date(2024, 1, 12), reference="R3", bank_name="ACME"
    )
]


class TestExcelReportGenerator:
    """Tests for the reconciliation workbook."""

    def test_three_sheets(self, tmp_path):
        generator = ExcelReportGenerator(load_config())
        path = generator.generate_report(SUMMARY, TRANSACTIONS, STATEMENTS, tmp_path / "out" / "r.xlsx")

        wb = load_workbook(path)
        assert wb.sheetnames == ["Summary", "Unmatched Internal", "Unmatched Bank"]

        summary_ws = wb["Summary"]
        assert summary_ws["B4"].value == "task-1"
        assert summary_ws["B10"].value == 4
        assert summary_ws["B14"].value == -100

        internal_ws = wb["Unmatched Internal"]
        assert [c.value for c in internal_ws[1]] == ["Transaction ID", "Time", "Amount", "Type", "Description"]
        assert [c.value for c in internal_ws[2]] == ["L3", "2024-01-12 09:00:00", 200, "DEBIT", "supplier"]

        bank_ws = wb["Unmatched Bank"]
        assert [c.value for c in bank_ws[2]] == ["B3", "2024-01-12", 100, "R3", "ACME"]

    def test_disabled_and_renamed_sheets(self, tmp_path):
        config = load_config()
        config.output.sheets.summary.enabled = False
        config.output.sheets.unmatched_bank.name = "Bank Only"

        path = ExcelReportGenerator(config).generate_report(SUMMARY, [], [], tmp_path / "r.xlsx")

        assert load_workbook(path).sheetnames == ["Unmatched Internal", "Bank Only"]

    def test_all_sheets_disabled(self, tmp_path):
        config = load_config()
        sheets = config.output.sheets
        for sheet in (sheets.summary, sheets.unmatched_internal, sheets.unmatched_bank):
            sheet.enabled = False

        with pytest.raises(ReportGenerationError):
            ExcelReportGenerator(config).generate_report(SUMMARY, [], [], tmp_path / "r.xlsx")

    def test_default_filename(self):
        name = ExcelReportGenerator(load_config()).default_filename("task-1")
        assert name.startswith("reconciliation_task-1_")
        assert name.endswith(".xlsx")
