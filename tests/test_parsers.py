from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from ledger_bank_recon.models.transaction import EntryType
from ledger_bank_recon.parsers import parse_bank_statement, parse_transaction_record
from ledger_bank_recon.utils.exceptions import RowParseError


class TestLedgerParser:
    """Tests for parse_transaction_record."""

    def test_valid_row(self):
        txn = parse_transaction_record(["T1", "100.25", "DEBIT", "2024-01-15T10:30:00Z", "rent"])

        assert txn.id == "T1"
        assert txn.amount == Decimal("100.25")
        assert txn.type is EntryType.DEBIT
        assert txn.transaction_time == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert txn.description == "rent"

    def test_type_case_insensitive(self):
        txn = parse_transaction_record(["T1", "5", "credit", "2024-01-15T10:30:00Z"])
        assert txn.type is EntryType.CREDIT
        assert txn.description == ""

    def test_fractional_seconds(self):
        txn = parse_transaction_record(["T1", "10.00", "CREDIT", "2024-01-02T09:00:00.123Z"])
        assert txn.transaction_time == datetime(2024, 1, 2, 9, 0, 0, 123000, tzinfo=timezone.utc)

    def test_full_precision_kept(self):
        txn = parse_transaction_record(["T1", "0.123456", "CREDIT", "2024-01-15T10:30:00Z"])
        assert txn.amount == Decimal("0.123456")

    @pytest.mark.parametrize(
        "record, match",
        [
            (["T1", "100", "CREDIT"], "at least 4 fields"),
            (["T1", "abc", "CREDIT", "2024-01-15T10:30:00Z"], "error parsing amount"),
            (["T1", "NaN", "CREDIT", "2024-01-15T10:30:00Z"], "not finite"),
            (["T1", "100", "REFUND", "2024-01-15T10:30:00Z"], "unknown transaction type"),
            (["T1", "100", "CREDIT", "2024-01-15"], "error parsing transaction time"),
            (["T1", "100", "CREDIT", "2024-01-15T10:30:00.5"], "error parsing transaction time"),
        ],
    )
    def test_malformed(self, record, match):
        with pytest.raises(RowParseError, match=match) as exc_info:
            parse_transaction_record(record)
        assert exc_info.value.stage == "parse_transaction_record"


class TestBankParser:
    """Tests for parse_bank_statement."""

    def test_valid_row(self):
        line = parse_bank_statement(["B1", "-42.10", "2024-01-15", "REF-9"], bank_name="ACME")

        assert line.id == "B1"
        assert line.amount == Decimal("-42.10")
        assert line.date == date(2024, 1, 15)
        assert line.reference == "REF-9"
        assert line.bank_name == "ACME"

    def test_reference_optional(self):
        line = parse_bank_statement(["B1", "1", "2024-01-15"])
        assert line.reference == ""
        assert line.bank_name == ""

    @pytest.mark.parametrize(
        "record, match",
        [
            (["B1", "1"], "at least 3 fields"),
            (["B1", "", "2024-01-15"], "error parsing amount"),
            (["B1", "Infinity", "2024-01-15"], "not finite"),
            (["B1", "1", "15/01/2024"], "error parsing date"),
        ],
    )
    def test_malformed(self, record, match):
        with pytest.raises(RowParseError, match=match):
            parse_bank_statement(record)
