"""
Ledger transaction row parser.

Row layout: ``id, amount, type, timestamp[, description]`` where ``type`` is
CREDIT or DEBIT and ``timestamp`` is ISO-8601 UTC with a trailing ``Z``.
"""

from datetime import datetime, timezone
from typing import Sequence

from ..models.transaction import EntryType, LedgerTransaction
from ..utils.exceptions import RowParseError
from .fields import parse_amount, require_fields

# Fractional seconds are optional
TIMESTAMP_FORMATS = ("%Y-%m-%dT%H:%M:%SZ", "%Y-%m-%dT%H:%M:%S.%fZ")
STAGE = "parse_transaction_record"


def parse_transaction_record(record: Sequence[str]) -> LedgerTransaction:
    """
    Convert one delimited row into a LedgerTransaction.

    Args:
        record: Row fields

    Returns:
        Parsed ledger transaction

    Raises:
        RowParseError: If the row is malformed
    """
    require_fields(record, 4, STAGE)

    amount = parse_amount(record[1], STAGE)

    type_value = record[2].strip().upper()
    try:
        entry_type = EntryType(type_value)
    except ValueError:
        raise RowParseError(f"unknown transaction type {record[2]!r}", stage=STAGE) from None

    transaction_time = _parse_timestamp(record[3])

    return LedgerTransaction(
        id=record[0].strip(),
        amount=amount,
        transaction_time=transaction_time.replace(tzinfo=timezone.utc),
        type=entry_type,
        description=record[4].strip() if len(record) > 4 else "",
    )


def _parse_timestamp(value: str) -> datetime:
    text = value.strip()
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise RowParseError(f"error parsing transaction time {value!r}", stage=STAGE)
