"""
Bank statement row parser.

Row layout: ``id, amount, date[, reference]`` with ``date`` as YYYY-MM-DD.
"""

from datetime import datetime
from typing import Sequence

from ..models.transaction import BankStatementLine
from ..utils.exceptions import RowParseError
from .fields import parse_amount, require_fields

DATE_FORMAT = "%Y-%m-%d"
STAGE = "parse_bank_statement"


def parse_bank_statement(record: Sequence[str], bank_name: str = "") -> BankStatementLine:
    """
    Convert one delimited row into a BankStatementLine.

    Args:
        record: Row fields
        bank_name: Bank the statement was uploaded for

    Returns:
        Parsed bank statement line

    Raises:
        RowParseError: If the row is malformed
    """
    require_fields(record, 3, STAGE)

    amount = parse_amount(record[1], STAGE)

    try:
        statement_date = datetime.strptime(record[2].strip(), DATE_FORMAT).date()
    except ValueError:
        raise RowParseError(f"error parsing date {record[2]!r}", stage=STAGE) from None

    return BankStatementLine(
        id=record[0].strip(),
        amount=amount,
        date=statement_date,
        reference=record[3].strip() if len(record) > 3 else "",
        bank_name=bank_name,
    )
