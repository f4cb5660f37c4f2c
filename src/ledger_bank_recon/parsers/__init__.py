"""Row parsers for ledger and bank statement files."""

from .bank_parser import parse_bank_statement
from .ledger_parser import parse_transaction_record

__all__ = ["parse_bank_statement", "parse_transaction_record"]
