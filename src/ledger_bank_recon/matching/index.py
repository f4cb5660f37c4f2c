"""Amount-bucket index over a sequence of records."""

from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, TypeVar

from ..models.transaction import LedgerTransaction, Record
from .normalizer import normalize

R = TypeVar("R")


def record_key(record: Record) -> int:
    """Bucket key of a ledger transaction or bank statement line."""
    if isinstance(record, LedgerTransaction):
        return normalize(record.amount, is_debit=record.is_debit)
    return normalize(record.amount)


@dataclass
class RecordIndex(Generic[R]):
    """
    Records grouped by bucket key.

    ``lists[key]`` keeps records in input order and ``counts[key]`` always
    equals ``len(lists[key])``. Both mappings iterate keys in first-seen order.
    """

    counts: dict[int, int] = field(default_factory=dict)
    lists: dict[int, list[R]] = field(default_factory=dict)

    @classmethod
    def build(
        cls, records: Iterable[R], key: Callable[[R], int] = record_key
    ) -> "RecordIndex[R]":
        index: RecordIndex[R] = cls()
        for record in records:
            bucket = key(record)
            index.counts[bucket] = index.counts.get(bucket, 0) + 1
            index.lists.setdefault(bucket, []).append(record)
        return index

    def count(self, key: int) -> int:
        return self.counts.get(key, 0)

    def __len__(self) -> int:
        return sum(self.counts.values())
