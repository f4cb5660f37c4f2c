"""Matching engine, index and selection policies."""

from .engine import MatchingEngine, MatchOutcome, sum_discrepancy
from .index import RecordIndex, record_key
from .normalizer import format_key, normalize
from .selection import HeadSelection, SelectionPolicy, TailSelection, get_policy

__all__ = [
    "MatchingEngine",
    "MatchOutcome",
    "sum_discrepancy",
    "RecordIndex",
    "record_key",
    "format_key",
    "normalize",
    "SelectionPolicy",
    "TailSelection",
    "HeadSelection",
    "get_policy",
]
