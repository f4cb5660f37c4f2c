"""
Selection policies for over-populated amount buckets.
Each policy decides which records of a bucket are left unmatched.
"""

from abc import ABC, abstractmethod
from typing import Sequence, TypeVar

R = TypeVar("R")


class SelectionPolicy(ABC):
    """Abstract base class for unmatched-record selection."""

    name: str = ""

    @abstractmethod
    def select(self, bucket: Sequence[R], excess: int) -> list[R]:
        """
        Pick the records of a bucket that stay unmatched.

        Args:
            bucket: Records sharing one key, in arrival order
            excess: How many more records this side has than the other

        Returns:
            ``excess`` records taken from ``bucket``, in arrival order
        """
        pass


class TailSelection(SelectionPolicy):
    """The last ``excess`` records in arrival order stay unmatched."""

    name = "tail"

    def select(self, bucket: Sequence[R], excess: int) -> list[R]:
        if excess <= 0:
            return []
        return list(bucket[len(bucket) - excess :])


class HeadSelection(SelectionPolicy):
    """The first ``excess`` records in arrival order stay unmatched."""

    name = "head"

    def select(self, bucket: Sequence[R], excess: int) -> list[R]:
        if excess <= 0:
            return []
        return list(bucket[:excess])


POLICIES: dict[str, type[SelectionPolicy]] = {
    TailSelection.name: TailSelection,
    HeadSelection.name: HeadSelection,
}


def get_policy(name: str) -> SelectionPolicy:
    """Instantiate a selection policy by its configured name."""
    try:
        return POLICIES[name.lower()]()
    except KeyError:
        raise ValueError(
            f"Unknown selection policy {name!r}; expected one of {sorted(POLICIES)}"
        ) from None
