"""Fixed-size chunking for batch writes."""

from typing import Optional, Sequence, TypeVar

T = TypeVar("T")


def chunk(items: Sequence[T], size: int) -> Optional[list[list[T]]]:
    """
    Split items into contiguous chunks of at most ``size`` elements.

    Args:
        items: Sequence to split
        size: Maximum chunk length

    Returns:
        Ordered list of chunks whose concatenation equals ``items``; only the
        last chunk may be shorter than ``size``. An empty sequence yields an
        empty list. ``None`` when ``size`` is not positive.
    """
    if size <= 0:
        return None

    return [list(items[start : start + size]) for start in range(0, len(items), size)]
