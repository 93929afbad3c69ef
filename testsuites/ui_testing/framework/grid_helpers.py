"""
================================================================================
Grid Helpers
================================================================================

Pure helpers for Syncfusion grid checks: pager text parsing, sort order
verification and sort indicator classification. No browser required.

================================================================================
"""

from __future__ import annotations

import math
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from pyuca import Collator


_ITEM_COUNT_RE = re.compile(r"(\d+)\s+items?\b", re.IGNORECASE | re.ASCII)
_PAGE_INFO_RE = re.compile(r"(\d+)\s+of\s+(\d+)\s+pages?", re.IGNORECASE | re.ASCII)
_LEADING_FLOAT_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)", re.ASCII)
_LEADING_INFINITY_RE = re.compile(r"^\s*([+-]?)Infinity")

SORT_ASCENDING = "asc"
SORT_DESCENDING = "desc"
SORT_NONE = "none"

_collator: Optional[Collator] = None


class SortOrderError(AssertionError):
    """Raised when grid column values are not in the expected order."""
    pass


def parse_item_count(text: Optional[str]) -> Optional[int]:
    """
    Total record count from pager text.

    >>> parse_item_count("1 of 3 pages (42 items)")
    42
    """
    match = _ITEM_COUNT_RE.search(text or "")
    return int(match.group(1)) if match else None


def parse_page_info(text: Optional[str]) -> Optional[Tuple[int, int]]:
    """
    Current and total page from pager text.

    >>> parse_page_info("2 of 5 pages (93 items)")
    (2, 5)
    """
    match = _PAGE_INFO_RE.search(text or "")
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def parse_thumbnail_count(text: Optional[str], label: str) -> Optional[int]:
    """
    Count shown on a landing-page tile such as ``"Client Contacts12"``.
    """
    match = re.search(re.escape(label) + r"\s*(\d+)", text or "", re.IGNORECASE | re.ASCII)
    return int(match.group(1)) if match else None


def leading_float(value: Optional[str]) -> Optional[float]:
    """
    Parse a number from the start of ``value`` the way JavaScript
    ``parseFloat`` does: leading whitespace is skipped and trailing text
    is ignored.

    Returns:
        The number, or None where parseFloat would give NaN
    """
    if value is None:
        return None
    match = _LEADING_FLOAT_RE.match(value)
    if match:
        return float(match.group(1))
    infinity = _LEADING_INFINITY_RE.match(value)
    if infinity:
        return -math.inf if infinity.group(1) == "-" else math.inf
    return None


def collation_key(value: str) -> Tuple[int, ...]:
    """
    Case-insensitive Unicode collation key, the order the browser's
    ``localeCompare`` gives: punctuation before digits before letters.
    """
    global _collator
    if _collator is None:
        _collator = Collator()
    return _collator.sort_key(value.lower())


def verify_sorted(values: Sequence[Optional[str]], order: str = SORT_ASCENDING, column: str = "") -> bool:
    """
    Check that column values are sorted.

    Empty cells are ignored. When every remaining value starts with a
    number the comparison is numeric, otherwise it follows
    ``collation_key`` (so ``a@x.com`` sorts before ``a1@x.com``).

    Args:
        values: Cell texts in display order
        order: ``"asc"`` or ``"desc"``
        column: Column name for the error message

    Returns:
        True when sorted (including fewer than two non-empty values)

    Raises:
        SortOrderError: The first out-of-order position
        ValueError: Unknown order
    """
    if order not in (SORT_ASCENDING, SORT_DESCENDING):
        raise ValueError(f"Unknown sort order: {order}")

    cleaned: List[str] = [v.strip() for v in values if v and v.strip()]
    if len(cleaned) < 2:
        return True

    numbers = [leading_float(v) for v in cleaned]
    numeric = all(n is not None for n in numbers)
    keys = numbers if numeric else [collation_key(v) for v in cleaned]

    ascending = order == SORT_ASCENDING
    if numeric:
        relation = "is less than" if ascending else "is greater than"
    else:
        relation = "comes before" if ascending else "comes after"
    direction = "ascending" if ascending else "descending"
    where = f"Column '{column}': " if column else ""

    for i in range(1, len(keys)):
        previous, current = keys[i - 1], keys[i]
        out_of_order = current < previous if ascending else current > previous
        if out_of_order:
            raise SortOrderError(
                f"{where}Value at position {i} ({cleaned[i]}) {relation} "
                f"position {i - 1} ({cleaned[i - 1]}) in {direction} order"
            )
    return True


def classify_sort_indicator(class_names: Iterable[Optional[str]]) -> str:
    """
    Sort state from the class attributes found inside a column header.

    Any class containing ``asc`` means ascending and wins over ``desc``.

    Returns:
        ``"asc"``, ``"desc"`` or ``"none"``
    """
    classes = [c for c in class_names if c]
    if any(SORT_ASCENDING in c for c in classes):
        return SORT_ASCENDING
    if any(SORT_DESCENDING in c for c in classes):
        return SORT_DESCENDING
    return SORT_NONE


__all__ = [
    "SORT_ASCENDING",
    "SORT_DESCENDING",
    "SORT_NONE",
    "SortOrderError",
    "classify_sort_indicator",
    "leading_float",
    "parse_item_count",
    "parse_page_info",
    "parse_thumbnail_count",
    "verify_sorted",
]
