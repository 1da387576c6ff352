"""
spancodec.utils.compare - Order-sensitive comparison of span batches.

Two batches are equal only when they have the same length and every element
matches its counterpart at the same position, field by field. Set-style
comparison is never used: reordering is a defect.

Functions:
    first_mismatch: Index of the first position where two batches differ
    batches_equal: True when two batches are element-wise equal
    assert_batches_equal: Raise RoundTripMismatchError on the first difference
    describe_mismatch: One-line human-readable description of a difference
"""

from __future__ import annotations

from typing import Optional, Sequence

from spancodec.core.errors import RoundTripMismatchError
from spancodec.core.model import Span


def first_mismatch(expected: Sequence["Span"], actual: Sequence["Span"]) -> Optional[int]:
    """Find the first position where two batches differ.

    When one batch is a prefix of the other, the length of the shorter batch
    is returned.

    Args:
        expected: Original batch
        actual: Batch to compare against it

    Returns:
        Index of the first difference, or None if the batches are equal

    Example:
        >>> first_mismatch([a, b], [a, c])
        1
    """
    for index, (left, right) in enumerate(zip(expected, actual)):
        if left != right:
            return index

    if len(expected) != len(actual):
        return min(len(expected), len(actual))
    return None


def batches_equal(expected: Sequence["Span"], actual: Sequence["Span"]) -> bool:
    """Check element-wise, order-sensitive equality."""
    return len(expected) == len(actual) and first_mismatch(expected, actual) is None


def assert_batches_equal(expected: Sequence["Span"], actual: Sequence["Span"]) -> None:
    """Raise if two batches differ.

    Args:
        expected: Original batch
        actual: Decoded batch

    Raises:
        RoundTripMismatchError: With index=None when the lengths differ,
            otherwise with the first diverging index and both elements
    """
    if len(expected) != len(actual):
        raise RoundTripMismatchError(None, len(expected), len(actual))

    index = first_mismatch(expected, actual)
    if index is not None:
        raise RoundTripMismatchError(index, expected[index], actual[index])


def describe_mismatch(error: RoundTripMismatchError) -> str:
    """Describe a mismatch in terms of the fields that differ.

    Args:
        error: The mismatch to describe

    Returns:
        Description naming the element index and the diverging fields, or
        both elements in full when either one is not a Span
    """
    if error.index is None:
        return f"length {error.expected} became {error.actual}"

    expected, actual = error.expected, error.actual
    if not (isinstance(expected, Span) and isinstance(actual, Span)):
        return f"element {error.index}: expected {expected!r}, got {actual!r}"

    parts = []
    if expected.trace_id != actual.trace_id:
        parts.append(f"trace_id {expected.trace_id} != {actual.trace_id}")
    if expected.span_timestamp != actual.span_timestamp:
        parts.append(
            f"span_timestamp {expected.span_timestamp.to_nanos()} != "
            f"{actual.span_timestamp.to_nanos()}"
        )
    return f"element {error.index}: " + "; ".join(parts)
