"""
spancodec.core.errors - Error types raised by the span codecs and harness.

All errors derive from SpanCodecError, which is itself a ValueError so that
callers treating malformed input as a value problem keep working.

Classes:
    SpanCodecError: Base class for every codec error
    LengthMismatchError: Text trace id of the wrong length
    DecodeError: Malformed base64, JSON or binary input
    EncodeError: A value the binary encoder cannot represent
    RoundTripMismatchError: Decoded batch differs from the original
"""

from __future__ import annotations

from typing import Any, Optional


class SpanCodecError(ValueError):
    """Base exception for all spancodec errors."""


class LengthMismatchError(SpanCodecError):
    """Raised when a text trace id is not exactly the expected length.

    Attributes:
        expected: Required number of characters
        actual: Number of characters received
    """

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"base64 trace ID must be {expected} characters long, got {actual}"
        )


class DecodeError(SpanCodecError):
    """Raised when input cannot be decoded.

    Attributes:
        reason: Description of what was wrong with the input
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"decode failed: {reason}")


class EncodeError(SpanCodecError):
    """Raised when a value cannot be encoded."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"encode failed: {reason}")


class RoundTripMismatchError(SpanCodecError):
    """Raised when a decoded batch is not equal to the original batch.

    Attributes:
        index: Position of the first diverging element, or None when the
            batches differ in length
        expected: Original element (or original length when index is None)
        actual: Decoded element (or decoded length when index is None)
    """

    def __init__(self, index: Optional[int], expected: Any, actual: Any) -> None:
        self.index = index
        self.expected = expected
        self.actual = actual
        if index is None:
            message = f"batch length mismatch: expected {expected}, got {actual}"
        else:
            message = (
                f"element {index} diverged: expected {expected!r}, got {actual!r}"
            )
        super().__init__(message)
