"""
spancodec.core.model - Value types for span identifier records.

This module provides the immutable value types that the binary and text
codecs serialize. All three types compare, order and hash by value.

Classes:
    DateTime: Nanosecond-precision instant stored as a signed 64-bit integer
    TraceId: Opaque 128-bit trace identifier stored as 16 raw bytes
    Span: Record pairing a TraceId with a DateTime
"""

from __future__ import annotations

import base64
import binascii
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Union

import numpy as np

from spancodec.core.errors import DecodeError, LengthMismatchError


I64_MIN: int = -(2 ** 63)
I64_MAX: int = 2 ** 63 - 1

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

BytesLike = Union[bytes, bytearray, memoryview]


@dataclass(frozen=True, order=True)
class DateTime:
    """A UNIX timestamp in nanoseconds.

    Attributes:
        timestamp_nanos: Nanoseconds since 1970-01-01T00:00:00Z, within
            the signed 64-bit range. Negative values are instants before
            the epoch.
    """
    timestamp_nanos: int

    def __post_init__(self) -> None:
        """Validate the timestamp after initialization."""
        value = self.timestamp_nanos
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise ValueError(
                f"timestamp_nanos must be an integer, got {type(value).__name__}"
            )
        value = int(value)
        if not I64_MIN <= value <= I64_MAX:
            raise ValueError(f"timestamp_nanos {value} is outside the int64 range")
        object.__setattr__(self, "timestamp_nanos", value)

    @classmethod
    def from_nanos(cls, nanoseconds: int) -> DateTime:
        """Create from a UNIX timestamp in nanoseconds."""
        return cls(nanoseconds)

    def to_nanos(self) -> int:
        """Convert to a UNIX timestamp in nanoseconds."""
        return self.timestamp_nanos

    @classmethod
    def random(cls, rng: np.random.Generator, allow_negative: bool = False) -> DateTime:
        """Draw a timestamp uniformly from [0, I64_MAX].

        With allow_negative=True the draw covers the full int64 range.
        """
        low = I64_MIN if allow_negative else 0
        return cls(int(rng.integers(low, I64_MAX, endpoint=True, dtype=np.int64)))

    @classmethod
    def now(cls) -> DateTime:
        """Current wall-clock time."""
        return cls(time.time_ns())

    @classmethod
    def from_datetime(cls, value: datetime) -> DateTime:
        """Create from a ``datetime.datetime``.

        Naive datetimes are interpreted as UTC.

        Args:
            value: The datetime to convert

        Returns:
            DateTime with microsecond precision (datetime has no nanoseconds)
        """
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        delta = value - _EPOCH
        seconds = delta.days * 86_400 + delta.seconds
        return cls(seconds * 1_000_000_000 + delta.microseconds * 1_000)

    def to_datetime(self) -> datetime:
        """Convert to an aware UTC ``datetime.datetime``.

        Sub-microsecond precision is truncated towards negative infinity.

        Raises:
            OverflowError: If the instant is outside the datetime range
        """
        micros = self.timestamp_nanos // 1_000
        return _EPOCH + timedelta(microseconds=micros)


@dataclass(frozen=True, order=True)
class TraceId:
    """A 128-bit trace identifier.

    The identifier is opaque: its 16 bytes are never interpreted. The text
    form is standard base64 with padding, which is always 24 characters.

    Attributes:
        data: The 16 raw bytes of the identifier
    """
    data: bytes

    BYTE_LENGTH = 16
    BASE64_LENGTH = 24

    def __post_init__(self) -> None:
        """Validate and freeze the identifier bytes."""
        if not isinstance(self.data, (bytes, bytearray, memoryview)):
            raise ValueError(
                f"trace ID must be bytes, got {type(self.data).__name__}"
            )
        data = bytes(self.data)
        if len(data) != self.BYTE_LENGTH:
            raise ValueError(
                f"trace ID must be {self.BYTE_LENGTH} bytes long, got {len(data)}"
            )
        object.__setattr__(self, "data", data)

    def __repr__(self) -> str:
        return f"TraceId({self.base64()!r})"

    def __str__(self) -> str:
        return self.base64()

    @classmethod
    def new(cls, data: BytesLike) -> TraceId:
        """Create from 16 raw bytes."""
        return cls(data)

    @classmethod
    def random(cls, rng: np.random.Generator) -> TraceId:
        """Create an identifier whose bytes are drawn uniformly from [0, 255].

        Args:
            rng: Random source to draw from
        """
        return cls(rng.bytes(cls.BYTE_LENGTH))

    def as_bytes(self) -> bytes:
        """Return the raw 16 bytes."""
        return self.data

    def to_bytes(self) -> bytearray:
        """Return an owned, mutable copy of the raw 16 bytes."""
        return bytearray(self.data)

    def base64(self) -> str:
        """Encode as standard padded base64.

        The text is produced on every call and never stored on the instance.
        """
        return base64.b64encode(self.data).decode("ascii")

    encode_text = base64

    @classmethod
    def decode_text(cls, text: str) -> TraceId:
        """Decode the 24-character base64 text form.

        Args:
            text: Standard padded base64 of exactly 16 bytes

        Returns:
            The decoded TraceId

        Raises:
            LengthMismatchError: If text is not exactly 24 characters
            DecodeError: If text is not valid canonical base64 of 16 bytes
        """
        if not isinstance(text, str):
            raise DecodeError(
                f"base64 trace ID must be a string, got {type(text).__name__}"
            )
        if len(text) != cls.BASE64_LENGTH:
            raise LengthMismatchError(cls.BASE64_LENGTH, len(text))

        try:
            data = base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecodeError(f"failed to decode base64 trace ID: {e}") from e

        # 24 characters can carry 16, 17 or 18 bytes depending on padding.
        if len(data) != cls.BYTE_LENGTH:
            raise DecodeError(
                f"base64 trace ID decodes to {len(data)} bytes, "
                f"expected {cls.BYTE_LENGTH}"
            )
        # Reject unused trailing bits so every id has one text form.
        if base64.b64encode(data).decode("ascii") != text:
            raise DecodeError("base64 trace ID has non-zero trailing bits")
        return cls(data)

    def to_hex(self) -> str:
        """Return the 32-character lowercase hex form."""
        return self.data.hex()

    @classmethod
    def from_hex(cls, text: str) -> TraceId:
        """Create from a 32-character hex string.

        Raises:
            LengthMismatchError: If text is not 32 characters
            DecodeError: If text contains non-hex characters
        """
        expected = cls.BYTE_LENGTH * 2
        if len(text) != expected:
            raise LengthMismatchError(expected, len(text))
        try:
            return cls(bytes.fromhex(text))
        except ValueError as e:
            raise DecodeError(f"failed to decode hex trace ID: {e}") from e

    def to_int(self) -> int:
        """Return the identifier as a 128-bit unsigned big-endian integer."""
        return int.from_bytes(self.data, "big")

    @classmethod
    def from_int(cls, value: int) -> TraceId:
        """Create from a 128-bit unsigned integer.

        Raises:
            ValueError: If value does not fit in 128 unsigned bits
        """
        if not 0 <= value < 1 << 128:
            raise ValueError(f"trace ID integer {value} does not fit in 128 bits")
        return cls(value.to_bytes(cls.BYTE_LENGTH, "big"))


@dataclass(frozen=True, order=True)
class Span:
    """A span identifier record.

    Ordering is by trace_id bytes first, then by span_timestamp.

    Attributes:
        trace_id: Identifier of the trace the span belongs to
        span_timestamp: Instant the span was recorded
    """
    trace_id: TraceId
    span_timestamp: DateTime

    def __post_init__(self) -> None:
        """Validate field types after initialization."""
        if not isinstance(self.trace_id, TraceId):
            raise ValueError("trace_id must be a TraceId")
        if not isinstance(self.span_timestamp, DateTime):
            raise ValueError("span_timestamp must be a DateTime")

    @classmethod
    def random(cls, rng: np.random.Generator, allow_negative: bool = False) -> Span:
        """Create a span with a random trace id and timestamp.

        Args:
            rng: Random source to draw from
            allow_negative: Draw the timestamp from the full int64 range
                instead of [0, I64_MAX]

        Returns:
            A new random Span
        """
        return cls(
            trace_id=TraceId.random(rng),
            span_timestamp=DateTime.random(rng, allow_negative=allow_negative),
        )
