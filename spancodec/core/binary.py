"""
spancodec.core.binary - Binary wire codec for span batches.

Wire Format:
============

    batch  := count:varint record*count
    record := trace_id:16 bytes span_timestamp:int64

The count is an unsigned LEB128 varint: seven bits per byte, least
significant group first, high bit set on every byte except the last.
Each record is exactly RECORD_SIZE (24) bytes: the trace id's raw bytes
followed by the timestamp as a little-endian two's complement int64.

Records are packed and unpacked in bulk through a numpy structured array,
so encoding a batch is a single buffer copy after the header.

Functions:
    encode_batch: Serialize a sequence of spans
    decode_batch: Parse bytes produced by encode_batch
    encode_span: Serialize a single record
    decode_span: Parse a single record
    encode_varint: Serialize an unsigned integer as LEB128
    decode_varint: Parse a LEB128 integer from a buffer
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

import numpy as np

from spancodec.core.errors import DecodeError, EncodeError
from spancodec.core.model import DateTime, Span, TraceId, I64_MAX, I64_MIN

logger = logging.getLogger(__name__)


SPAN_DTYPE = np.dtype([
    ("trace_id", np.uint8, (TraceId.BYTE_LENGTH,)),
    ("span_timestamp", "<i8"),
])

RECORD_SIZE: int = SPAN_DTYPE.itemsize

# A u64 needs at most ceil(64 / 7) = 10 groups
MAX_VARINT_LENGTH: int = 10
MAX_VARINT_VALUE: int = 2 ** 64 - 1


def encode_varint(value: int) -> bytes:
    """Encode an unsigned integer as LEB128.

    Args:
        value: Integer in [0, 2**64 - 1]

    Returns:
        Between 1 and 10 bytes

    Raises:
        EncodeError: If value is negative or wider than 64 bits
    """
    if value < 0 or value > MAX_VARINT_VALUE:
        raise EncodeError(f"varint value {value} is outside the u64 range")

    out = bytearray()
    while True:
        group = value & 0x7F
        value >>= 7
        if value:
            out.append(group | 0x80)
        else:
            out.append(group)
            return bytes(out)


def decode_varint(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode a LEB128 integer.

    Args:
        data: Buffer to read from
        offset: Position of the first varint byte

    Returns:
        Tuple of (value, offset just past the varint)

    Raises:
        DecodeError: If the varint is truncated, longer than 10 bytes or
            does not fit in 64 bits
    """
    result = 0
    shift = 0
    position = offset

    for _ in range(MAX_VARINT_LENGTH):
        if position >= len(data):
            raise DecodeError("unexpected end of input while reading varint")
        byte = data[position]
        position += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            if result > MAX_VARINT_VALUE:
                raise DecodeError("varint overflows 64 bits")
            return result, position
        shift += 7

    raise DecodeError(f"varint longer than {MAX_VARINT_LENGTH} bytes")


def _to_records(spans: Sequence[Span]) -> np.ndarray:
    """Pack spans into a structured array with SPAN_DTYPE."""
    records = np.empty(len(spans), dtype=SPAN_DTYPE)
    timestamps: List[int] = []

    for index, span in enumerate(spans):
        if not isinstance(span, Span):
            raise EncodeError(
                f"element {index} is {type(span).__name__}, expected Span"
            )
        nanos = span.span_timestamp.to_nanos()
        if not I64_MIN <= nanos <= I64_MAX:
            raise EncodeError(f"element {index} timestamp {nanos} exceeds int64")
        timestamps.append(nanos)

    if not timestamps:
        return records

    raw_ids = b"".join(span.trace_id.as_bytes() for span in spans)
    records["trace_id"] = np.frombuffer(raw_ids, dtype=np.uint8).reshape(
        -1, TraceId.BYTE_LENGTH
    )
    records["span_timestamp"] = timestamps
    return records


def _from_records(records: np.ndarray) -> List[Span]:
    """Unpack a structured array with SPAN_DTYPE into spans."""
    trace_ids = records["trace_id"]
    timestamps = records["span_timestamp"].tolist()

    return [
        Span(
            trace_id=TraceId(trace_ids[index].tobytes()),
            span_timestamp=DateTime.from_nanos(timestamps[index]),
        )
        for index in range(len(records))
    ]


def encode_batch(spans: Sequence[Span]) -> bytes:
    """Serialize a batch of spans.

    An empty batch is valid and encodes to the single byte 0x00.

    Args:
        spans: Spans to encode, in order

    Returns:
        The encoded buffer

    Raises:
        EncodeError: If an element is not a Span
    """
    header = encode_varint(len(spans))
    payload = _to_records(spans).tobytes()
    logger.debug("Encoded %d spans into %d bytes", len(spans), len(header) + len(payload))
    return header + payload


def decode_batch(data: bytes) -> List[Span]:
    """Parse a buffer produced by encode_batch.

    Args:
        data: The encoded buffer

    Returns:
        Spans in their original order

    Raises:
        DecodeError: If the header is malformed, the payload is truncated,
            or bytes remain after the last record
    """
    data = bytes(data)
    count, offset = decode_varint(data)

    expected = count * RECORD_SIZE
    available = len(data) - offset
    if available < expected:
        raise DecodeError(
            f"truncated input: {count} spans need {expected} bytes, "
            f"only {available} available"
        )
    if available > expected:
        raise DecodeError(
            f"{available - expected} trailing bytes after {count} spans"
        )
    if count == 0:
        return []

    records = np.frombuffer(data, dtype=SPAN_DTYPE, count=count, offset=offset)
    logger.debug("Decoded %d spans from %d bytes", count, len(data))
    return _from_records(records)


def encode_span(span: Span) -> bytes:
    """Serialize a single span as a RECORD_SIZE-byte record (no header)."""
    return _to_records([span]).tobytes()


def decode_span(data: bytes) -> Span:
    """Parse a single RECORD_SIZE-byte record.

    Raises:
        DecodeError: If data is not exactly RECORD_SIZE bytes
    """
    data = bytes(data)
    if len(data) != RECORD_SIZE:
        raise DecodeError(
            f"span record must be {RECORD_SIZE} bytes, got {len(data)}"
        )
    return _from_records(np.frombuffer(data, dtype=SPAN_DTYPE))[0]
