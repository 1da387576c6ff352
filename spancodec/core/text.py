"""
spancodec.core.text - Human-readable interchange for spans.

Spans are represented as JSON objects::

    {"trace_id": "AAAAAAAAAAAAAAAAAAAAAA==", "span_timestamp": 1700000000000000000}

The trace id is its 24-character base64 text form and the timestamp is a
bare integer of nanoseconds since the epoch, not a calendar date.

Functions:
    span_to_dict: Convert a Span to a JSON-compatible dictionary
    span_from_dict: Build a Span from such a dictionary
    dumps_batch: Serialize a batch of spans to a JSON array string
    loads_batch: Parse a JSON array string into spans
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

from spancodec.core.errors import DecodeError, EncodeError
from spancodec.core.model import DateTime, Span, TraceId


def span_to_dict(span: Span) -> Dict[str, Any]:
    """Convert a span to its interchange dictionary.

    Args:
        span: Span to convert

    Returns:
        Dictionary with "trace_id" (base64 str) and "span_timestamp" (int)
    """
    return {
        "trace_id": span.trace_id.base64(),
        "span_timestamp": span.span_timestamp.to_nanos(),
    }


def span_from_dict(data: Dict[str, Any]) -> Span:
    """Build a span from its interchange dictionary.

    Args:
        data: Dictionary with "trace_id" and "span_timestamp" keys

    Returns:
        The decoded Span

    Raises:
        DecodeError: If keys are missing or values have the wrong type
        LengthMismatchError: If the trace id text is not 24 characters
    """
    if not isinstance(data, dict):
        raise DecodeError(f"span must be an object, got {type(data).__name__}")

    missing = [key for key in ("trace_id", "span_timestamp") if key not in data]
    if missing:
        raise DecodeError(f"span is missing required fields: {', '.join(missing)}")

    trace_id = TraceId.decode_text(data["trace_id"])

    nanos = data["span_timestamp"]
    # JSON booleans are ints in Python
    if isinstance(nanos, bool) or not isinstance(nanos, int):
        raise DecodeError(
            f"span_timestamp must be an integer, got {type(nanos).__name__}"
        )
    try:
        timestamp = DateTime.from_nanos(nanos)
    except ValueError as e:
        raise DecodeError(str(e)) from e

    return Span(trace_id=trace_id, span_timestamp=timestamp)


def dumps_batch(spans: Sequence[Span], indent: Optional[int] = None) -> str:
    """Serialize spans to a JSON array.

    Args:
        spans: Spans to serialize, in order
        indent: Optional indentation passed to json.dumps

    Returns:
        JSON string

    Raises:
        EncodeError: If an element is not a Span
    """
    items: List[Dict[str, Any]] = []
    for index, span in enumerate(spans):
        if not isinstance(span, Span):
            raise EncodeError(
                f"element {index} is {type(span).__name__}, expected Span"
            )
        items.append(span_to_dict(span))
    return json.dumps(items, indent=indent)


def loads_batch(text: str) -> List[Span]:
    """Parse a JSON array produced by dumps_batch.

    Args:
        text: JSON string

    Returns:
        Spans in their original order

    Raises:
        DecodeError: If the JSON is invalid or any element is malformed
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"invalid JSON: {e}") from e

    if not isinstance(data, list):
        raise DecodeError(f"span batch must be an array, got {type(data).__name__}")

    return [span_from_dict(item) for item in data]
