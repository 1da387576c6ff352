"""
spancodec - Span identifier records and a round-trip fuzzer for their codecs.

This package provides immutable value types for a 128-bit trace id and a
nanosecond timestamp, a compact binary wire codec and a JSON text codec for
batches of spans, a seedable random span generator, and a harness that
checks decode(encode(batch)) == batch for random batches until it fails.

Example:
    >>> from spancodec import SpanGenerator, encode_batch, decode_batch
    >>> generator = SpanGenerator(seed=42)
    >>> batch = generator.random_batch()
    >>> decode_batch(encode_batch(batch)) == batch
    True
"""

__version__ = "0.1.0"
__author__ = "KR"
__email__ = "Karthickrajam18@gmail.com"

from spancodec.core.model import DateTime, TraceId, Span
from spancodec.core.errors import (
    SpanCodecError,
    LengthMismatchError,
    DecodeError,
    EncodeError,
    RoundTripMismatchError,
)
from spancodec.core.binary import encode_batch, decode_batch
from spancodec.core.text import dumps_batch, loads_batch
from spancodec.core.generator import SpanGenerator
from spancodec.core.harness import (
    HarnessConfig,
    HaltReason,
    RoundTripHarness,
    check_round_trip,
)

__all__ = [
    "DateTime",
    "TraceId",
    "Span",
    "SpanCodecError",
    "LengthMismatchError",
    "DecodeError",
    "EncodeError",
    "RoundTripMismatchError",
    "encode_batch",
    "decode_batch",
    "dumps_batch",
    "loads_batch",
    "SpanGenerator",
    "HarnessConfig",
    "HaltReason",
    "RoundTripHarness",
    "check_round_trip",
]
