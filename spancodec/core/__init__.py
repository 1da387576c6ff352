"""
spancodec.core - Core modules for span values, codecs, generation and fuzzing.

This subpackage contains the main functionality:
- model: DateTime, TraceId and Span value types
- errors: Error types raised by the codecs and harness
- binary: Length-prefixed binary wire codec
- text: JSON interchange codec
- generator: SpanGenerator for seedable random spans
- harness: RoundTripHarness property-testing loop
"""

from spancodec.core.model import DateTime, TraceId, Span
from spancodec.core.errors import (
    SpanCodecError,
    LengthMismatchError,
    DecodeError,
    EncodeError,
    RoundTripMismatchError,
)
from spancodec.core.binary import encode_batch, decode_batch, RECORD_SIZE
from spancodec.core.text import dumps_batch, loads_batch
from spancodec.core.generator import SpanGenerator
from spancodec.core.harness import HarnessConfig, HaltReason, RoundTripHarness

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
    "RECORD_SIZE",
    "dumps_batch",
    "loads_batch",
    "SpanGenerator",
    "HarnessConfig",
    "HaltReason",
    "RoundTripHarness",
]
