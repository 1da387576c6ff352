"""
Unit tests for spancodec.core.model module.

Tests cover the DateTime, TraceId and Span value types: construction,
validation, conversions, the base64 text form and ordering.
"""

from datetime import datetime, timezone

import numpy as np
import pytest

from spancodec.core.errors import DecodeError, LengthMismatchError
from spancodec.core.model import DateTime, Span, TraceId, I64_MAX, I64_MIN


# Fixtures


@pytest.fixture
def rng() -> np.random.Generator:
    """Create a seeded random generator."""
    return np.random.default_rng(1234)


@pytest.fixture
def counting_trace_id() -> TraceId:
    """Create a trace id with bytes 1..16."""
    return TraceId(bytes(range(1, 17)))


class TestDateTime:
    """Tests for DateTime construction and conversion."""

    def test_from_nanos_round_trip(self) -> None:
        """Test that from_nanos stores the value verbatim."""
        assert DateTime.from_nanos(1_700_000_000_000_000_000).to_nanos() == 1_700_000_000_000_000_000

    def test_int64_bounds_accepted(self) -> None:
        """Test that both ends of the int64 range are valid."""
        assert DateTime.from_nanos(I64_MIN).to_nanos() == -(2 ** 63)
        assert DateTime.from_nanos(I64_MAX).to_nanos() == 2 ** 63 - 1

    def test_negative_is_pre_epoch(self) -> None:
        """Test that negative timestamps are valid values."""
        assert DateTime.from_nanos(-1).to_nanos() == -1

    @pytest.mark.parametrize("value", [I64_MAX + 1, I64_MIN - 1, 2 ** 100])
    def test_out_of_range_raises_error(self, value: int) -> None:
        """Test that values outside int64 are rejected."""
        with pytest.raises(ValueError, match="outside the int64 range"):
            DateTime.from_nanos(value)

    @pytest.mark.parametrize("value", [1.5, "10", True, None])
    def test_non_integer_raises_error(self, value: object) -> None:
        """Test that non-integers, including bools, are rejected."""
        with pytest.raises(ValueError, match="must be an integer"):
            DateTime.from_nanos(value)

    def test_numpy_integer_is_normalized(self) -> None:
        """Test that numpy integers are stored as Python ints."""
        value = DateTime.from_nanos(np.int64(42))
        assert value.to_nanos() == 42
        assert type(value.to_nanos()) is int

    def test_equality_and_hash(self) -> None:
        """Test value-based equality and hashing."""
        assert DateTime.from_nanos(5) == DateTime.from_nanos(5)
        assert len({DateTime.from_nanos(5), DateTime.from_nanos(5)}) == 1

    def test_ordering(self) -> None:
        """Test numeric ordering of timestamps."""
        assert DateTime.from_nanos(-5) < DateTime.from_nanos(0) < DateTime.from_nanos(5)

    def test_from_datetime(self) -> None:
        """Test conversion from an aware datetime."""
        value = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
        assert DateTime.from_datetime(value).to_nanos() == 1_700_000_000_000_000_000

    def test_from_naive_datetime_is_utc(self) -> None:
        """Test that naive datetimes are treated as UTC."""
        assert DateTime.from_datetime(datetime(1970, 1, 1, 0, 0, 1)).to_nanos() == 1_000_000_000

    def test_to_datetime_truncates_to_microseconds(self) -> None:
        """Test conversion to datetime drops sub-microsecond precision."""
        value = DateTime.from_nanos(1_500).to_datetime()
        assert value == datetime(1970, 1, 1, 0, 0, 0, 1, tzinfo=timezone.utc)

    def test_to_datetime_before_epoch(self) -> None:
        """Test conversion of a pre-epoch timestamp."""
        value = DateTime.from_nanos(-1).to_datetime()
        assert value == datetime(1969, 12, 31, 23, 59, 59, 999999, tzinfo=timezone.utc)

    def test_now_is_positive(self) -> None:
        """Test that now() returns a post-epoch timestamp."""
        assert DateTime.now().to_nanos() > 0

    def test_random_shares_draw_with_span(self) -> None:
        """Test that Span.random draws its timestamp through DateTime.random."""
        span = Span.random(np.random.default_rng(4))
        replay = np.random.default_rng(4)
        TraceId.random(replay)
        assert span.span_timestamp == DateTime.random(replay)

    def test_random_sign_policy(self, rng: np.random.Generator) -> None:
        """Test that only allow_negative reaches below the epoch."""
        assert all(DateTime.random(rng).to_nanos() >= 0 for _ in range(500))
        assert any(DateTime.random(rng, allow_negative=True).to_nanos() < 0 for _ in range(500))


class TestTraceId:
    """Tests for TraceId construction and byte access."""

    def test_new_stores_bytes(self, counting_trace_id: TraceId) -> None:
        """Test that the raw bytes are kept verbatim."""
        assert counting_trace_id.as_bytes() == bytes(range(1, 17))
        assert TraceId.new(bytes(16)).as_bytes() == bytes(16)

    def test_accepts_bytearray(self) -> None:
        """Test that bytearray input is frozen into bytes."""
        source = bytearray(16)
        trace_id = TraceId(source)
        source[0] = 0xFF
        assert trace_id.as_bytes() == bytes(16)

    @pytest.mark.parametrize("length", [0, 15, 17, 32])
    def test_wrong_length_raises_error(self, length: int) -> None:
        """Test that anything other than 16 bytes is rejected."""
        with pytest.raises(ValueError, match="must be 16 bytes long"):
            TraceId(bytes(length))

    def test_non_bytes_raises_error(self) -> None:
        """Test that strings are not accepted as raw bytes."""
        with pytest.raises(ValueError, match="must be bytes"):
            TraceId("0123456789abcdef")

    def test_to_bytes_returns_copy(self, counting_trace_id: TraceId) -> None:
        """Test that to_bytes returns an independent mutable copy."""
        copy = counting_trace_id.to_bytes()
        copy[0] = 0
        assert isinstance(copy, bytearray)
        assert counting_trace_id.as_bytes()[0] == 1

    def test_random_uses_rng(self) -> None:
        """Test that identically seeded generators give identical ids."""
        first = TraceId.random(np.random.default_rng(7))
        second = TraceId.random(np.random.default_rng(7))
        assert first == second
        assert len(first.as_bytes()) == 16

    def test_ordering_is_bytewise(self) -> None:
        """Test that ordering compares bytes lexicographically."""
        low = TraceId(bytes(15) + b"\xff")
        high = TraceId(b"\x01" + bytes(15))
        assert low < high

    def test_hex_round_trip(self, counting_trace_id: TraceId) -> None:
        """Test hex conversion both ways."""
        text = counting_trace_id.to_hex()
        assert text == "0102030405060708090a0b0c0d0e0f10"
        assert TraceId.from_hex(text) == counting_trace_id

    def test_from_hex_wrong_length(self) -> None:
        """Test that hex text must be 32 characters."""
        with pytest.raises(LengthMismatchError) as exc_info:
            TraceId.from_hex("abc")
        assert exc_info.value.expected == 32

    def test_from_hex_invalid_characters(self) -> None:
        """Test that non-hex characters are a decode error."""
        with pytest.raises(DecodeError):
            TraceId.from_hex("zz" * 16)

    def test_int_round_trip(self) -> None:
        """Test 128-bit integer conversion both ways."""
        trace_id = TraceId.from_int(1)
        assert trace_id.to_hex() == "0" * 31 + "1"
        assert trace_id.to_int() == 1
        assert TraceId.from_int(2 ** 128 - 1).as_bytes() == b"\xff" * 16

    def test_from_int_out_of_range(self) -> None:
        """Test that integers wider than 128 bits are rejected."""
        with pytest.raises(ValueError):
            TraceId.from_int(2 ** 128)
        with pytest.raises(ValueError):
            TraceId.from_int(-1)


class TestTraceIdText:
    """Tests for the base64 text form of TraceId."""

    def test_zero_id_encodes_to_known_text(self) -> None:
        """Test the all-zero id encodes to 22 A's plus padding."""
        text = TraceId.new(bytes(16)).base64()
        assert text == "AAAAAAAAAAAAAAAAAAAAAA=="
        assert len(text) == 24

    def test_zero_id_decodes_back(self) -> None:
        """Test the all-zero text decodes to 16 zero bytes."""
        assert TraceId.decode_text("AAAAAAAAAAAAAAAAAAAAAA==").as_bytes() == bytes(16)

    def test_str_and_encode_text_match_base64(self, counting_trace_id: TraceId) -> None:
        """Test that str() and encode_text() give the base64 form."""
        assert str(counting_trace_id) == counting_trace_id.base64()
        assert counting_trace_id.encode_text() == counting_trace_id.base64()

    def test_text_is_not_cached(self, counting_trace_id: TraceId) -> None:
        """Test that the base64 text is not stored on the instance."""
        counting_trace_id.base64()
        assert "base64" not in vars(counting_trace_id)

    def test_repr_shows_base64(self) -> None:
        """Test repr uses the text form."""
        assert repr(TraceId(bytes(16))) == "TraceId('AAAAAAAAAAAAAAAAAAAAAA==')"

    def test_all_ones_round_trip(self) -> None:
        """Test a high-bit id survives the text round trip."""
        trace_id = TraceId(b"\xff" * 16)
        assert TraceId.decode_text(trace_id.base64()) == trace_id

    @pytest.mark.parametrize("length", [0, 1, 22, 23, 25, 32])
    def test_wrong_length_raises_length_mismatch(self, length: int) -> None:
        """Test that text of any length but 24 fails with LengthMismatchError."""
        with pytest.raises(LengthMismatchError) as exc_info:
            TraceId.decode_text("A" * length)
        assert exc_info.value.expected == 24
        assert exc_info.value.actual == length

    def test_length_mismatch_is_decode_failure_family(self) -> None:
        """Test LengthMismatchError is still a ValueError."""
        with pytest.raises(ValueError):
            TraceId.decode_text("A" * 23)

    def test_invalid_alphabet_raises_decode_error(self) -> None:
        """Test that characters outside the base64 alphabet are rejected."""
        with pytest.raises(DecodeError) as exc_info:
            TraceId.decode_text("!" * 22 + "==")
        assert "failed to decode base64 trace ID" in exc_info.value.reason

    def test_url_safe_alphabet_rejected(self) -> None:
        """Test that the URL-safe alphabet is not accepted."""
        with pytest.raises(DecodeError):
            TraceId.decode_text("_" * 22 + "==")

    def test_non_ascii_raises_decode_error(self) -> None:
        """Test that non-ASCII characters are a decode error, not a crash."""
        with pytest.raises(DecodeError):
            TraceId.decode_text("é" * 22 + "==")

    @pytest.mark.parametrize("text", ["A" * 24, "A" * 23 + "="])
    def test_wrong_decoded_size_raises_decode_error(self, text: str) -> None:
        """Test that 24 characters encoding 17 or 18 bytes are rejected."""
        with pytest.raises(DecodeError, match="expected 16"):
            TraceId.decode_text(text)

    def test_non_canonical_trailing_bits_rejected(self) -> None:
        """Test that unused trailing bits must be zero."""
        with pytest.raises(DecodeError):
            TraceId.decode_text("AAAAAAAAAAAAAAAAAAAAAB==")

    def test_non_string_raises_decode_error(self) -> None:
        """Test that bytes input is rejected."""
        with pytest.raises(DecodeError, match="must be a string"):
            TraceId.decode_text(b"AAAAAAAAAAAAAAAAAAAAAA==")


class TestSpan:
    """Tests for the Span record."""

    def test_structural_equality(self, counting_trace_id: TraceId) -> None:
        """Test that spans with equal fields are equal and hash alike."""
        first = Span(counting_trace_id, DateTime.from_nanos(10))
        second = Span(TraceId(bytes(range(1, 17))), DateTime.from_nanos(10))
        assert first == second
        assert hash(first) == hash(second)

    def test_inequality_on_either_field(self, counting_trace_id: TraceId) -> None:
        """Test that a difference in either field breaks equality."""
        base = Span(counting_trace_id, DateTime.from_nanos(10))
        assert base != Span(counting_trace_id, DateTime.from_nanos(11))
        assert base != Span(TraceId(bytes(16)), DateTime.from_nanos(10))

    def test_ordering_trace_id_first(self) -> None:
        """Test that trace id dominates ordering over timestamp."""
        early_id = Span(TraceId(bytes(16)), DateTime.from_nanos(100))
        late_id = Span(TraceId(b"\x01" + bytes(15)), DateTime.from_nanos(0))
        assert early_id < late_id

    def test_ordering_falls_back_to_timestamp(self) -> None:
        """Test that equal trace ids are ordered by timestamp."""
        trace_id = TraceId(bytes(16))
        assert Span(trace_id, DateTime.from_nanos(-1)) < Span(trace_id, DateTime.from_nanos(0))

    def test_invalid_field_types_raise_error(self) -> None:
        """Test that raw values are not accepted in place of the types."""
        with pytest.raises(ValueError, match="trace_id must be a TraceId"):
            Span(bytes(16), DateTime.from_nanos(0))
        with pytest.raises(ValueError, match="span_timestamp must be a DateTime"):
            Span(TraceId(bytes(16)), 0)

    def test_random_timestamps_non_negative_by_default(self, rng: np.random.Generator) -> None:
        """Test the default generator policy excludes pre-epoch timestamps."""
        spans = [Span.random(rng) for _ in range(500)]
        assert all(span.span_timestamp.to_nanos() >= 0 for span in spans)

    def test_random_allow_negative(self, rng: np.random.Generator) -> None:
        """Test that allow_negative produces pre-epoch timestamps."""
        spans = [Span.random(rng, allow_negative=True) for _ in range(500)]
        assert any(span.span_timestamp.to_nanos() < 0 for span in spans)

    def test_random_is_frozen(self, rng: np.random.Generator) -> None:
        """Test that spans cannot be mutated."""
        span = Span.random(rng)
        with pytest.raises(AttributeError):
            span.trace_id = TraceId(bytes(16))
