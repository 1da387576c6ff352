"""
spancodec.core.harness - Round-trip property harness for span codecs.

The harness repeatedly generates a random span batch, encodes it, decodes
the result and checks that the decoded batch equals the original element by
element and in order. The first failure halts the harness for good: a halt
caused by a failure is a defect signal, never something to retry.

State Machine:
=============

    RUNNING --(iteration ok)--------------> RUNNING
    RUNNING --(encoder raised)------------> HALTED(ENCODE_FAILURE)
    RUNNING --(decoder raised)------------> HALTED(DECODE_FAILURE)
    RUNNING --(decoded != original)-------> HALTED(MISMATCH_FAILURE)
    RUNNING --(max_iterations reached)----> HALTED(ITERATION_LIMIT)
    RUNNING --(time_budget exhausted)-----> HALTED(TIME_BUDGET)
    RUNNING --(should_stop() returned True)-> HALTED(CANCELLED)

With neither max_iterations nor time_budget configured, run() only returns
on a failure or cancellation.

Classes:
    HarnessConfig: Run bounds and generation policy
    HarnessState: RUNNING or HALTED
    HaltReason: Why the harness halted
    IterationResult: Outcome of a single iteration
    HarnessReport: Summary of a run
    RoundTripHarness: The harness itself

Functions:
    check_round_trip: Round-trip one batch, raising on any failure
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence as SequenceABC
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from spancodec.core.binary import decode_batch, encode_batch
from spancodec.core.errors import DecodeError, EncodeError, RoundTripMismatchError
from spancodec.core.generator import DEFAULT_MAX_BATCH, DEFAULT_MIN_BATCH, SpanGenerator
from spancodec.core.model import Span
from spancodec.utils.compare import assert_batches_equal, describe_mismatch

logger = logging.getLogger(__name__)

Encoder = Callable[[Sequence[Span]], Any]
Decoder = Callable[[Any], List[Span]]


@dataclass(frozen=True)
class HarnessConfig:
    """Configuration for a harness run.

    Attributes:
        max_iterations: Stop cleanly after this many iterations (None = no limit)
        time_budget: Stop cleanly after this many seconds (None = no limit)
        seed: Seed for the span generator (None = fresh entropy)
        min_batch: Smallest generated batch length
        max_batch: Largest generated batch length
        allow_negative: Generate pre-epoch timestamps too
        log_every: Log progress every N iterations at DEBUG (0 disables)
    """
    max_iterations: Optional[int] = None
    time_budget: Optional[float] = None
    seed: Optional[int] = None
    min_batch: int = DEFAULT_MIN_BATCH
    max_batch: int = DEFAULT_MAX_BATCH
    allow_negative: bool = False
    log_every: int = 100

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.max_iterations is not None and self.max_iterations < 0:
            raise ValueError("max_iterations cannot be negative")
        if self.time_budget is not None and self.time_budget < 0:
            raise ValueError("time_budget cannot be negative")
        if self.min_batch < 0:
            raise ValueError("min_batch cannot be negative")
        if self.max_batch < self.min_batch:
            raise ValueError("max_batch cannot be less than min_batch")
        if self.log_every < 0:
            raise ValueError("log_every cannot be negative")

    @property
    def bounded(self) -> bool:
        """Whether run() will stop on its own without a failure."""
        return self.max_iterations is not None or self.time_budget is not None


class HarnessState(Enum):
    RUNNING = "running"
    HALTED = "halted"


class HaltReason(Enum):
    ENCODE_FAILURE = "encode_failure"
    DECODE_FAILURE = "decode_failure"
    MISMATCH_FAILURE = "mismatch_failure"
    ITERATION_LIMIT = "iteration_limit"
    TIME_BUDGET = "time_budget"
    CANCELLED = "cancelled"

    @property
    def is_failure(self) -> bool:
        return self in _FAILURES


_FAILURES = frozenset({
    HaltReason.ENCODE_FAILURE,
    HaltReason.DECODE_FAILURE,
    HaltReason.MISMATCH_FAILURE,
})


@dataclass
class IterationResult:
    """Outcome of a single harness iteration.

    Attributes:
        iteration: 1-based iteration number
        batch_size: Number of spans in the generated batch
        encoded_size: Length of the encoded buffer (0 if encoding failed)
        halt_reason: Failure reason, or None when the round trip held
        error: The exception behind the failure, if any
    """
    iteration: int
    batch_size: int
    encoded_size: int = 0
    halt_reason: Optional[HaltReason] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.halt_reason is None


@dataclass
class HarnessReport:
    """Summary of a harness run.

    Attributes:
        iterations: Iterations completed, including a failing one
        spans_checked: Total spans generated across all iterations
        bytes_encoded: Total encoded bytes across all iterations
        elapsed: Wall-clock seconds spent in run()
        halt_reason: Why the harness halted
        error: Exception behind a failure halt
        seed: Generator seed, for replaying the run
    """
    iterations: int
    spans_checked: int
    bytes_encoded: int
    elapsed: float
    halt_reason: Optional[HaltReason]
    error: Optional[Exception] = None
    seed: Optional[int] = None

    @property
    def ok(self) -> bool:
        """True unless the run halted on an encode, decode or mismatch failure."""
        return self.halt_reason is None or not self.halt_reason.is_failure


def _round_trip(
    batch: Sequence[Span], encoder: Encoder, decoder: Decoder
) -> tuple[Any, List[Span]]:
    """Encode then decode a batch, tagging failures with their stage."""
    try:
        buffer = encoder(batch)
    except EncodeError:
        raise
    except Exception as e:
        raise EncodeError(f"{type(e).__name__}: {e}") from e

    if not isinstance(buffer, (bytes, bytearray, memoryview, str)):
        raise EncodeError(f"encoder returned {type(buffer).__name__}, expected bytes or str")

    try:
        decoded = decoder(buffer)
    except DecodeError:
        raise
    except Exception as e:
        raise DecodeError(f"{type(e).__name__}: {e}") from e

    if not isinstance(decoded, SequenceABC):
        raise DecodeError(f"decoder returned {type(decoded).__name__}, expected a sequence")

    assert_batches_equal(batch, decoded)
    return buffer, decoded


def check_round_trip(
    batch: Sequence[Span],
    encoder: Encoder = encode_batch,
    decoder: Decoder = decode_batch,
) -> List[Span]:
    """Round-trip one batch and verify the result.

    Args:
        batch: Spans to round-trip
        encoder: Function producing a buffer from spans
        decoder: Function producing spans from a buffer

    Returns:
        The decoded batch, equal to batch

    Raises:
        EncodeError: If the encoder failed
        DecodeError: If the decoder failed
        RoundTripMismatchError: If the decoded batch differs from batch
    """
    _, decoded = _round_trip(batch, encoder, decoder)
    return decoded


def _generation_conflicts(config: HarnessConfig, generator: SpanGenerator) -> List[str]:
    """Config generation options set away from their default that the generator does not use."""
    defaults = {field.name: field.default for field in fields(HarnessConfig)}
    conflicts = []
    for name in ("seed", "min_batch", "max_batch", "allow_negative"):
        value = getattr(config, name)
        if value != defaults[name] and value != getattr(generator, name):
            conflicts.append(f"{name}={value!r}")
    return conflicts


class RoundTripHarness:
    """Drives the generate, encode, decode, compare loop.

    Example:
        >>> harness = RoundTripHarness(HarnessConfig(max_iterations=10, seed=1))
        >>> report = harness.run()
        >>> report.ok, report.halt_reason
        (True, <HaltReason.ITERATION_LIMIT: 'iteration_limit'>)
    """

    def __init__(
        self,
        config: Optional[HarnessConfig] = None,
        generator: Optional[SpanGenerator] = None,
        encoder: Encoder = encode_batch,
        decoder: Decoder = decode_batch,
    ) -> None:
        """Initialize the harness.

        Args:
            config: Run configuration; defaults to an unbounded run
            generator: Span source; built from config when omitted. A supplied
                generator keeps its own seed, batch bounds and sign policy
            encoder: Function producing a buffer from spans
            decoder: Function producing spans from a buffer

        Raises:
            ValueError: If config explicitly sets a generation option that
                disagrees with the supplied generator
        """
        self.config = config or HarnessConfig()
        if generator is not None:
            conflicts = _generation_conflicts(self.config, generator)
            if conflicts:
                raise ValueError(
                    "config disagrees with the supplied generator: " + ", ".join(conflicts)
                )
        self.generator = generator or SpanGenerator(
            seed=self.config.seed,
            min_batch=self.config.min_batch,
            max_batch=self.config.max_batch,
            allow_negative=self.config.allow_negative,
        )
        self.encoder = encoder
        self.decoder = decoder

        self.state = HarnessState.RUNNING
        self.halt_reason: Optional[HaltReason] = None
        self.error: Optional[Exception] = None
        self.iterations = 0
        self.spans_checked = 0
        self.bytes_encoded = 0

    def _ensure_running(self) -> None:
        if self.state is HarnessState.HALTED:
            raise RuntimeError(
                f"harness already halted ({self.halt_reason.value}); create a new one"
            )

    def _halt(self, reason: HaltReason, error: Optional[Exception] = None) -> None:
        self.state = HarnessState.HALTED
        self.halt_reason = reason
        self.error = error

    def run_iteration(self, batch: Optional[Sequence[Span]] = None) -> IterationResult:
        """Run one generate, encode, decode, compare cycle.

        Args:
            batch: Batch to check instead of a generated one

        Returns:
            IterationResult; when it is not ok the harness is HALTED

        Raises:
            RuntimeError: If the harness has already halted
        """
        self._ensure_running()

        if batch is None:
            batch = self.generator.random_batch()
        self.iterations += 1
        self.spans_checked += len(batch)
        result = IterationResult(iteration=self.iterations, batch_size=len(batch))

        try:
            buffer, _ = _round_trip(batch, self.encoder, self.decoder)
        except EncodeError as e:
            result.halt_reason = HaltReason.ENCODE_FAILURE
            result.error = e
        except DecodeError as e:
            result.halt_reason = HaltReason.DECODE_FAILURE
            result.error = e
        except RoundTripMismatchError as e:
            result.halt_reason = HaltReason.MISMATCH_FAILURE
            result.error = e
        else:
            result.encoded_size = len(buffer)
            self.bytes_encoded += len(buffer)
            return result

        self._halt(result.halt_reason, result.error)
        if isinstance(result.error, RoundTripMismatchError):
            detail = describe_mismatch(result.error)
        else:
            detail = str(result.error)
        logger.error(
            "Round trip failed at iteration %d (%d spans, seed=%s): %s: %s",
            self.iterations,
            len(batch),
            self.generator.seed,
            result.halt_reason.value,
            detail,
        )
        return result

    def run(self, should_stop: Optional[Callable[[], bool]] = None) -> HarnessReport:
        """Loop until a failure, a configured bound, or cancellation.

        Args:
            should_stop: Polled before each iteration; returning True halts
                the harness with HaltReason.CANCELLED

        Returns:
            HarnessReport describing the run

        Raises:
            RuntimeError: If the harness has already halted
        """
        self._ensure_running()
        config = self.config
        start = time.monotonic()

        logger.info(
            "Starting round-trip harness: seed=%s, max_iterations=%s, time_budget=%s",
            self.generator.seed,
            config.max_iterations,
            config.time_budget,
        )

        while self.state is HarnessState.RUNNING:
            if config.max_iterations is not None and self.iterations >= config.max_iterations:
                self._halt(HaltReason.ITERATION_LIMIT)
                break
            if config.time_budget is not None and time.monotonic() - start >= config.time_budget:
                self._halt(HaltReason.TIME_BUDGET)
                break
            if should_stop is not None and should_stop():
                self._halt(HaltReason.CANCELLED)
                break

            result = self.run_iteration()

            if result.ok and config.log_every and self.iterations % config.log_every == 0:
                logger.debug(
                    "%d iterations, %d spans, %d bytes round-tripped",
                    self.iterations,
                    self.spans_checked,
                    self.bytes_encoded,
                )

        report = HarnessReport(
            iterations=self.iterations,
            spans_checked=self.spans_checked,
            bytes_encoded=self.bytes_encoded,
            elapsed=time.monotonic() - start,
            halt_reason=self.halt_reason,
            error=self.error,
            seed=self.generator.seed,
        )

        if report.ok:
            logger.info(
                "Harness stopped (%s) after %d iterations, %d spans in %.2fs",
                report.halt_reason.value,
                report.iterations,
                report.spans_checked,
                report.elapsed,
            )
        return report
