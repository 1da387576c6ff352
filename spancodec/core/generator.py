"""
spancodec.core.generator - Random span generation for round-trip fuzzing.

All randomness flows through one explicit numpy Generator owned by a
SpanGenerator instance; nothing reads global random state. Passing a seed
makes a run reproducible, and the seed in use is always available so a
failing run can be replayed.

Generation Policy:
=================

- Trace ids: 16 bytes, each drawn independently and uniformly from [0, 255].
- Timestamps: uniform over [0, I64_MAX] by default. Pre-epoch (negative)
  timestamps are valid values and are included only when allow_negative=True.
- Batches: length uniform over [min_batch, max_batch], default [1, 10000].
  Spans are independent; batches are not deduplicated.

Classes:
    SpanGenerator: Seedable source of random trace ids, timestamps and spans

Functions:
    random_batch: Draw one batch from a numpy Generator
"""

from __future__ import annotations

from typing import List, Optional

import numpy as np

from spancodec.core.model import DateTime, Span, TraceId


DEFAULT_MIN_BATCH: int = 1
DEFAULT_MAX_BATCH: int = 10_000


class SpanGenerator:
    """Generates random spans and span batches.

    Attributes:
        rng: The numpy Generator all values are drawn from
        seed: Seed the generator was created with, or None when an
            existing Generator was supplied
        min_batch: Smallest batch length random_batch returns
        max_batch: Largest batch length random_batch returns
        allow_negative: Whether timestamps may be before the epoch

    Example:
        >>> generator = SpanGenerator(seed=7)
        >>> batch = generator.random_batch()
        >>> 1 <= len(batch) <= 10000
        True
    """

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        min_batch: int = DEFAULT_MIN_BATCH,
        max_batch: int = DEFAULT_MAX_BATCH,
        allow_negative: bool = False,
    ) -> None:
        """Initialize the generator.

        Args:
            rng: Existing Generator to draw from. Mutually exclusive with seed.
            seed: Seed for a new Generator. When neither rng nor seed is
                given, a seed is drawn from OS entropy and recorded.
            min_batch: Smallest batch length (>= 0)
            max_batch: Largest batch length (>= min_batch)
            allow_negative: Draw timestamps from the full int64 range

        Raises:
            ValueError: If both rng and seed are given or bounds are invalid
        """
        if rng is not None and seed is not None:
            raise ValueError("pass either rng or seed, not both")
        if min_batch < 0:
            raise ValueError("min_batch cannot be negative")
        if max_batch < min_batch:
            raise ValueError("max_batch cannot be less than min_batch")

        if rng is None:
            if seed is None:
                seed = int(np.random.SeedSequence().entropy)
            rng = np.random.default_rng(seed)

        self.rng = rng
        self.seed = seed
        self.min_batch = min_batch
        self.max_batch = max_batch
        self.allow_negative = allow_negative

    def random_trace_id(self) -> TraceId:
        """Draw a random trace id."""
        return TraceId.random(self.rng)

    def random_datetime(self) -> DateTime:
        """Draw a random timestamp according to allow_negative."""
        return DateTime.random(self.rng, allow_negative=self.allow_negative)

    def random_span(self) -> Span:
        """Draw a random span."""
        return Span.random(self.rng, allow_negative=self.allow_negative)

    def random_batch_length(self) -> int:
        """Draw a batch length from [min_batch, max_batch]."""
        return int(self.rng.integers(self.min_batch, self.max_batch, endpoint=True))

    def random_batch(self) -> List[Span]:
        """Draw a batch of independent random spans."""
        length = self.random_batch_length()
        return [self.random_span() for _ in range(length)]


def random_batch(rng: np.random.Generator) -> List[Span]:
    """Draw a batch with the default policy from an existing Generator.

    Args:
        rng: Random source to draw from

    Returns:
        Between 1 and 10000 random spans with non-negative timestamps
    """
    return SpanGenerator(rng=rng).random_batch()
