"""
spancodec.utils - Utility functions for comparing span batches.

This subpackage contains utility functions:
- compare: Order-sensitive batch equality and mismatch reporting
"""

from spancodec.utils.compare import (
    first_mismatch,
    batches_equal,
    assert_batches_equal,
    describe_mismatch,
)

__all__ = [
    "first_mismatch",
    "batches_equal",
    "assert_batches_equal",
    "describe_mismatch",
]
