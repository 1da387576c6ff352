"""
spancodec.__main__ - Entry point for running spancodec as a module.

Usage:
    python -m spancodec [options]

This module enables running the round-trip fuzzer using:
    python -m spancodec -n 1000
"""

import sys

from spancodec.cli import main

if __name__ == "__main__":
    sys.exit(main())
