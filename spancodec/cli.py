"""
spancodec.cli - Command-line round-trip fuzzer.

This module runs the round-trip harness from the command line. Without an
iteration limit or time budget it fuzzes until a failure is found or the
process is interrupted.

Usage:
    spancodec [-n/--max-iterations <count>] [-t/--time-budget <seconds>]
              [-s/--seed <seed>] [--min-batch <n>] [--max-batch <n>]
              [--allow-negative] [--format binary|json] [-v]

Examples:
    spancodec -n 1000
    spancodec -t 60 --allow-negative
    spancodec -s 1234 -n 1 -v

Exit codes:
    0  stopped cleanly (limit reached or interrupted)
    1  encode failure
    2  decode failure
    3  round-trip mismatch
    4  invalid arguments or unexpected error
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from typing import List

from spancodec import __version__
from spancodec.core.binary import decode_batch, encode_batch
from spancodec.core.harness import HaltReason, HarnessConfig, HarnessReport, RoundTripHarness
from spancodec.core.text import dumps_batch, loads_batch

logger = logging.getLogger(__name__)

EXIT_CODES = {
    HaltReason.ENCODE_FAILURE: 1,
    HaltReason.DECODE_FAILURE: 2,
    HaltReason.MISMATCH_FAILURE: 3,
}

CODECS = {
    "binary": (encode_batch, decode_batch),
    "json": (dumps_batch, loads_batch),
}


def parse_args(args: List[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        args: List of arguments (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="spancodec",
        description="Fuzz the span codecs with random round trips",
        epilog="Example: spancodec -n 1000 --seed 42",
    )

    parser.add_argument(
        "-n", "--max-iterations",
        type=int,
        default=None,
        help="Stop after this many batches (default: run until failure)",
    )

    parser.add_argument(
        "-t", "--time-budget",
        type=float,
        default=None,
        help="Stop after this many seconds (default: run until failure)",
    )

    parser.add_argument(
        "-s", "--seed",
        type=int,
        default=None,
        help="Seed for the random generator, to replay a run",
    )

    parser.add_argument(
        "--min-batch",
        type=int,
        default=1,
        help="Smallest batch length (default: 1)",
    )

    parser.add_argument(
        "--max-batch",
        type=int,
        default=10000,
        help="Largest batch length (default: 10000)",
    )

    parser.add_argument(
        "--allow-negative",
        action="store_true",
        help="Also generate pre-epoch (negative) timestamps",
    )

    parser.add_argument(
        "--format",
        type=str,
        choices=sorted(CODECS),
        default="binary",
        help="Codec to fuzz: binary wire format or json text (default: binary)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(args)


def build_config(parsed_args: argparse.Namespace) -> HarnessConfig:
    """Build a HarnessConfig from parsed arguments.

    Raises:
        ValueError: If the arguments describe an invalid configuration
    """
    return HarnessConfig(
        max_iterations=parsed_args.max_iterations,
        time_budget=parsed_args.time_budget,
        seed=parsed_args.seed,
        min_batch=parsed_args.min_batch,
        max_batch=parsed_args.max_batch,
        allow_negative=parsed_args.allow_negative,
    )


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr, at DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def format_report(report: HarnessReport) -> str:
    """Render a one-paragraph summary of a harness run.

    Args:
        report: The finished run

    Returns:
        Summary naming the stage that failed, if any
    """
    lines = [
        f"halt reason: {report.halt_reason.value if report.halt_reason else 'none'}",
        f"iterations: {report.iterations}",
        f"spans checked: {report.spans_checked}",
        f"bytes encoded: {report.bytes_encoded}",
        f"elapsed: {report.elapsed:.2f}s",
        f"seed: {report.seed}",
    ]
    if report.error is not None:
        lines.append(f"error: {report.error}")
    return "\n".join(lines)


def main(args: List[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        args: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for a clean stop, non-zero for failures)
    """
    try:
        parsed_args = parse_args(args)
    except SystemExit as e:
        # exit code 2 belongs to decode failures, not argparse usage errors
        if e.code in (0, None):
            raise
        return 4

    try:
        configure_logging(parsed_args.verbose)

        config = build_config(parsed_args)
        encoder, decoder = CODECS[parsed_args.format]
        harness = RoundTripHarness(config, encoder=encoder, decoder=decoder)

        interrupted = []
        previous_handler = signal.signal(
            signal.SIGINT, lambda signum, frame: interrupted.append(signum)
        )
        try:
            report = harness.run(should_stop=lambda: bool(interrupted))
        finally:
            signal.signal(signal.SIGINT, previous_handler)

        output = format_report(report)
        if report.ok:
            print(output)
            return 0

        print(f"Error: round trip failed\n{output}", file=sys.stderr)
        return EXIT_CODES[report.halt_reason]

    except ValueError as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        return 4

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 4


if __name__ == "__main__":
    sys.exit(main())
