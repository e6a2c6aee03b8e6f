#!/usr/bin/env python3
"""Fake program for runner tests.

Behaves like a small command-line tool whose stdin/stdout/stderr usage and
run time are controlled by flags, so tests run the same on every platform.

Usage:
    python fake_program.py [--echo-stdin | --wait-eof] [--stdout TEXT]
        [--stderr TEXT] [--orphan SECONDS] [--flood BYTES] [--sleep SECONDS]
        [--exit-code CODE]

Steps run in this order: stdin handling, fixed output, orphan, flood, sleep, exit.
"""

from __future__ import annotations

import argparse
import subprocess
import sys
import time

FLOOD_LINE = "x" * 79


def flood(total: int) -> None:
    """Write ``total`` bytes to stdout and stderr, alternating line by line."""
    written = 0
    while written < total:
        sys.stdout.write(FLOOD_LINE + "\n")
        sys.stderr.write(FLOOD_LINE + "\n")
        written += len(FLOOD_LINE) + 1
    sys.stdout.flush()
    sys.stderr.flush()


def spawn_orphan(seconds: float) -> None:
    """Start a sleeper that inherits our std streams and outlives us.

    Its pid goes to stderr as ``orphan <pid>`` so tests can kill it.
    """
    orphan = subprocess.Popen([sys.executable, "-c", f"import time; time.sleep({seconds})"])
    print(f"orphan {orphan.pid}", file=sys.stderr, flush=True)


def main() -> int:
    parser = argparse.ArgumentParser(description="Fake program for testing")
    stdin_mode = parser.add_mutually_exclusive_group()
    stdin_mode.add_argument("--echo-stdin", action="store_true", help="Copy stdin to stdout")
    stdin_mode.add_argument("--wait-eof", action="store_true", help="Block until stdin is closed")
    parser.add_argument("--stdout", default=None, help="Text written to stdout")
    parser.add_argument("--stderr", default=None, help="Text written to stderr")
    parser.add_argument(
        "--orphan",
        type=float,
        default=0.0,
        help="Start a background process that keeps stdout/stderr open for SECONDS",
    )
    parser.add_argument("--flood", type=int, default=0, help="Bytes written to each stream")
    parser.add_argument("--sleep", type=float, default=0.0, help="Seconds to sleep before exiting")
    parser.add_argument("--exit-code", type=int, default=0, help="Exit code")
    args = parser.parse_args()

    if args.echo_stdin:
        sys.stdout.write(sys.stdin.read())
        sys.stdout.flush()
    elif args.wait_eof:
        data = sys.stdin.read()
        print(f"eof after {len(data)} chars", flush=True)

    if args.stdout is not None:
        sys.stdout.write(args.stdout)
        sys.stdout.flush()
    if args.stderr is not None:
        sys.stderr.write(args.stderr)
        sys.stderr.flush()

    if args.orphan:
        spawn_orphan(args.orphan)

    if args.flood:
        flood(args.flood)

    if args.sleep:
        time.sleep(args.sleep)

    return args.exit_code


if __name__ == "__main__":
    sys.exit(main())
