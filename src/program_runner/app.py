"""program-runner command-line entry point.

Contains logging setup, argument parsing and exit-status mapping.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

import anyio

from . import __version__
from .config import Config, get_config
from .runtime import (
    ExecutionRequest,
    ExecutionResult,
    ProcessExecutionError,
    ProcessRunner,
    ProcessSpawnError,
)
from .shared.response_formatter import format_error, format_result

__all__ = ["build_parser", "configure_logging", "exit_status", "main"]

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Shell conventions
EXIT_TIMEOUT = 124
EXIT_SPAWN_FAILURE = 127
EXIT_INPUT_FAILURE = 1


def configure_logging(config: Config) -> None:
    """Configure log handlers for the program_runner namespace."""
    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        # LOG_DEBUG mode: write to a temp file
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log_handlers.append(stderr_handler)
        log_level = config.log_level

    # Root logger (third-party libraries) stays at WARNING
    logging.basicConfig(
        level=logging.WARNING,
        handlers=log_handlers,
    )
    logging.getLogger("program_runner").setLevel(log_level)


def build_parser(config: Config) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="program-runner",
        description=(
            "Run a program with a timeout, capturing its standard output "
            "and standard error."
        ),
    )
    parser.add_argument("command", help="Path to the program executable")
    parser.add_argument(
        "args",
        nargs="?",
        default="",
        help="Command-line arguments as a single string (put -- before it if it starts with -)",
    )
    parser.add_argument(
        "--cwd",
        type=Path,
        default=Path.cwd(),
        help="Working directory for the program (default: current directory)",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=config.timeout_ms,
        metavar="MS",
        help=f"Timeout in milliseconds (default: {config.timeout_ms})",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--input", help="Text sent via standard input")
    source.add_argument(
        "--input-file",
        type=Path,
        help="File whose contents are sent via standard input",
    )
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def exit_status(result: ExecutionResult) -> int:
    """Map a result to a process exit status."""
    if result.has_timed_out:
        return EXIT_TIMEOUT
    if result.exit_code < 0:
        # Killed by a signal on POSIX
        return 128 - result.exit_code
    return result.exit_code


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    config = get_config()
    configure_logging(config)

    parser = build_parser(config)
    options = parser.parse_args(argv)

    if options.timeout < 0:
        parser.error("--timeout must be non-negative")

    input_text = options.input
    if options.input_file is not None:
        try:
            input_text = options.input_file.read_text(encoding=config.encoding)
        except OSError as e:
            parser.error(f"cannot read --input-file: {e}")

    try:
        request = ExecutionRequest(
            command=options.command,
            working_directory=options.cwd,
            args=options.args,
            timeout_ms=options.timeout,
            input=input_text,
        )
    except ValueError as e:
        parser.error(str(e))
    runner = ProcessRunner.from_config(config)
    logger.debug(f"Running {request.argv} with {config!r}")

    try:
        result = anyio.run(runner.run, request, backend="asyncio")
    except ProcessExecutionError as e:
        print(format_error(e, as_json=options.json), file=sys.stderr)
        return EXIT_SPAWN_FAILURE if isinstance(e, ProcessSpawnError) else EXIT_INPUT_FAILURE

    print(format_result(result, as_json=options.json))
    return exit_status(result)


if __name__ == "__main__":
    sys.exit(main())
