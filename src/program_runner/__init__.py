"""program-runner - run an external program with a timeout.

Environment variables:
    PRR_TIMEOUT_MS: Default CLI timeout (default 30000)
    PRR_ENCODING: Codec for the child's streams (default: platform default)
    PRR_LOG_DEBUG: Write DEBUG logs to a temp file (default false)

Usage:
    program-runner --timeout 5000 /usr/bin/grep "-n hello" --input "hello"
"""

__version__ = "0.1.0"

from .app import main
from .runtime import (
    ExecutionRequest,
    ExecutionResult,
    ProcessExecutionError,
    ProcessInputError,
    ProcessRunner,
    ProcessSpawnError,
    run_program,
)

__all__ = [
    "__version__",
    "main",
    "ExecutionRequest",
    "ExecutionResult",
    "ProcessExecutionError",
    "ProcessInputError",
    "ProcessRunner",
    "ProcessSpawnError",
    "run_program",
]
