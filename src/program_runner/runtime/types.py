"""Execution request and result types.

program-runner runtime module v0.1.0
"""

from __future__ import annotations

import shlex
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

__all__ = [
    "ExecutionState",
    "ExecutionRequest",
    "ExecutionResult",
]

IS_WINDOWS = sys.platform == "win32"


class ExecutionState(str, Enum):
    """Lifecycle of a single execution.

    starting -> running -> exited | killed | failed
    """

    STARTING = "starting"
    RUNNING = "running"
    EXITED = "exited"
    KILLED = "killed"
    FAILED = "failed"


@dataclass(frozen=True)
class ExecutionRequest:
    """What to run and how long to wait for it.

    Attributes:
        command: Path to the executable (or a name resolved on PATH)
        working_directory: Working directory for the child process
        args: Argument string, or an already split argument list
        timeout_ms: Maximum wall-clock wait in milliseconds
        input: Text written to the child's stdin before it is closed
    """

    command: str
    working_directory: Path
    args: str | Sequence[str] = ""
    timeout_ms: int = 30_000
    input: str | None = None

    def __post_init__(self) -> None:
        if not self.command:
            raise ValueError("command must not be empty")
        if self.timeout_ms < 0:
            raise ValueError(f"timeout_ms must be non-negative, got {self.timeout_ms}")
        if isinstance(self.working_directory, str):
            object.__setattr__(self, "working_directory", Path(self.working_directory))
        if not isinstance(self.args, str):
            object.__setattr__(self, "args", tuple(self.args))
        else:
            try:
                self._split_args()
            except ValueError as e:
                raise ValueError(f"invalid argument string {self.args!r}: {e}") from e

    @property
    def timeout(self) -> float:
        """Timeout in seconds."""
        return self.timeout_ms / 1000.0

    @property
    def argv(self) -> list[str]:
        """Command followed by its arguments, ready for exec."""
        return [self.command, *self._split_args()]

    def _split_args(self) -> list[str]:
        if isinstance(self.args, str):
            return shlex.split(self.args, posix=not IS_WINDOWS)
        return list(self.args)


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one execution.

    Attributes:
        execution_time: Seconds from process start to process exit
        standard_output: Captured stdout, trimmed
        standard_error: Captured stderr, trimmed
        exit_code: Process exit code (negative signal number if killed on POSIX)
        has_timed_out: Whether the child was killed for exceeding the timeout
        standard_input_encoding: Codec used to encode the input
    """

    execution_time: float
    standard_output: str
    standard_error: str
    exit_code: int
    has_timed_out: bool
    standard_input_encoding: str

    @property
    def state(self) -> ExecutionState:
        """Terminal state this result was produced from."""
        return ExecutionState.KILLED if self.has_timed_out else ExecutionState.EXITED

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dict."""
        return {
            "execution_time": round(self.execution_time, 3),
            "standard_output": self.standard_output,
            "standard_error": self.standard_error,
            "exit_code": self.exit_code,
            "has_timed_out": self.has_timed_out,
            "standard_input_encoding": self.standard_input_encoding,
        }
