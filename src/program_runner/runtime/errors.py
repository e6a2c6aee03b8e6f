"""Runtime exception classes.

Only failures that leave no usable result are raised: the child could not be
started, or its standard input could not be written. Timeouts are reported
through ``ExecutionResult.has_timed_out`` instead.
"""

from __future__ import annotations

__all__ = [
    "ProcessExecutionError",
    "ProcessSpawnError",
    "ProcessInputError",
]


class ProcessExecutionError(Exception):
    """Base exception for fatal execution failures.

    Attributes:
        command: The executable that was being run
        message: Error message
    """

    def __init__(self, command: str, message: str) -> None:
        self.command = command
        self.message = message
        super().__init__(f"{command}: {message}")


class ProcessSpawnError(ProcessExecutionError):
    """The executable was not found or could not be launched."""


class ProcessInputError(ProcessExecutionError):
    """Writing to the child's standard input failed."""
