"""Runtime module for running external programs.

This module provides single-shot process execution with concurrent output
draining, a wall-clock timeout and kill-on-timeout.
"""

from __future__ import annotations

from .errors import ProcessExecutionError, ProcessInputError, ProcessSpawnError
from .process_runner import ProcessRunner, run_program
from .types import ExecutionRequest, ExecutionResult, ExecutionState

__all__ = [
    "ProcessRunner",
    "run_program",
    "ExecutionRequest",
    "ExecutionResult",
    "ExecutionState",
    "ProcessExecutionError",
    "ProcessSpawnError",
    "ProcessInputError",
]
