"""Execution result formatter.

Renders an ExecutionResult for the terminal, either as a plain-text report
or as JSON.

Text format:
    status line: exit code / timeout and elapsed time
    encoding line
    [stdout] / [stderr] sections, omitted when empty
"""

from __future__ import annotations

import json

from ..runtime.errors import ProcessExecutionError
from ..runtime.types import ExecutionResult

__all__ = [
    "ResultFormatter",
    "get_formatter",
    "format_result",
    "format_error",
]


class ResultFormatter:
    """Format execution results.

    Example:
        >>> formatter = ResultFormatter()
        >>> output = formatter.format(result, as_json=True)
    """

    def format(self, result: ExecutionResult, *, as_json: bool = False) -> str:
        """Format one result.

        Args:
            result: The execution result
            as_json: Emit JSON instead of the text report

        Returns:
            The formatted result
        """
        if as_json:
            return json.dumps(result.to_dict(), ensure_ascii=False, indent=2)

        parts = [self._format_status(result)]
        parts.append(f"encoding: {result.standard_input_encoding}")

        if result.standard_output:
            parts.append(self._format_section("stdout", result.standard_output))
        if result.standard_error:
            parts.append(self._format_section("stderr", result.standard_error))

        return "\n".join(parts)

    def format_error(self, error: BaseException, *, as_json: bool = False) -> str:
        """Format a fatal execution error."""
        command = error.command if isinstance(error, ProcessExecutionError) else ""
        if as_json:
            return json.dumps(
                {
                    "error": type(error).__name__,
                    "command": command,
                    "message": str(error),
                },
                ensure_ascii=False,
                indent=2,
            )
        return f"error: {type(error).__name__}: {error}"

    def _format_status(self, result: ExecutionResult) -> str:
        if result.has_timed_out:
            return (
                f"timed out after {result.execution_time:.3f}s "
                f"(killed, exit code {result.exit_code})"
            )
        return f"exit code {result.exit_code} in {result.execution_time:.3f}s"

    def _format_section(self, name: str, text: str) -> str:
        return f"[{name}]\n{text}"


# Global instance
_formatter: ResultFormatter | None = None


def get_formatter() -> ResultFormatter:
    """Return the global formatter instance."""
    global _formatter
    if _formatter is None:
        _formatter = ResultFormatter()
    return _formatter


def format_result(result: ExecutionResult, *, as_json: bool = False) -> str:
    return get_formatter().format(result, as_json=as_json)


def format_error(error: BaseException, *, as_json: bool = False) -> str:
    return get_formatter().format_error(error, as_json=as_json)
