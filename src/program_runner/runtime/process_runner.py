"""Process runner with concurrent stream draining and a wall-clock timeout.

program-runner runtime module v0.1.0

This module provides:
- One child process per call, stdin/stdout/stderr all piped, no shell
- Concurrent stdout/stderr draining so a full pipe never deadlocks the child
- A bounded wait for exit, then kill-and-reap when the timeout elapses
- Cancel-safe cleanup using asyncio.shield

Key design points:
- Drains start right after spawn, before any input is written
- Stdin is always closed, immediately when there is no input
- Kill and drain failures are logged and swallowed; only spawn and
  input-write failures reach the caller
- First error wins: cleanup never replaces the error that triggered it
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import subprocess
import sys
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import anyio

from ..config import DEFAULT_READER_JOIN_TIMEOUT, Config, default_encoding
from .errors import ProcessInputError, ProcessSpawnError
from .stream_reader import StreamDrain
from .types import ExecutionRequest, ExecutionResult, ExecutionState

__all__ = [
    "ProcessRunner",
    "run_program",
]

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"

# Seconds between return code checks while waiting for the child to exit
EXIT_POLL_INTERVAL = 0.01


@dataclass
class ProcessRunner:
    """Run one external program to completion or timeout.

    The runner keeps no per-call state: every ``run`` owns its own process,
    drains and buffers, so one instance may serve concurrent calls.

    Example:
        runner = ProcessRunner()
        request = ExecutionRequest(
            command="grep",
            working_directory=Path("/workspace"),
            args="-n hello",
            timeout_ms=5000,
            input="hello\\nworld\\n",
        )
        result = await runner.run(request)
    """

    reader_join_timeout: float = DEFAULT_READER_JOIN_TIMEOUT
    encoding: str = field(default_factory=default_encoding)

    def __post_init__(self) -> None:
        try:
            codecs.lookup(self.encoding)
        except LookupError as e:
            raise ValueError(f"unknown encoding: {self.encoding}") from e

    @classmethod
    def from_config(cls, config: Config) -> ProcessRunner:
        return cls(
            reader_join_timeout=config.reader_join_timeout,
            encoding=config.encoding,
        )

    async def run(self, request: ExecutionRequest) -> ExecutionResult:
        """Execute the request and collect its result.

        This method:
        1. Starts the child with all three standard streams piped
        2. Starts draining stdout and stderr
        3. Writes the input (if any) and closes stdin
        4. Waits up to ``request.timeout`` for the child to exit
        5. On timeout kills the child, stops both drains and waits for the
           child to exit; otherwise joins the drains with a bound
        6. Assembles the result

        Args:
            request: What to run

        Returns:
            ExecutionResult with trimmed output, exit code and timing

        Raises:
            ProcessSpawnError: If the executable could not be started
            ProcessInputError: If the input could not be written
        """
        stdin_bytes = self._encode_input(request)
        process = await self._spawn(request)
        started = time.monotonic()
        pid = process.pid
        logger.debug(
            f"Started subprocess pid={pid} "
            f"argv={request.command} cwd={request.working_directory}"
        )

        drains: tuple[StreamDrain, ...] = ()
        state = ExecutionState.RUNNING
        try:
            drains = (
                StreamDrain("stdout", process.stdout, self.encoding),
                StreamDrain("stderr", process.stderr, self.encoding),
            )
            for drain in drains:
                drain.start()

            try:
                # The input write shares the deadline with the wait for exit
                exit_code = await asyncio.wait_for(
                    self._feed_and_wait(process, request, stdin_bytes),
                    timeout=request.timeout,
                )
                exited = time.monotonic()
            except asyncio.TimeoutError:
                if process.returncode is None:
                    logger.info(
                        f"Subprocess timed out after {request.timeout_ms}ms, killing pid={pid}"
                    )
                    self._kill(process)
                    await self._stop_drains(drains)
                    exit_code = await self._wait_for_exit(process)
                    exited = time.monotonic()
                    state = ExecutionState.KILLED
                else:
                    # Exited in time; only the input write was still pending
                    logger.debug(f"Subprocess exited with input pending pid={pid}")
                    exit_code = process.returncode
                    exited = time.monotonic()

            if state is not ExecutionState.KILLED:
                await self._join_drains(drains)
                state = ExecutionState.EXITED

        except BaseException:
            state = ExecutionState.FAILED
            await self._safe_cleanup(process, drains)
            raise

        finally:
            # Drains stop on every path before their buffers are read
            await self._stop_drains(drains)
            logger.debug(
                f"Subprocess finished pid={pid} state={state.value} "
                f"returncode={process.returncode}"
            )

        return ExecutionResult(
            execution_time=exited - started,
            standard_output=drains[0].text.strip(),
            standard_error=drains[1].text.strip(),
            exit_code=exit_code,
            has_timed_out=state is ExecutionState.KILLED,
            standard_input_encoding=self.encoding,
        )

    def _encode_input(self, request: ExecutionRequest) -> bytes | None:
        if not request.input:
            return None
        try:
            return request.input.encode(self.encoding)
        except UnicodeEncodeError as e:
            raise ProcessInputError(
                request.command, f"input is not encodable as {self.encoding}: {e}"
            ) from e

    async def _spawn(self, request: ExecutionRequest) -> asyncio.subprocess.Process:
        kwargs = self._build_subprocess_kwargs()
        logger.debug(f"Spawning {request.argv} state={ExecutionState.STARTING.value}")
        try:
            return await asyncio.create_subprocess_exec(
                *request.argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=request.working_directory,
                **kwargs,
            )
        except (OSError, ValueError) as e:
            raise ProcessSpawnError(request.command, str(e)) from e

    def _build_subprocess_kwargs(self) -> dict[str, Any]:
        """Build platform-specific subprocess kwargs."""
        kwargs: dict[str, Any] = {}

        if IS_WINDOWS:
            # No console window for the child
            kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW

        return kwargs

    async def _feed_and_wait(
        self,
        process: asyncio.subprocess.Process,
        request: ExecutionRequest,
        stdin_bytes: bytes | None,
    ) -> int:
        await self._write_input(process, request, stdin_bytes)
        return await self._wait_for_exit(process)

    async def _wait_for_exit(self, process: asyncio.subprocess.Process) -> int:
        """Wait until the child itself has exited and been reaped.

        ``Process.wait()`` also waits for every pipe to close, which does not
        happen while a background grandchild still holds one. The return code
        is set as soon as the child is reaped.
        """
        while process.returncode is None:
            await asyncio.sleep(EXIT_POLL_INTERVAL)
        return process.returncode

    async def _write_input(
        self,
        process: asyncio.subprocess.Process,
        request: ExecutionRequest,
        stdin_bytes: bytes | None,
    ) -> None:
        """Write the input, then close stdin so the child sees EOF."""
        if process.stdin is None:
            return
        try:
            if stdin_bytes:
                process.stdin.write(stdin_bytes)
                await process.stdin.drain()
            process.stdin.close()
            await process.stdin.wait_closed()
        except OSError as e:
            if stdin_bytes:
                raise ProcessInputError(
                    request.command, f"failed to write input: {e}"
                ) from e
            # Nothing was written; the child exiting early is not a failure
            logger.debug(f"Closing stdin failed pid={process.pid}: {e}")

    async def _join_drains(self, drains: Sequence[StreamDrain]) -> None:
        for drain in drains:
            if not await drain.wait(self.reader_join_timeout):
                logger.warning(
                    f"Drain {drain.name} still running after "
                    f"{self.reader_join_timeout}s, stopping it"
                )

    async def _stop_drains(self, drains: Sequence[StreamDrain]) -> None:
        for drain in drains:
            try:
                await drain.stop()
            except Exception as e:
                logger.warning(f"Error stopping drain {drain.name}: {e}")

    def _kill(self, process: asyncio.subprocess.Process) -> None:
        """Kill the child, best effort."""
        try:
            process.kill()
            logger.debug(f"Called kill() on pid={process.pid}")
        except ProcessLookupError:
            # Already exited between the timeout and the kill
            logger.debug(f"Subprocess already exited pid={process.pid}")
        except OSError as e:
            logger.warning(f"Error killing subprocess pid={process.pid}: {e}")

    async def _safe_cleanup(
        self,
        process: asyncio.subprocess.Process,
        drains: Sequence[StreamDrain],
    ) -> None:
        """Kill, stop drains and wait for exit, shielded from cancellation.

        Errors are logged and suppressed so the error that triggered the
        cleanup is the one the caller sees.
        """
        try:
            await asyncio.shield(self._do_cleanup(process, drains))
        except asyncio.CancelledError:
            # If shield itself is cancelled, still try cleanup
            await self._do_cleanup(process, drains)

    async def _do_cleanup(
        self,
        process: asyncio.subprocess.Process,
        drains: Sequence[StreamDrain],
    ) -> None:
        if process.returncode is None:
            self._kill(process)
        try:
            await self._stop_drains(drains)
        finally:
            await self._wait_for_exit(process)


def run_program(
    command: str,
    working_directory: str | Path,
    args: str | Sequence[str] = "",
    timeout_ms: int = 30_000,
    input: str | None = None,
    *,
    runner: ProcessRunner | None = None,
) -> ExecutionResult:
    """Run a program synchronously and return its result.

    Blocks the calling thread; must not be called from inside a running
    event loop (use ``ProcessRunner.run`` there).

    Args:
        command: Path to the program executable
        working_directory: Working directory for the child
        args: Command-line arguments as one string (or a pre-split list)
        timeout_ms: Maximum time to wait for the child, in milliseconds
        input: Text sent via standard input

    Returns:
        ExecutionResult of the run
    """
    request = ExecutionRequest(
        command=command,
        working_directory=Path(working_directory),
        args=args,
        timeout_ms=timeout_ms,
        input=input,
    )
    runner = runner or ProcessRunner()
    return anyio.run(runner.run, request, backend="asyncio")
