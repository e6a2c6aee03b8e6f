"""Call-scoped draining of one child output stream.

Each execution owns two drains (stdout, stderr). A drain reads its pipe to
end-of-stream so the child never blocks on a full pipe buffer, splitting the
decoded text into lines and re-terminating each with ``os.linesep``.

Stopping is cooperative: a flag checked between reads plus cancellation of
the pending read. Whatever was read before the stop stays in the buffer.
"""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import logging
import os
import re

__all__ = [
    "StreamDrain",
    "DEFAULT_CHUNK_SIZE",
]

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class StreamDrain:
    """Drain an ``asyncio.StreamReader`` into a line buffer.

    Example:
        drain = StreamDrain("stdout", process.stdout, "utf-8")
        drain.start()
        ...
        await drain.wait(60.0)
        await drain.stop()
        text = drain.text
    """

    def __init__(
        self,
        name: str,
        stream: asyncio.StreamReader | None,
        encoding: str,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.name = name
        self._stream = stream
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._chunk_size = chunk_size
        self._lines: list[str] = []
        self._pending = ""
        self._stopped = False
        self._task: asyncio.Task[None] | None = None

    @property
    def text(self) -> str:
        """Everything accumulated so far, one ``os.linesep`` per line."""
        return "".join(self._lines)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the drain task on the running loop."""
        if self._task is not None or self._stream is None:
            return
        self._task = asyncio.create_task(self._drain(), name=f"drain-{self.name}")

    async def wait(self, timeout: float | None) -> bool:
        """Join the drain task for at most ``timeout`` seconds.

        Returns:
            True if the drain reached end-of-stream (or was never started)
        """
        if self._task is None:
            return True
        done, _ = await asyncio.wait({self._task}, timeout=timeout)
        return bool(done)

    async def stop(self) -> None:
        """Signal the drain to stop and wait until it has.

        Safe to call more than once, and after the drain already finished.
        """
        self._stopped = True
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._flush()

    async def _drain(self) -> None:
        assert self._stream is not None
        try:
            while not self._stopped:
                chunk = await self._stream.read(self._chunk_size)
                if not chunk:
                    self._feed(b"", final=True)
                    return
                self._feed(chunk, final=False)
        except (OSError, ValueError) as e:
            # Stream closed underneath us; keep what was read
            logger.debug(f"Drain {self.name} stopped on read error: {e}")
            self._flush()

    def _feed(self, data: bytes, *, final: bool) -> None:
        self._pending += self._decoder.decode(data, final=final)
        start = 0
        for match in _LINE_BREAK.finditer(self._pending):
            # A trailing \r may be the first half of \r\n
            if not final and match.group() == "\r" and match.end() == len(self._pending):
                break
            self._lines.append(self._pending[start:match.start()] + os.linesep)
            start = match.end()
        self._pending = self._pending[start:]
        if final:
            self._flush()

    def _flush(self) -> None:
        tail = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        if tail:
            self._lines.append(tail.rstrip("\r") + os.linesep)
