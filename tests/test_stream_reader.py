"""StreamDrain unit tests.

Drives StreamDrain with in-memory asyncio.StreamReader instances.
"""

from __future__ import annotations

import asyncio
import os

import pytest

from program_runner.runtime.stream_reader import StreamDrain

NL = os.linesep


def _reader(*chunks: bytes, eof: bool = True) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for chunk in chunks:
        reader.feed_data(chunk)
    if eof:
        reader.feed_eof()
    return reader


async def _drain_all(reader: asyncio.StreamReader, **kwargs) -> StreamDrain:
    drain = StreamDrain("test", reader, kwargs.pop("encoding", "utf-8"), **kwargs)
    drain.start()
    assert await drain.wait(5.0)
    await drain.stop()
    return drain


class TestLineSplitting:
    """Test line splitting and re-termination."""

    @pytest.mark.asyncio
    async def test_lines_get_platform_terminator(self):
        drain = await _drain_all(_reader(b"a\nb\n"))

        assert drain.text == f"a{NL}b{NL}"

    @pytest.mark.asyncio
    async def test_mixed_terminators(self):
        drain = await _drain_all(_reader(b"a\r\nb\rc\n"))

        assert drain.text == f"a{NL}b{NL}c{NL}"

    @pytest.mark.asyncio
    async def test_crlf_split_across_chunks(self):
        """A CR at a chunk boundary is not mistaken for its own line break."""
        drain = await _drain_all(_reader(b"a\r\nb\rc\n"), chunk_size=2)

        assert drain.text == f"a{NL}b{NL}c{NL}"

    @pytest.mark.asyncio
    async def test_unterminated_last_line(self):
        drain = await _drain_all(_reader(b"first\nlast"))

        assert drain.text == f"first{NL}last{NL}"

    @pytest.mark.asyncio
    async def test_trailing_cr_at_eof(self):
        drain = await _drain_all(_reader(b"only\r"))

        assert drain.text == f"only{NL}"

    @pytest.mark.asyncio
    async def test_empty_lines_kept(self):
        drain = await _drain_all(_reader(b"\n\nx\n"))

        assert drain.text == f"{NL}{NL}x{NL}"

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        drain = await _drain_all(_reader())

        assert drain.text == ""


class TestDecoding:
    """Test incremental decoding."""

    @pytest.mark.asyncio
    async def test_multibyte_split_across_chunks(self):
        drain = await _drain_all(_reader("héllo wörld\n".encode("utf-8")), chunk_size=1)

        assert drain.text == f"héllo wörld{NL}"

    @pytest.mark.asyncio
    async def test_invalid_bytes_replaced(self):
        drain = await _drain_all(_reader(b"ok \xff\n"))

        assert drain.text == f"ok �{NL}"

    @pytest.mark.asyncio
    async def test_other_encoding(self):
        drain = await _drain_all(_reader("café\n".encode("latin-1")), encoding="latin-1")

        assert drain.text == f"café{NL}"


class TestStop:
    """Test cooperative stopping."""

    @pytest.mark.asyncio
    async def test_stop_keeps_partial_output(self):
        """Stopping mid-stream keeps what was read, including an open line."""
        reader = _reader(b"line\npartial", eof=False)
        drain = StreamDrain("test", reader, "utf-8")
        drain.start()

        assert not await drain.wait(0.1)
        assert drain.is_running

        await drain.stop()

        assert not drain.is_running
        assert drain.text == f"line{NL}partial{NL}"

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self):
        drain = StreamDrain("test", _reader(b"x\n", eof=False), "utf-8")
        drain.start()
        await asyncio.sleep(0)

        await drain.stop()
        await drain.stop()

        assert drain.text == f"x{NL}"

    @pytest.mark.asyncio
    async def test_no_reads_after_stop(self):
        reader = _reader(b"before\n", eof=False)
        drain = StreamDrain("test", reader, "utf-8")
        drain.start()
        await drain.wait(0.1)
        await drain.stop()

        reader.feed_data(b"after\n")
        await asyncio.sleep(0.05)

        assert drain.text == f"before{NL}"

    @pytest.mark.asyncio
    async def test_missing_stream(self):
        drain = StreamDrain("test", None, "utf-8")
        drain.start()

        assert await drain.wait(0.1)
        await drain.stop()
        assert drain.text == ""


class TestReadErrors:
    """Test that read errors are swallowed."""

    @pytest.mark.asyncio
    async def test_read_error_keeps_buffer(self):
        reader = _reader(b"kept\n", eof=False)
        drain = StreamDrain("test", reader, "utf-8")
        drain.start()
        await drain.wait(0.1)

        reader.set_exception(OSError("stream closed"))

        assert await drain.wait(5.0)
        await drain.stop()
        assert drain.text == f"kept{NL}"
