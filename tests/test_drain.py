import asyncio

import pytest

from srdl.pipeline import DiagnosticDrain


def _reader(*chunks: bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for chunk in chunks:
        reader.feed_data(chunk)
    reader.feed_eof()
    return reader


class FailingReader:
    async def read(self, n: int) -> bytes:
        raise ConnectionResetError(104, "Connection reset by peer")


@pytest.mark.asyncio
class TestDiagnosticDrain:
    async def test_splits_on_every_line_terminator(self):
        seen = []
        drain = DiagnosticDrain(
            _reader(b"[download]  1.0%\r[download]  2.0%\n", b"frame=1\r\nframe=2"),
            seen.append,
        )

        await drain.run()

        assert seen == ["[download]  1.0%", "[download]  2.0%", "frame=1", "frame=2"]
        assert drain.last_line == "frame=2"
        assert drain.lines_seen == 4

    async def test_line_split_across_reads(self):
        seen = []
        await DiagnosticDrain(_reader(b"hel", b"lo\nwor", b"ld\n"), seen.append).run()
        assert seen == ["hello", "world"]

    async def test_skips_blank_lines(self):
        seen = []
        await DiagnosticDrain(_reader(b"\n\n  \r\nok\n"), seen.append).run()
        assert seen == ["ok"]

    async def test_broken_renderer_does_not_stop_draining(self):
        calls = []

        def renderer(line):
            calls.append(line)
            raise RuntimeError("terminal gone")

        drain = DiagnosticDrain(_reader(b"a\nb\nc\n"), renderer)
        await drain.run()

        assert calls == ["a"]
        assert drain.lines_seen == 3
        assert drain.last_line == "c"

    async def test_read_error_ends_quietly(self):
        drain = DiagnosticDrain(FailingReader(), print)
        await drain.run()
        assert drain.last_line is None

    async def test_works_without_renderer(self):
        drain = DiagnosticDrain(_reader(b"x\ny\n"))
        await drain.run()
        assert drain.last_line == "y"
