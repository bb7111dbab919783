import asyncio

import pytest

from srdl.exceptions import PipelineIOError
from srdl.pipeline import CancellationSignal, PipeRelay, RelayStatus


class FakeSink:
    """Collects written bytes; optionally fails after `fail_after` writes."""

    def __init__(self, fail_after: int | None = None, on_write=None):
        self.data = bytearray()
        self.writes = 0
        self.largest_write = 0
        self.closed = False
        self.flushed = False
        self._fail_after = fail_after
        self._on_write = on_write

    def write(self, chunk: bytes) -> None:
        if self._fail_after is not None and self.writes >= self._fail_after:
            raise BrokenPipeError(32, "Broken pipe")
        self.writes += 1
        self.largest_write = max(self.largest_write, len(chunk))
        self.data.extend(chunk)
        if self._on_write:
            self._on_write()

    async def drain(self) -> None:
        await asyncio.sleep(0)

    def close(self) -> None:
        self.closed = True

    def is_closing(self) -> bool:
        return self.closed

    async def wait_closed(self) -> None:
        self.flushed = True


def _reader(payload: bytes, eof: bool = True) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    if payload:
        reader.feed_data(payload)
    if eof:
        reader.feed_eof()
    return reader


@pytest.mark.asyncio
class TestPipeRelay:
    @pytest.mark.parametrize("size", [0, 1000, 4096, 4096 * 7 + 13])
    async def test_relays_bytes_exactly(self, size):
        payload = bytes(i % 251 for i in range(size))
        sink = FakeSink()
        relay = PipeRelay(_reader(payload), sink, CancellationSignal(), buffer_size=4096)

        report = await relay.run()

        assert report.status is RelayStatus.COMPLETED
        assert report.bytes_relayed == size
        assert bytes(sink.data) == payload
        assert sink.closed and sink.flushed

    async def test_never_writes_more_than_buffer(self):
        sink = FakeSink()
        relay = PipeRelay(_reader(b"x" * 10_000), sink, CancellationSignal(), buffer_size=1024)
        await relay.run()
        assert sink.largest_write == 1024
        assert sink.writes == 10

    async def test_cancel_before_start(self):
        cancel = CancellationSignal()
        cancel.signal()
        sink = FakeSink()

        report = await PipeRelay(_reader(b"data"), sink, cancel).run()

        assert report.status is RelayStatus.CANCELLED
        assert report.bytes_relayed == 0
        assert sink.closed
        assert not sink.flushed

    async def test_cancel_mid_stream(self):
        cancel = CancellationSignal()
        sink = FakeSink(on_write=cancel.signal)
        # Source never reaches EOF; only cancellation can stop the relay.
        reader = _reader(b"y" * 8192, eof=False)

        report = await asyncio.wait_for(
            PipeRelay(reader, sink, cancel, buffer_size=1024).run(), timeout=2
        )

        assert report.status is RelayStatus.CANCELLED
        assert report.bytes_relayed == 1024
        assert sink.closed

    async def test_write_failure_raises_io_error(self):
        sink = FakeSink(fail_after=1)
        relay = PipeRelay(_reader(b"z" * 5000), sink, CancellationSignal(), buffer_size=1000)

        with pytest.raises(PipelineIOError):
            await relay.run()

        assert relay.bytes_relayed == 1000
        assert sink.closed

    async def test_write_failure_after_cancel_is_cancelled(self):
        cancel = CancellationSignal()
        sink = FakeSink(fail_after=0)
        reader = _reader(b"z" * 10)
        relay = PipeRelay(reader, sink, cancel)
        original_write = sink.write

        def write_then_cancel(chunk):
            cancel.signal()
            original_write(chunk)

        sink.write = write_then_cancel

        report = await relay.run()

        assert report.status is RelayStatus.CANCELLED


def test_rejects_non_positive_buffer():
    with pytest.raises(ValueError):
        PipeRelay(None, FakeSink(), CancellationSignal(), buffer_size=0)
