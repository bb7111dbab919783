"""
Copies a binary stream from one stage's output into the next stage's input
with a fixed-size buffer, so memory use stays constant for arbitrarily large
media streams.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from srdl.exceptions import PipelineIOError

from .cancellation import CancellationSignal

log = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 64 * 1024  # 64 KB


class RelayStatus(Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class RelayReport:
    status: RelayStatus
    bytes_relayed: int


class _Aborted(Exception):
    """Internal: a write failed because the run is being cancelled."""


class PipeRelay:
    """
    Moves bytes from `source` to `sink` until the source reaches end-of-input
    or the cancellation signal is set.

    The sink is always closed when the relay stops, which is what lets the
    downstream stage see end-of-input and shut down on its own.
    """

    def __init__(
        self,
        source: asyncio.StreamReader,
        sink: asyncio.StreamWriter,
        cancel: CancellationSignal,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ):
        if buffer_size <= 0:
            raise ValueError("buffer_size must be positive.")
        self._source = source
        self._sink = sink
        self._cancel = cancel
        self._buffer_size = buffer_size
        self.bytes_relayed = 0

    async def run(self) -> RelayReport:
        """
        Runs the copy loop.

        Returns:
            A report with the stop reason and the number of bytes delivered.

        Raises:
            PipelineIOError: On a read or write failure not caused by cancellation.
        """
        status = RelayStatus.CANCELLED
        try:
            while not self._cancel.is_set():
                chunk = await self._read()
                if not chunk:
                    status = RelayStatus.COMPLETED
                    break
                await self._write_all(chunk)

            if status is RelayStatus.COMPLETED:
                await self._close_sink()
        except _Aborted:
            status = RelayStatus.CANCELLED
        finally:
            # On abort the sink is closed without waiting for a flush; the
            # downstream stage is about to be killed.
            if not self._sink.is_closing():
                self._sink.close()

        log.debug(f"Relay {status.value} after {self.bytes_relayed} bytes.")
        return RelayReport(status=status, bytes_relayed=self.bytes_relayed)

    async def _read(self) -> bytes:
        try:
            return await self._source.read(self._buffer_size)
        except OSError as e:
            if self._cancel.is_set():
                raise _Aborted from e
            raise PipelineIOError(f"Reading from the upstream stage failed: {e}") from e

    async def _write_all(self, chunk: bytes) -> None:
        # write() queues the whole chunk; drain() blocks until the pipe has
        # taken enough of it, so nothing is dropped on a short OS-level write.
        try:
            self._sink.write(chunk)
            await self._sink.drain()
        except OSError as e:
            if self._cancel.is_set():
                raise _Aborted from e
            raise PipelineIOError(
                f"Writing to the downstream stage failed after "
                f"{self.bytes_relayed} bytes: {e}"
            ) from e
        self.bytes_relayed += len(chunk)

    async def _close_sink(self) -> None:
        """Closes the sink and waits for its buffered bytes to be flushed."""
        try:
            self._sink.close()
            await self._sink.wait_closed()
        except OSError as e:
            if self._cancel.is_set():
                raise _Aborted from e
            raise PipelineIOError(
                f"Flushing the final bytes to the downstream stage failed: {e}"
            ) from e
