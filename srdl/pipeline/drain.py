"""
Reads a stage's diagnostic stream and forwards each status line to a renderer.
"""

import asyncio
import logging
import re
from collections.abc import Callable

log = logging.getLogger(__name__)

# ffmpeg redraws its stats line with a bare carriage return.
_LINE_BREAK = re.compile(rb"\r\n|\r|\n")
_READ_SIZE = 4096
_MAX_PENDING = 16 * 1024


class DiagnosticDrain:
    """
    Consumes a stage's stderr until end-of-input.

    Every complete, non-blank line is passed to `on_line`. Failures here are
    cosmetic: a broken renderer is switched off but the stream keeps being
    read so the stage never blocks on a full pipe, and read errors end the
    drain quietly.
    """

    def __init__(
        self,
        stream: asyncio.StreamReader,
        on_line: Callable[[str], None] | None = None,
        encoding: str = "utf-8",
    ):
        self._stream = stream
        self._on_line = on_line
        self._encoding = encoding
        self.last_line: str | None = None
        self.lines_seen = 0

    async def run(self) -> None:
        pending = b""
        while True:
            try:
                chunk = await self._stream.read(_READ_SIZE)
            except (OSError, ValueError) as e:
                log.debug(f"Diagnostic stream closed with error: {e}")
                break
            if not chunk:
                break

            *lines, pending = _LINE_BREAK.split(pending + chunk)
            for raw in lines:
                self._emit(raw)
            if len(pending) > _MAX_PENDING:
                # A tool that never writes a line break; show what we have.
                self._emit(pending)
                pending = b""

        if pending:
            self._emit(pending)

    def _emit(self, raw: bytes) -> None:
        line = raw.decode(self._encoding, errors="replace").strip()
        if not line:
            return
        self.last_line = line
        self.lines_seen += 1
        if self._on_line is None:
            return
        try:
            self._on_line(line)
        except Exception as e:
            log.debug(f"Status renderer failed, disabling it: {e}")
            self._on_line = None
