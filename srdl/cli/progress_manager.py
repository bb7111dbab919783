"""
Manages a Rich Live status line that shows the latest progress message of the
running external tool, redrawn in place instead of scrolling.
"""

import asyncio
import logging

from rich.console import Console
from rich.live import Live
from rich.text import Text

log = logging.getLogger("srdl")


class StatusDisplay:
    """
    A single overwritable console line fed by a pipeline's diagnostic drain.

    Lines arrive on the event loop thread; Rich's own refresh thread redraws
    the line at a fixed rate, so a chatty tool cannot flood the terminal.
    """

    def __init__(self, console: Console, dry_run: bool = False):
        self.console = console
        self.dry_run = dry_run
        self.stage_name = ""
        self.last_line: str | None = None
        self._live: Live | None = None

    def log_message(self, message: str, level: str = "info"):
        """Unified logging respecting dry_run mode."""
        if self.dry_run:
            style_map = {
                "info": "cyan",
                "warning": "yellow",
                "error": "red",
                "success": "green",
            }
            style = style_map.get(level, "")
            self.console.print(f"[{style}]{message}[/{style}]" if style else message)
        else:
            getattr(log, level, log.info)(message)

    def set_stage(self, name: str) -> None:
        self.stage_name = name
        self.last_line = None
        self._refresh()

    def update(self, line: str) -> None:
        """Replaces the displayed status with `line`."""
        self.last_line = line
        self._refresh()

    def _render(self) -> Text:
        text = Text(no_wrap=True, overflow="ellipsis")
        if self.stage_name:
            text.append(f"[{self.stage_name}] ", style="bold cyan")
        text.append(self.last_line or "starting...", style="dim")
        return text

    def _refresh(self) -> None:
        if self._live is not None:
            self._live.update(self._render())

    async def __aenter__(self):
        if self.dry_run:
            return self
        self._live = Live(
            self._render(),
            console=self.console,
            refresh_per_second=8,
            transient=True,
        )
        self._live.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._live is not None:
            # Let the final status render once before the line is removed.
            await asyncio.sleep(0.1)
            self._live.stop()
            self._live = None
