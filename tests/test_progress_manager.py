import io
import logging

from rich.console import Console

from srdl.cli.progress_manager import StatusDisplay


def _display(dry_run: bool) -> StatusDisplay:
    return StatusDisplay(Console(file=io.StringIO(), width=200), dry_run=dry_run)


class TestStatusDisplay:
    def test_update_replaces_last_line(self):
        display = _display(dry_run=True)
        display.update("frame=1")
        display.update("frame=2")
        assert display.last_line == "frame=2"
        assert "frame=2" in display._render().plain

    def test_set_stage_resets_status(self):
        display = _display(dry_run=True)
        display.update("old")
        display.set_stage("yt-dlp | ffmpeg")
        assert display.last_line is None
        assert display._render().plain == "[yt-dlp | ffmpeg] starting..."

    def test_dry_run_messages_go_to_console(self):
        display = _display(dry_run=True)
        display.log_message("would run ffmpeg", "warning")
        assert "would run ffmpeg" in display.console.file.getvalue()

    def test_messages_are_logged_outside_dry_run(self, caplog):
        display = _display(dry_run=False)
        with caplog.at_level(logging.INFO, logger="srdl"):
            display.log_message("encoding started")
        assert "encoding started" in caplog.text
        assert display.console.file.getvalue() == ""
