"""
The main orchestrator: turns a run into supervised pipelines, then checks and
records what they produced.
"""

import json
import logging
import os
import time
from pathlib import Path

from rich.markup import escape

from srdl.cli.progress_manager import StatusDisplay
from srdl.exceptions import FileIntegrityError, OutputNotFoundError, SrdlError
from srdl.media import FileIntegrityChecker, StageCommandResolver
from srdl.models.config import DownloadConfig
from srdl.models.run import RunInfo
from srdl.models.stats import DownloadReport
from srdl.pipeline import CancellationSignal, PipelineResult, PipelineSupervisor, Stage
from srdl.utils.path import create_dir, locate_download
from srdl.utils.structured_logger import PipelineEventLogger

log = logging.getLogger(__name__)


class DownloadManager:
    """Orchestrates the download and encode of a single run."""

    def __init__(
        self,
        config: DownloadConfig,
        cancel: CancellationSignal,
        display: StatusDisplay,
        events: PipelineEventLogger | None = None,
    ):
        self.config = config
        self.cancel = cancel
        self.display = display
        self.events = events
        self.resolver = StageCommandResolver(config)
        self.report: DownloadReport | None = None

    async def process(self, run: RunInfo) -> DownloadReport:
        """
        Downloads and encodes `run`.

        Raises:
            SrdlError: Any pipeline failure or cancellation, or a failed check
            of the produced file.
        """
        report = DownloadReport(
            run_id=run.run_id,
            mode=self.config.mode,
            output_path=self.resolver.output_path(run),
            dry_run=self.config.dry_run,
        )
        self.report = report
        if not self.config.dry_run:
            create_dir(self.resolver.output_dir)

        try:
            if self.config.mode == "pipe":
                await self._process_piped(run, report)
            else:
                await self._process_two_step(run, report)
        except SrdlError:
            self._remove_partial_output(report.output_path)
            raise

        if not self.config.dry_run:
            self._verify_output(report)
        return report

    async def _process_piped(self, run: RunInfo, report: DownloadReport) -> None:
        download, encode = self.resolver.piped_stages(run)
        if self.config.dry_run:
            self._print_dry_run(download, encode)
            return
        await self._run_pipeline([download, encode], report)

    async def _process_two_step(self, run: RunInfo, report: DownloadReport) -> None:
        download = self.resolver.download_stage(run)
        if self.config.dry_run:
            self._print_dry_run(download)
            encode = self.resolver.encode_stage(run, self.resolver.download_path(run))
            self._print_dry_run(encode)
            return

        await self._run_pipeline([download], report)
        source = locate_download(self.resolver.download_path(run))
        report.intermediate_path = source
        log.debug(f"Download stage wrote '{source}'.")

        await self._run_pipeline([self.resolver.encode_stage(run, source)], report)

        if not self.config.keep_download:
            try:
                os.remove(source)
                report.intermediate_path = None
            except OSError as e:
                log.warning(f"[yellow]Could not remove '{source}':[/] {e}")

    async def _run_pipeline(
        self, stages: list[Stage], report: DownloadReport
    ) -> PipelineResult:
        self.display.set_stage(" | ".join(stage.name for stage in stages))
        supervisor = PipelineSupervisor(
            stages,
            self.cancel,
            poll_interval=self.config.poll_interval,
            buffer_size=self.config.relay_buffer_size,
            on_status=self.display.update,
            events=self.events,
        )
        result = await supervisor.run()
        report.results.append(result)
        result.raise_for_status()
        return result

    def _print_dry_run(self, *stages: Stage) -> None:
        command = " | ".join(stage.command_line() for stage in stages)
        self.display.log_message(f"  → (Dry Run) [dim]{escape(command)}[/dim]")

    def _verify_output(self, report: DownloadReport) -> None:
        output = report.output_path
        if not output.is_file():
            raise OutputNotFoundError(f"{output}: Output file not found")
        report.output_size = output.stat().st_size
        if self.config.verify_output and not FileIntegrityChecker.check_mp4(str(output)):
            raise FileIntegrityError(f"'{output.name}' failed the integrity check.")

    def _remove_partial_output(self, output: Path | None) -> None:
        if self.config.dry_run or output is None or not output.exists():
            return
        try:
            os.remove(output)
            log.debug(f"Removed partial output '{output}'.")
        except OSError as e:
            log.debug(f"Could not remove partial output '{output}': {e}")

    def save_session_history(self, report: DownloadReport) -> None:
        """Appends the session's outcome to the history file."""
        history_file = Path(self.config.config_path) / "session_history.jsonl"
        try:
            history_file.parent.mkdir(parents=True, exist_ok=True)
            with open(history_file, "a", encoding="utf-8") as f:
                session_data = {
                    "timestamp": int(time.time()),
                    "run_id": report.run_id,
                    "mode": report.mode,
                    "succeeded": report.succeeded,
                    "outcomes": [r.outcome.value for r in report.results],
                    "output_path": str(report.output_path),
                    "output_size": report.output_size,
                    "bytes_relayed": report.bytes_relayed,
                    "duration_seconds": round(report.duration_s, 2),
                }
                json.dump(session_data, f)
                f.write("\n")
        except OSError as e:
            log.warning(f"[yellow]Could not save session history:[/] {e}")
