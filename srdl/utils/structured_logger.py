"""
Structured logging system for pipeline runs.
Provides JSON-formatted event logs alongside the regular console logging.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any


class StructuredLogger:
    """
    Logger that writes both human-readable console lines and machine-parseable
    JSONL entries.

    Usage:
        logger = StructuredLogger("srdl", log_dir=Path("logs"))
        logger.info("stage_exited", stage="ffmpeg", exit_code=0)
    """

    def __init__(
        self,
        name: str,
        log_dir: Path | None = None,
        enable_json: bool = True,
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            log_dir: Directory for JSON log files (None = disabled)
            enable_json: Enable JSON file logging
        """
        self.name = name
        self.log_dir = log_dir
        self.enable_json = enable_json and log_dir is not None

        self._logger = logging.getLogger(name)

        self._json_file = None
        self.json_log_path: Path | None = None
        if self.enable_json:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.json_log_path = log_dir / f"srdl_{timestamp}.jsonl"
            self._json_file = open(self.json_log_path, "a", encoding="utf-8")  # noqa: SIM115

        # Session context (added to all log entries)
        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
        }

    def set_session_context(self, **kwargs) -> None:
        """Set session-level context that appears in all logs."""
        self._session_context.update(kwargs)

    def _format_message(self, event: str, **context) -> str:
        parts = [f"[{event}]"]
        for key, value in context.items():
            parts.append(f"{key}={value}")
        return " ".join(parts)

    def _write_json(self, level: str, event: str, **context) -> None:
        if not self._json_file or self._json_file.closed:
            return

        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "event": event,
            **self._session_context,
            **context,
        }

        try:
            self._json_file.write(json.dumps(entry, default=str) + "\n")
            self._json_file.flush()
        except (OSError, ValueError) as e:
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def _log(self, level: int, event: str, **context) -> None:
        self._logger.log(level, self._format_message(event, **context))
        if self.enable_json:
            self._write_json(logging.getLevelName(level), event, **context)

    def debug(self, event: str, **context) -> None:
        self._log(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        self._log(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        self._log(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        self._log(logging.ERROR, event, **context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class PipelineEventLogger:
    """Specialized logger for stage lifecycle events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def stage_spawned(self, stage: str, pid: int, argv: list[str]):
        self.logger.debug("stage_spawned", stage=stage, pid=pid, argv=argv)

    def stage_killed(self, stage: str, pid: int):
        self.logger.debug("stage_killed", stage=stage, pid=pid)

    def stage_exited(self, stage: str, exit_code: int | None, killed: bool):
        self.logger.debug(
            "stage_exited", stage=stage, exit_code=exit_code, killed=killed
        )

    def pipeline_finished(
        self,
        outcome: str,
        duration_s: float,
        bytes_relayed: int,
        stage: str | None = None,
        exit_code: int | None = None,
    ):
        self.logger.debug(
            "pipeline_finished",
            outcome=outcome,
            duration_s=round(duration_s, 3),
            bytes_relayed=bytes_relayed,
            stage=stage,
            exit_code=exit_code,
        )


def create_event_logger(
    log_dir: Path | None = None, enable_json: bool = False
) -> tuple[StructuredLogger, PipelineEventLogger]:
    """
    Create the structured loggers used by a download session.

    Returns:
        Tuple of (base_logger, pipeline_event_logger)
    """
    base = StructuredLogger("srdl.events", log_dir=log_dir, enable_json=enable_json)
    return base, PipelineEventLogger(base)
