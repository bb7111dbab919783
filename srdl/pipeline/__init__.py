"""
Process Pipeline Layer.

This package spawns the external tools of a download, streams bytes from one
into the next, shows the first tool's live progress, and guarantees every
child process is killed when the run fails or is cancelled.
"""

from .cancellation import CancellationSignal, interrupt_handler
from .drain import DiagnosticDrain
from .process import ProcessHandle
from .relay import PipeRelay, RelayReport, RelayStatus
from .stage import Stage, StreamMode
from .supervisor import Outcome, PipelineResult, PipelineState, PipelineSupervisor

__all__ = [
    "CancellationSignal",
    "DiagnosticDrain",
    "Outcome",
    "PipeRelay",
    "PipelineResult",
    "PipelineState",
    "PipelineSupervisor",
    "ProcessHandle",
    "RelayReport",
    "RelayStatus",
    "Stage",
    "StreamMode",
    "interrupt_handler",
]
