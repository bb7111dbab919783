"""
Dataclass summarizing the outcome of one download session.
"""

from dataclasses import dataclass, field
from pathlib import Path

from srdl.pipeline import PipelineResult


@dataclass
class DownloadReport:
    """What a session produced, for the summary panel and the history file."""

    run_id: str
    mode: str
    output_path: Path | None = None
    intermediate_path: Path | None = None
    results: list[PipelineResult] = field(default_factory=list)
    output_size: int = 0
    dry_run: bool = False

    @property
    def duration_s(self) -> float:
        return sum(r.duration_s for r in self.results)

    @property
    def bytes_relayed(self) -> int:
        return sum(r.bytes_relayed for r in self.results)

    @property
    def succeeded(self) -> bool:
        return bool(self.results) and all(r.ok for r in self.results)
