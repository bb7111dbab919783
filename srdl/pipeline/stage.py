"""
Immutable description of one external command in a pipeline.
"""

import asyncio
import shlex
from dataclasses import dataclass, field
from enum import Enum


class StreamMode(Enum):
    """How one standard stream of a stage is wired."""

    INHERIT = "inherit"
    PIPE = "pipe"
    DEVNULL = "devnull"

    def to_subprocess(self) -> int | None:
        if self is StreamMode.PIPE:
            return asyncio.subprocess.PIPE
        if self is StreamMode.DEVNULL:
            return asyncio.subprocess.DEVNULL
        return None


@dataclass(frozen=True)
class Stage:
    """An external command invocation and the wiring of its standard streams."""

    name: str
    executable: str
    args: tuple[str, ...] = field(default_factory=tuple)
    stdin: StreamMode = StreamMode.INHERIT
    stdout: StreamMode = StreamMode.INHERIT
    stderr: StreamMode = StreamMode.INHERIT

    def __post_init__(self):
        # Accept any sequence but store a tuple so the stage stays hashable.
        object.__setattr__(self, "args", tuple(str(a) for a in self.args))

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.args]

    def command_line(self) -> str:
        """Shell-quoted form for display and dry runs."""
        return shlex.join(self.argv)
