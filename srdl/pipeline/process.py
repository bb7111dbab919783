"""
A thin wrapper around one spawned stage process with non-blocking polling and
idempotent forced termination.
"""

import asyncio
import logging
import os
import signal

from srdl.exceptions import PipelineIOError, SpawnError

from .cancellation import CancellationSignal
from .stage import Stage

log = logging.getLogger(__name__)

_POSIX = os.name == "posix"


class ProcessHandle:
    """A live OS process started from a `Stage`, plus its stream endpoints."""

    def __init__(self, stage: Stage, process: asyncio.subprocess.Process):
        self.stage = stage
        self._process = process
        self.kill_requested = False

    @classmethod
    async def spawn(cls, stage: Stage) -> "ProcessHandle":
        """
        Starts the stage's executable.

        Raises:
            SpawnError: If the executable is missing or cannot be executed.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *stage.argv,
                stdin=stage.stdin.to_subprocess(),
                stdout=stage.stdout.to_subprocess(),
                stderr=stage.stderr.to_subprocess(),
                # Own process group, so a kill also reaches helpers the tool spawns.
                start_new_session=_POSIX,
            )
        except OSError as e:
            raise SpawnError(stage.name, e.strerror or str(e)) from e

        log.debug(f"Spawned '{stage.name}' (pid {process.pid}): {stage.command_line()}")
        return cls(stage, process)

    @property
    def name(self) -> str:
        return self.stage.name

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def stdin(self) -> asyncio.StreamWriter | None:
        return self._process.stdin

    @property
    def stdout(self) -> asyncio.StreamReader | None:
        return self._process.stdout

    @property
    def stderr(self) -> asyncio.StreamReader | None:
        return self._process.stderr

    def poll(self) -> int | None:
        """Returns the exit code, or None while the process is still running."""
        return self._process.returncode

    def kill(self) -> None:
        """
        Forcefully terminates the process. Does nothing if it has already exited.

        Raises:
            PipelineIOError: If the OS refuses to deliver the signal.
        """
        if self._process.returncode is not None:
            return
        try:
            if _POSIX:
                os.killpg(self.pid, signal.SIGKILL)
            else:
                self._process.kill()
        except ProcessLookupError:
            # Exited between the returncode check and the signal.
            return
        except OSError as e:
            raise PipelineIOError(
                f"Could not terminate '{self.name}' (pid {self.pid}): {e}"
            ) from e
        self.kill_requested = True
        log.debug(f"Sent kill to '{self.name}' (pid {self.pid}).")

    async def wait(
        self, cancel: CancellationSignal, poll_interval: float = 0.1
    ) -> int | None:
        """
        Polls until the process exits and returns its exit code.

        If `cancel` is set first, the process is killed and None is returned.
        """
        while True:
            code = self.poll()
            if code is not None:
                return code
            if cancel.is_set():
                self.kill()
                return None
            await asyncio.sleep(poll_interval)

    async def close(self, timeout: float = 1.0) -> None:
        """
        Closes the input endpoint, discards unread output and reaps the process
        within `timeout`. Call only once nothing else is reading its streams.
        """
        if self.stdin is not None and not self.stdin.is_closing():
            self.stdin.close()
        try:
            await asyncio.wait_for(self._reap(), timeout)
        except asyncio.TimeoutError:
            # A grandchild may still hold one of our pipes open.
            log.debug(f"'{self.name}' not reaped within {timeout:.1f}s.")

    async def _reap(self) -> None:
        for stream in (self.stdout, self.stderr):
            if stream is None:
                continue
            try:
                while await stream.read(65536):
                    pass
            except OSError:
                pass
        await self._process.wait()

    def __repr__(self) -> str:
        return (
            f"ProcessHandle(name={self.name!r}, pid={self.pid}, "
            f"returncode={self.poll()!r})"
        )
