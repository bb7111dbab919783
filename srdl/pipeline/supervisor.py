"""
Runs one or two chained stages end-to-end: spawn, relay, drain, wait, and
report exactly one outcome.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from srdl.exceptions import (
    PipelineCancelledError,
    PipelineIOError,
    SpawnError,
    StageFailedError,
)
from srdl.utils.structured_logger import PipelineEventLogger

from .cancellation import CancellationSignal
from .drain import DiagnosticDrain
from .process import ProcessHandle
from .relay import DEFAULT_BUFFER_SIZE, PipeRelay
from .stage import Stage, StreamMode

log = logging.getLogger(__name__)


class PipelineState(Enum):
    IDLE = "idle"
    SPAWNING = "spawning"
    RUNNING = "running"
    DRAINING = "draining"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Outcome(Enum):
    SUCCEEDED = "succeeded"
    STAGE_FAILED = "stage_failed"
    SPAWN_FAILED = "spawn_failed"
    IO_ERROR = "io_error"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PipelineResult:
    """The terminal outcome of a single pipeline run."""

    outcome: Outcome
    stage: str | None = None
    exit_code: int | None = None
    description: str = ""
    bytes_relayed: int = 0
    duration_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCEEDED

    def raise_for_status(self) -> None:
        """Raises the exception matching a non-successful outcome."""
        if self.outcome is Outcome.SUCCEEDED:
            return
        if self.outcome is Outcome.CANCELLED:
            raise PipelineCancelledError(self.description or "Cancelled by user.")
        if self.outcome is Outcome.STAGE_FAILED:
            raise StageFailedError(self.stage or "?", self.exit_code)
        if self.outcome is Outcome.SPAWN_FAILED:
            raise SpawnError(self.stage or "?", self.description)
        raise PipelineIOError(self.description)


class PipelineSupervisor:
    """
    Orchestrates a single run of 1-2 stages.

    With two stages, the first stage's stdout is relayed into the second
    stage's stdin. Whenever the first stage's stderr is piped, it is drained
    concurrently and each status line is passed to `on_status`.

    Every wait is a bounded poll that checks `cancel` on each iteration; once
    it is set, all live stages are killed and the run ends as CANCELLED.
    """

    def __init__(
        self,
        stages: Sequence[Stage],
        cancel: CancellationSignal,
        poll_interval: float = 0.1,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        on_status: Callable[[str], None] | None = None,
        events: PipelineEventLogger | None = None,
        reap_timeout: float = 1.0,
    ):
        if not 1 <= len(stages) <= 2:
            raise ValueError("A pipeline has one or two stages.")
        if len(stages) == 2 and (
            stages[0].stdout is not StreamMode.PIPE
            or stages[1].stdin is not StreamMode.PIPE
        ):
            raise ValueError(
                "Chained stages need a piped stdout upstream and a piped stdin "
                "downstream."
            )
        if len(stages) == 1 and stages[0].stdout is StreamMode.PIPE:
            raise ValueError("A single stage cannot pipe stdout: nothing reads it.")
        if stages[0].stdin is StreamMode.PIPE:
            raise ValueError("The first stage cannot pipe stdin: nothing feeds it.")
        if len(stages) == 2 and stages[1].stderr is StreamMode.PIPE:
            raise ValueError(
                "Only the first stage's stderr is drained; the downstream stage "
                "must inherit or discard it."
            )

        self.stages = tuple(stages)
        self.state = PipelineState.IDLE
        self.handles: list[ProcessHandle] = []
        self._cancel = cancel
        self._poll_interval = poll_interval
        self._buffer_size = buffer_size
        self._on_status = on_status
        self._events = events
        self._reap_timeout = reap_timeout
        self._relay: PipeRelay | None = None
        self._drain: DiagnosticDrain | None = None

    @property
    def last_status(self) -> str | None:
        return self._drain.last_line if self._drain else None

    async def run(self) -> PipelineResult:
        """Executes the pipeline. A supervisor runs exactly once."""
        if self.state is not PipelineState.IDLE:
            raise RuntimeError("This pipeline has already been run.")

        started = time.monotonic()
        self.state = PipelineState.SPAWNING
        try:
            await self._spawn_all()
        except SpawnError as e:
            self._kill_all_quietly()
            await self._close_handles()
            result = PipelineResult(
                Outcome.SPAWN_FAILED, stage=e.stage, description=e.reason
            )
            return self._finish(result, started)

        relay_task = drain_task = None
        try:
            if self._cancel.is_set():
                result = self._cancelled()
            else:
                self.state = PipelineState.RUNNING
                relay_task, drain_task = self._start_helpers()
                result = await self._supervise(relay_task)
        except PipelineIOError as e:
            self._kill_all_quietly()
            result = PipelineResult(Outcome.IO_ERROR, description=str(e))
        finally:
            await self._teardown(relay_task, drain_task)

        return self._finish(result, started)

    async def _spawn_all(self) -> None:
        # Spawning strictly in order guarantees the upstream pipe exists
        # before the downstream stage starts.
        for stage in self.stages:
            if self._cancel.is_set():
                return
            handle = await ProcessHandle.spawn(stage)
            self.handles.append(handle)
            if self._events:
                self._events.stage_spawned(stage.name, handle.pid, stage.argv)

    def _start_helpers(
        self,
    ) -> tuple[asyncio.Task | None, asyncio.Task | None]:
        source = self.handles[0]
        relay_task = drain_task = None

        if source.stderr is not None:
            self._drain = DiagnosticDrain(source.stderr, self._on_status)
            drain_task = asyncio.create_task(self._drain.run())

        if len(self.handles) == 2:
            self._relay = PipeRelay(
                source.stdout,
                self.handles[1].stdin,
                self._cancel,
                buffer_size=self._buffer_size,
            )
            relay_task = asyncio.create_task(self._relay.run())

        return relay_task, drain_task

    async def _supervise(self, relay_task: asyncio.Task | None) -> PipelineResult:
        if relay_task is not None:
            while not relay_task.done():
                if self._cancel.is_set():
                    return self._cancelled()
                if (failed := self._first_failure()) is not None:
                    return self._stage_failed(failed)
                await asyncio.wait({relay_task}, timeout=self._poll_interval)

            if (relay_error := relay_task.exception()) is not None:
                return await self._relay_failed(relay_error)

        self.state = PipelineState.DRAINING
        while True:
            if self._cancel.is_set():
                return self._cancelled()
            if (failed := self._first_failure()) is not None:
                return self._stage_failed(failed)
            if all(handle.poll() is not None for handle in self.handles):
                return PipelineResult(Outcome.SUCCEEDED)
            await asyncio.sleep(self._poll_interval)

    async def _relay_failed(self, error: BaseException) -> PipelineResult:
        if not isinstance(error, PipelineIOError):
            raise error
        # A broken pipe usually means the downstream stage died; allow one
        # interval for its exit status to be observed before blaming I/O.
        self.state = PipelineState.DRAINING
        await asyncio.sleep(self._poll_interval)
        if self._cancel.is_set():
            return self._cancelled()
        if (failed := self._first_failure()) is not None:
            return self._stage_failed(failed)
        self._kill_all()
        return PipelineResult(Outcome.IO_ERROR, description=str(error))

    def _first_failure(self) -> ProcessHandle | None:
        for handle in self.handles:
            code = handle.poll()
            if code is not None and code != 0 and not handle.kill_requested:
                return handle
        return None

    def _stage_failed(self, handle: ProcessHandle) -> PipelineResult:
        code = handle.poll()
        self._kill_all()
        return PipelineResult(Outcome.STAGE_FAILED, stage=handle.name, exit_code=code)

    def _cancelled(self) -> PipelineResult:
        self._kill_all()
        return PipelineResult(Outcome.CANCELLED, description="Cancelled by user.")

    def _kill_all(self) -> None:
        """Kills every live stage, raising the first signalling failure at the end."""
        first_error: PipelineIOError | None = None
        for handle in self.handles:
            already = handle.kill_requested
            try:
                handle.kill()
            except PipelineIOError as e:
                first_error = first_error or e
                continue
            if handle.kill_requested and not already and self._events:
                self._events.stage_killed(handle.name, handle.pid)
        if first_error is not None:
            raise first_error

    def _kill_all_quietly(self) -> None:
        try:
            self._kill_all()
        except PipelineIOError as e:
            log.warning(f"[yellow]{e}[/yellow]")

    async def _teardown(
        self, relay_task: asyncio.Task | None, drain_task: asyncio.Task | None
    ) -> None:
        # Anything still alive at this point is being abandoned.
        self._kill_all_quietly()

        if relay_task is not None:
            if not relay_task.done():
                relay_task.cancel()
            try:
                await relay_task
            except (asyncio.CancelledError, PipelineIOError):
                pass

        if drain_task is not None:
            try:
                await asyncio.wait_for(drain_task, self._reap_timeout)
            except asyncio.TimeoutError:
                log.debug("Diagnostic drain did not finish in time.")
            except Exception as e:
                log.debug(f"Diagnostic drain failed: {e}")

        await self._close_handles()

    async def _close_handles(self) -> None:
        for handle in self.handles:
            await handle.close(self._reap_timeout)
            if self._events:
                self._events.stage_exited(
                    handle.name, handle.poll(), handle.kill_requested
                )

    def _finish(self, result: PipelineResult, started: float) -> PipelineResult:
        duration = time.monotonic() - started
        # Cancellation observed at any point wins over a late success.
        if result.outcome is Outcome.SUCCEEDED and self._cancel.is_set():
            result = PipelineResult(Outcome.CANCELLED, description="Cancelled by user.")

        bytes_relayed = self._relay.bytes_relayed if self._relay else 0
        result = PipelineResult(
            outcome=result.outcome,
            stage=result.stage,
            exit_code=result.exit_code,
            description=result.description,
            bytes_relayed=bytes_relayed,
            duration_s=duration,
        )

        if result.outcome is Outcome.SUCCEEDED:
            self.state = PipelineState.SUCCEEDED
        elif result.outcome is Outcome.CANCELLED:
            self.state = PipelineState.CANCELLED
        else:
            self.state = PipelineState.FAILED

        log.debug(
            f"Pipeline {result.outcome.value} in {duration:.2f}s "
            f"({bytes_relayed} bytes relayed)."
        )
        if self._events:
            self._events.pipeline_finished(
                result.outcome.value,
                duration,
                bytes_relayed,
                stage=result.stage,
                exit_code=result.exit_code,
            )
        return result
