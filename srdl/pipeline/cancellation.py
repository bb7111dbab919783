"""
One-shot cancellation flag shared by every loop of a pipeline run, and the
interrupt handler that sets it.
"""

import logging
import os
import signal
import threading
from contextlib import contextmanager
from typing import Iterator

log = logging.getLogger(__name__)

CANCELLED_EXIT_CODE = 130


class CancellationSignal:
    """
    A monotonic false -> true flag.

    Backed by a `threading.Event`, so it can be set from an OS signal handler or
    a timer thread and read from the event loop without any extra locking.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def signal(self) -> None:
        """Sets the flag. Calling it again has no further effect."""
        if not self._event.is_set():
            log.debug("Cancellation requested.")
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationSignal(set={self.is_set()})"


@contextmanager
def interrupt_handler(
    cancel: CancellationSignal,
    grace_period: float = 1.0,
    exit_code: int = CANCELLED_EXIT_CODE,
) -> Iterator[CancellationSignal]:
    """
    Routes SIGINT to `cancel` for the duration of the block.

    The first interrupt sets the signal and arms a timer; if the program is
    still running when the grace period expires, the process is terminated
    with `exit_code` regardless of what the pipeline is doing.
    """
    timer: threading.Timer | None = None

    def _force_exit() -> None:
        log.debug("Grace period expired, forcing exit.")
        os._exit(exit_code)

    def _handle(signum, frame) -> None:
        nonlocal timer
        cancel.signal()
        if timer is None:
            timer = threading.Timer(grace_period, _force_exit)
            timer.daemon = True
            timer.start()

    previous = signal.signal(signal.SIGINT, _handle)
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, previous)
        if timer is not None:
            timer.cancel()
