# stop.py
from __future__ import annotations

import signal
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional


class StopToken:
    """
    Cooperative cancellation for the polling loops.

    Loops read `stopped` (and, where a deadline applies, `expired`) at the
    top of every iteration. The deadline is counted from creation.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self._stopped = False
        self.deadline = clock() + timeout if timeout else None

    def stop(self) -> None:
        self._stopped = True

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def expired(self) -> bool:
        return self.deadline is not None and self._clock() >= self.deadline

    @contextmanager
    def handle_signals(self) -> Iterator["StopToken"]:
        """Turn SIGINT/SIGTERM into a graceful stop while the block runs."""
        previous = {
            sig: signal.signal(sig, self._signal_handler)
            for sig in (signal.SIGINT, signal.SIGTERM)
        }
        try:
            yield self
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    def _signal_handler(self, signum, frame):
        self.stop()
