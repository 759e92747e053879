# tail.py
from __future__ import annotations

from typing import BinaryIO, Optional
from urllib.parse import urlsplit

from .model import BuildHandle, BuildServer
from .settings import DEFAULT_POLL_INTERVAL, DEFAULT_TAIL_MAX_DURATION
from .stop import StopToken


def log_path(handle: BuildHandle) -> str:
    """Server path of a build, e.g. '/job/team1/job/app/42/'."""
    return urlsplit(handle.build.url).path


def tail(
    server: BuildServer,
    handle: BuildHandle,
    sink: BinaryIO,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    max_duration: float = DEFAULT_TAIL_MAX_DURATION,
    stop: Optional[StopToken] = None,
) -> None:
    """
    Stream a build's console output into `sink` until the build finishes.

    Reaching `max_duration` ends tailing quietly. Transport errors from the
    server propagate.
    """
    server.stream_console_log(log_path(handle), sink, poll_interval, max_duration, stop=stop)
