# settings.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

# Every value can be overridden by a CLI option or its TRIGGERCI_* env var.
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_TAIL_MAX_DURATION = 100 * 60 * 60.0
DEFAULT_PIPELINE_MARKERS = ("Job",)


@dataclass(frozen=True)
class Settings:
    jenkins_url: str
    user: Optional[str] = None
    token: Optional[str] = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    track_timeout: Optional[float] = None  # None: poll until a new build shows up
    tail_max_duration: float = DEFAULT_TAIL_MAX_DURATION
    pipeline_markers: Tuple[str, ...] = DEFAULT_PIPELINE_MARKERS


def markers_from_string(raw: Optional[str]) -> Tuple[str, ...]:
    """Parse a comma separated marker list, falling back to the defaults."""
    markers = tuple(m.strip() for m in (raw or "").split(",") if m.strip())
    return markers or DEFAULT_PIPELINE_MARKERS
