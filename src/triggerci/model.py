# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, BinaryIO, Dict, List, Mapping, Optional, Protocol


class BuildState(str, Enum):
    UNKNOWN = "unknown"
    RUNNING = "running"
    COMPLETE = "complete"


@dataclass(frozen=True)
class JobRef:
    """
    A node of the build server's job tree.

    `children` is None while a folder has not been expanded yet, and an
    empty list once the server confirmed it has no children.
    """
    name: str
    class_name: str = ""
    url: str = ""
    children: Optional[List["JobRef"]] = field(default=None, compare=False)

    @property
    def expanded(self) -> bool:
        return self.children is not None


@dataclass(frozen=True)
class BuildRef:
    """One build of a job. Number 0 means no build was observed."""
    number: int
    url: str = ""
    state: BuildState = BuildState.UNKNOWN

    @property
    def console_url(self) -> str:
        return self.url.rstrip("/") + "/console"


NO_BUILD = BuildRef(number=0)


@dataclass(frozen=True)
class BuildHandle:
    job_name: str
    build: BuildRef


# Flattened job tree: fully-qualified name -> pipeline JobRef
Catalog = Dict[str, JobRef]


class BuildServer(Protocol):
    """The remote operations the discovery/trigger/tail loop relies on."""

    def list_root_jobs(self) -> List[JobRef]: ...

    def fetch_job(self, full_name: str) -> JobRef: ...

    def get_last_build(self, job: JobRef) -> BuildRef: ...

    def trigger_build(self, job: JobRef, parameters: Mapping[str, str]) -> None: ...

    def stream_console_log(
        self,
        log_path: str,
        sink: BinaryIO,
        poll_interval: float,
        max_duration: float,
        stop: Optional[Any] = None,
    ) -> None: ...
