# tracker.py
from __future__ import annotations

import time
from typing import Callable, Optional

from .jenkins.client import JenkinsError
from .model import NO_BUILD, BuildHandle, BuildRef, BuildServer, JobRef
from .settings import DEFAULT_POLL_INTERVAL
from .stop import StopToken
from .ui.console import get_console


class TriggerError(Exception):
    """The build server refused to start the job; nothing was started."""

    def __init__(self, job: str, cause: Exception):
        super().__init__(f"Failed to trigger {job}: {cause}")
        self.job = job
        self.cause = cause


class TrackingError(Exception):
    """The job was triggered but the resulting build could not be identified."""

    def __init__(self, job: str, iteration: int, message: str, cause: Optional[Exception] = None):
        super().__init__(f"{message} (job={job}, poll={iteration})")
        self.job = job
        self.iteration = iteration
        self.cause = cause


class TrackingTimeout(TrackingError):
    pass


class TrackingCancelled(TrackingError):
    pass


class BuildTracker:
    """
    Starts a job and polls until a build number other than the one seen
    before the trigger shows up.

    Known limitation: builds are told apart only by number. If someone else
    triggers the same job between the "before" lookup and our first poll,
    that build is the one reported. Jenkins does not hand back a build id
    from the trigger call, so this cannot be tightened here.
    """

    def __init__(
        self,
        server: BuildServer,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            server: Build server client
            poll_interval: Seconds to wait between polls
            sleep: Sleep function (tests pass a no-op)
        """
        self.server = server
        self.poll_interval = poll_interval
        self._sleep = sleep

    def previous_build(self, job: JobRef) -> BuildRef:
        """Last build before triggering, or NO_BUILD if the job never ran."""
        try:
            return self.server.get_last_build(job)
        except JenkinsError as e:
            get_console().print_debug(f"No previous build of {job.name}: {e}")
            return NO_BUILD

    def trigger_and_track(self, job: JobRef, stop: Optional[StopToken] = None) -> BuildHandle:
        """
        Trigger `job` and return a handle on the build it produced.

        Raises:
            TriggerError: If the trigger call fails
            TrackingError: If a poll after the first one fails
            TrackingTimeout: If the stop token's deadline passes first
            TrackingCancelled: If the stop token is stopped first
        """
        console = get_console()
        previous = self.previous_build(job)

        try:
            self.server.trigger_build(job, {})
        except JenkinsError as e:
            raise TriggerError(job.name, e) from e

        i = 0
        while True:
            if stop is not None:
                if stop.stopped:
                    raise TrackingCancelled(job.name, i, "Stopped while waiting for the build to start")
                if stop.expired:
                    raise TrackingTimeout(job.name, i, "Timed out waiting for the build to start")

            try:
                last = self.server.get_last_build(job)
            except JenkinsError as e:
                # Right after the trigger the server may not expose lastBuild yet.
                if i > 0:
                    raise TrackingError(job.name, i, f"Could not fetch last build: {e}", e) from e
                console.print_debug(f"Ignoring first poll failure for {job.name}: {e}")
                last = None

            if last is not None and last.number != previous.number:
                return BuildHandle(job_name=job.name, build=last)

            console.print_debug(f"Waiting for a new build of {job.name} (poll {i})")
            i += 1
            self._sleep(self.poll_interval)
