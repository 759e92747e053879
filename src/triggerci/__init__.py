from .catalog import ClassMarkerPolicy, discover
from .model import NO_BUILD, BuildHandle, BuildRef, BuildServer, BuildState, JobRef
from .selector import InvalidJobName, select
from .stop import StopToken
from .tracker import BuildTracker, TrackingError, TriggerError

__all__ = [
    "ClassMarkerPolicy", "discover",
    "NO_BUILD", "BuildHandle", "BuildRef", "BuildServer", "BuildState", "JobRef",
    "InvalidJobName", "select",
    "StopToken",
    "BuildTracker", "TrackingError", "TriggerError",
]
