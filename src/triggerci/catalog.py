# catalog.py
from __future__ import annotations

from dataclasses import replace
from typing import Callable, Iterable, Optional, Set

from .jenkins.client import JenkinsError
from .model import BuildServer, Catalog, JobRef
from .settings import DEFAULT_PIPELINE_MARKERS
from .ui.console import get_console

PipelinePolicy = Callable[[JobRef], bool]


class ClassMarkerPolicy:
    """
    Classify a node as a pipeline when its server class tag contains one
    of the given markers.

    Jenkins tags pipelines as e.g. `org.jenkinsci.plugins.workflow.job.WorkflowJob`
    and folders as `com.cloudbees.hudson.plugins.folder.Folder`.
    """

    def __init__(self, markers: Iterable[str] = DEFAULT_PIPELINE_MARKERS):
        self.markers = tuple(markers)

    def __call__(self, job: JobRef) -> bool:
        return any(m in job.class_name for m in self.markers)


def qualified_name(prefix: str, job: JobRef) -> str:
    return f"{prefix}/{job.name}" if prefix else job.name


def discover(
    server: BuildServer,
    root_jobs: Iterable[JobRef],
    filter_text: Optional[str] = None,
    is_pipeline: Optional[PipelinePolicy] = None,
) -> Catalog:
    """
    Flatten the job tree into {fully-qualified name: JobRef}.

    Walks depth-first. Nodes whose children were not returned are fetched
    one at a time by name; a failed fetch drops only that branch. Only
    pipeline nodes (per `is_pipeline`) whose name contains `filter_text`
    are kept, each as a copy whose `name` is the qualified name.

    Args:
        server: Build server used to expand folders lazily
        root_jobs: Top level jobs, usually from `server.list_root_jobs()`
        filter_text: Optional substring the qualified name must contain
        is_pipeline: Classification policy, defaults to ClassMarkerPolicy()

    Returns:
        Catalog of pipeline jobs
    """
    policy = is_pipeline or ClassMarkerPolicy()
    catalog: Catalog = {}
    visited: Set[str] = set()
    _add_jobs(server, "", root_jobs, filter_text, policy, catalog, visited)
    return catalog


def _add_jobs(
    server: BuildServer,
    prefix: str,
    jobs: Iterable[JobRef],
    filter_text: Optional[str],
    policy: PipelinePolicy,
    catalog: Catalog,
    visited: Set[str],
) -> None:
    console = get_console()
    for job in jobs:
        name = qualified_name(prefix, job)

        # A server that lists a folder inside itself must not send us in circles.
        key = job.url or name
        if key in visited:
            console.print_debug(f"Skipping already visited job {name}")
            continue
        visited.add(key)

        if policy(job):
            if not filter_text or filter_text in name:
                catalog[name] = replace(job, name=name)

        if job.expanded:
            _add_jobs(server, name, job.children, filter_text, policy, catalog, visited)
            continue

        try:
            fetched = server.fetch_job(name)
        except JenkinsError as e:
            console.print_debug(f"Could not expand {name}: {e}")
            continue
        if fetched.children:
            _add_jobs(server, name, fetched.children, filter_text, policy, catalog, visited)
