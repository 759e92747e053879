# jenkins/client.py
from __future__ import annotations

import base64
import json
import time
import urllib.error
import urllib.request
from typing import Any, BinaryIO, Callable, Dict, List, Mapping, Optional
from urllib.parse import quote, urlencode, urlsplit

from ..model import BuildRef, BuildState, JobRef
from ..stop import StopToken

CHUNK_SIZE = 8192

JOB_TREE = "name,url,jobs[name,url]"
ROOT_TREE = "jobs[name,url]"
BUILD_TREE = "number,url,building,result"


class JenkinsError(Exception):
    """Raised when a request to the build server fails."""

    def __init__(self, message: str, status: Optional[int] = None, url: str = ""):
        super().__init__(message)
        self.status = status
        self.url = url

    @property
    def not_found(self) -> bool:
        return self.status == 404


def job_path(full_name: str) -> str:
    """'team1/nested/app' -> 'job/team1/job/nested/job/app'"""
    return "/".join(f"job/{quote(part, safe='')}" for part in full_name.split("/") if part)


def job_from_dict(data: Dict[str, Any]) -> JobRef:
    children = data.get("jobs")
    return JobRef(
        name=data.get("name", ""),
        class_name=data.get("_class", ""),
        url=data.get("url", ""),
        children=[job_from_dict(c) for c in children] if children is not None else None,
    )


def build_from_dict(data: Dict[str, Any]) -> BuildRef:
    if data.get("building"):
        state = BuildState.RUNNING
    elif data.get("result") is not None:
        state = BuildState.COMPLETE
    else:
        state = BuildState.UNKNOWN
    return BuildRef(number=int(data.get("number") or 0), url=data.get("url", ""), state=state)


class JenkinsClient:
    """HTTP client for the Jenkins JSON API."""

    def __init__(
        self,
        base_url: str,
        user: Optional[str] = None,
        token: Optional[str] = None,
        timeout: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the client.

        Args:
            base_url: Jenkins root URL, including any context path
            user: Optional user name for basic auth
            token: Optional API token (or password) for basic auth
            timeout: Socket timeout in seconds applied to every request
            sleep: Sleep function used between log polls
            clock: Monotonic clock used to bound log tailing
        """
        self.base_url = base_url.rstrip("/")
        self.user = user
        self.token = token
        self.timeout = timeout
        self._sleep = sleep
        self._clock = clock
        self._crumb: Optional[Dict[str, str]] = None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _api_url(self, path: str, query: Optional[Mapping[str, Any]] = None) -> str:
        url = f"{self.base_url}/{path.lstrip('/')}"
        if query:
            url += "?" + urlencode(query)
        return url

    def _server_url(self, absolute_path: str) -> str:
        # Build URLs already carry the context path, so only keep scheme and host.
        parts = urlsplit(self.base_url)
        return f"{parts.scheme}://{parts.netloc}/{absolute_path.lstrip('/')}"

    def _headers(self, extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.user and self.token:
            raw = f"{self.user}:{self.token}".encode("utf-8")
            headers["Authorization"] = "Basic " + base64.b64encode(raw).decode("ascii")
        if extra:
            headers.update(extra)
        return headers

    def _open(self, method: str, url: str, headers: Optional[Mapping[str, str]] = None, data: Optional[bytes] = None):
        req = urllib.request.Request(url, data=data, headers=self._headers(headers), method=method)
        try:
            return urllib.request.urlopen(req, timeout=self.timeout)
        except urllib.error.HTTPError as e:
            error_body = e.read().decode("utf-8", errors="replace") if e.fp else ""
            raise JenkinsError(
                f"{method} {url} failed: {e.code} {e.reason}. {error_body[:500]}".rstrip(". "),
                status=e.code,
                url=url,
            ) from e
        except urllib.error.URLError as e:
            raise JenkinsError(f"Network error calling {url}: {e.reason}", url=url) from e
        except OSError as e:
            raise JenkinsError(f"Network error calling {url}: {e}", url=url) from e

    def _get_json(self, url: str) -> Dict[str, Any]:
        with self._open("GET", url) as response:
            try:
                raw = response.read().decode("utf-8")
            except OSError as e:
                raise JenkinsError(f"Network error reading {url}: {e}", url=url) from e
        try:
            return json.loads(raw) if raw else {}
        except json.JSONDecodeError as e:
            raise JenkinsError(f"Invalid JSON response from {url}: {e}", url=url) from e

    def _crumb_header(self) -> Dict[str, str]:
        """CSRF crumb, or nothing when the server does not issue one."""
        if self._crumb is None:
            try:
                data = self._get_json(self._api_url("crumbIssuer/api/json"))
                field = data.get("crumbRequestField")
                crumb = data.get("crumb")
                self._crumb = {field: crumb} if field and crumb else {}
            except JenkinsError as e:
                if not e.not_found:
                    raise
                self._crumb = {}
        return self._crumb

    # ------------------------------------------------------------------
    # Job tree
    # ------------------------------------------------------------------

    def list_root_jobs(self) -> List[JobRef]:
        data = self._get_json(self._api_url("api/json", {"tree": ROOT_TREE}))
        return [job_from_dict(j) for j in data.get("jobs", [])]

    def fetch_job(self, full_name: str) -> JobRef:
        """Fetch a single job (and its direct children) by fully-qualified name."""
        data = self._get_json(self._api_url(f"{job_path(full_name)}/api/json", {"tree": JOB_TREE}))
        return job_from_dict(data)

    # ------------------------------------------------------------------
    # Builds
    # ------------------------------------------------------------------

    def get_last_build(self, job: JobRef) -> BuildRef:
        """
        Return the most recent build of a job.

        Raises:
            JenkinsError: status 404 if the job has never built
        """
        url = self._api_url(f"{job_path(job.name)}/lastBuild/api/json", {"tree": BUILD_TREE})
        return build_from_dict(self._get_json(url))

    def trigger_build(self, job: JobRef, parameters: Optional[Mapping[str, str]] = None) -> None:
        if parameters:
            url = self._api_url(f"{job_path(job.name)}/buildWithParameters", parameters)
        else:
            url = self._api_url(f"{job_path(job.name)}/build")
        with self._open("POST", url, headers=self._crumb_header(), data=b""):
            pass

    def stream_console_log(
        self,
        log_path: str,
        sink: BinaryIO,
        poll_interval: float,
        max_duration: float,
        stop: Optional[StopToken] = None,
    ) -> None:
        """
        Copy a build's console output to `sink` as it is produced.

        Polls the progressive text endpoint from offset 0. Returns when the
        server reports no more data, when `stop` is set, or once
        `max_duration` seconds have passed.
        """
        deadline = self._clock() + max_duration
        start = 0
        base = self._server_url(log_path.rstrip("/") + "/logText/progressiveText")
        while True:
            if stop is not None and stop.stopped:
                return
            url = f"{base}?start={start}"
            with self._open("GET", url, headers={"Accept": "text/plain"}) as response:
                try:
                    while True:
                        chunk = response.read(CHUNK_SIZE)
                        if not chunk:
                            break
                        sink.write(chunk)
                except OSError as e:
                    raise JenkinsError(f"Network error reading {url}: {e}", url=url) from e
                sink.flush()
                start = int(response.headers.get("X-Text-Size") or start)
                more_data = response.headers.get("X-More-Data")
            if not more_data:
                return
            if self._clock() >= deadline:
                return
            self._sleep(poll_interval)
