from .client import JenkinsClient, JenkinsError, job_path

__all__ = ["JenkinsClient", "JenkinsError", "job_path"]
