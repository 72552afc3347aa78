"""
Errors raised by the job dispatch subsystem.
"""

from typing import Any, Optional


class JobDispatchError(Exception):
    """Base class for job dispatch errors."""


class InvalidJobType(JobDispatchError):
    """The job-type selector is not one of the known types."""

    def __init__(self, job_type: Any):
        self.job_type = job_type
        super().__init__(f"Invalid job type: {job_type!r}")


class DispatchFailed(JobDispatchError):
    """The work queue could not accept the job. No status snapshot was written."""

    def __init__(self, job_type: str, cause: Optional[BaseException] = None):
        self.job_type = job_type
        self.cause = cause
        super().__init__(f"Failed to enqueue {job_type} job: {cause}")


class ListingPartialFailure(JobDispatchError):
    """One queue could not be read while listing; its jobs are missing from the result."""

    def __init__(self, job_type: str, cause: BaseException):
        self.job_type = job_type
        self.cause = cause
        super().__init__(f"Could not list {job_type} jobs: {cause}")


class ListingFailed(JobDispatchError):
    """No queue could be read while listing."""

    def __init__(self, failures):
        self.failures = list(failures)
        reasons = "; ".join(str(f) for f in self.failures)
        super().__init__(f"Could not list any jobs: {reasons}")
