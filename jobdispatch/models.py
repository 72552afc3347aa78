"""
Data model for dispatched jobs, status snapshots and listing views.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from jobdispatch import config
from jobdispatch.retry import RetryPolicy


def iso_timestamp(ts: Optional[float]) -> Optional[str]:
    """Convert epoch seconds to an ISO-8601 UTC string."""
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


class JobType(Enum):
    """Closed set of job types. The value is the selector clients send."""
    STATS_CALCULATION = "calculate-stats"
    DATA_EXPORT = "export-data"

    @classmethod
    def from_selector(cls, selector: Any) -> Optional["JobType"]:
        """Map a client selector to a JobType, or None if unrecognized."""
        for job_type in cls:
            if selector == job_type.value:
                return job_type
        return None

    @property
    def namespace(self) -> str:
        if self is JobType.STATS_CALCULATION:
            return config.STATS_NAMESPACE
        return config.EXPORT_NAMESPACE

    @property
    def queue_name(self) -> str:
        if self is JobType.STATS_CALCULATION:
            return config.STATS_QUEUE_NAME
        return config.EXPORT_QUEUE_NAME

    @property
    def label(self) -> str:
        """Type label used in listing views."""
        if self is JobType.STATS_CALCULATION:
            return "statistics"
        return "data-export"

    @property
    def retry_policy(self) -> RetryPolicy:
        if self is JobType.STATS_CALCULATION:
            return config.STATS_RETRY_POLICY
        return config.EXPORT_RETRY_POLICY


class JobState(Enum):
    """Lifecycle state of a queued job."""
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


ALL_STATES = frozenset(JobState)
TERMINAL_STATES = frozenset({JobState.COMPLETED, JobState.FAILED})


def snapshot_key(job_type: JobType, request_id: str) -> str:
    """Cache key for a request's status snapshot."""
    return f"{job_type.namespace}:{request_id}"


@dataclass
class Job:
    """
    One unit of queued work, as stored by its work queue.

    Timestamps are epoch seconds. ``failed_reason`` is only set once retries
    are exhausted; intermediate attempt errors go to ``last_error``.
    """
    id: str
    job_type: JobType
    payload: Dict[str, Any]
    status: JobState
    created_at: float
    processed_at: Optional[float] = None
    finished_at: Optional[float] = None
    failed_reason: Optional[str] = None
    attempts_made: int = 0
    max_attempts: int = 1
    last_error: Optional[str] = None
    next_run_at: Optional[float] = None
    result: Optional[Any] = None

    @property
    def request_id(self) -> Optional[str]:
        return self.payload.get("requestId")

    def derived_status(self) -> JobState:
        """Status derived from timestamps and failure reason, never the stored column."""
        if self.failed_reason:
            return JobState.FAILED
        if self.finished_at is not None:
            return JobState.COMPLETED
        if self.processed_at is not None:
            return JobState.ACTIVE
        return JobState.WAITING


@dataclass
class StatusSnapshot:
    """Lightweight cached projection of a request's status."""
    status: str
    job_id: str
    created_at: str
    finished_at: Optional[str] = None
    result: Optional[Any] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "status": self.status,
            "jobId": self.job_id,
            "createdAt": self.created_at,
        }
        if self.finished_at is not None:
            data["finishedAt"] = self.finished_at
        if self.result is not None:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StatusSnapshot":
        return cls(
            status=data["status"],
            job_id=data["jobId"],
            created_at=data["createdAt"],
            finished_at=data.get("finishedAt"),
            result=data.get("result"),
            error=data.get("error"),
        )


@dataclass
class NormalizedJobView:
    """Uniform listing shape for jobs from either queue."""
    id: str
    type: str
    status: str
    created_at: float
    finished_at: Optional[float]
    payload: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def from_job(cls, job: Job) -> "NormalizedJobView":
        return cls(
            id=job.id,
            type=job.job_type.label,
            status=job.derived_status().value,
            created_at=job.created_at,
            finished_at=job.finished_at,
            payload=job.payload,
            error=job.failed_reason or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "status": self.status,
            "createdAt": iso_timestamp(self.created_at),
            "finishedAt": iso_timestamp(self.finished_at),
            "payload": self.payload,
            "error": self.error,
        }


@dataclass
class RequestCorrelation:
    """What a dispatch caller gets back: the request id that maps to a queued job."""
    request_id: str
    job_id: str
    job_type: JobType
    created_at: str
    status: str = "processing"

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "requestId": self.request_id,
            "jobId": self.job_id,
            "status": self.status,
        }
