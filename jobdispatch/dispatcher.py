"""
Job Dispatcher - turns a typed request into queued work plus a status snapshot.
"""

import logging
import time
import uuid
from typing import Any, Callable, Dict, Mapping, Optional

from jobdispatch import config
from jobdispatch.cache import StatusCache
from jobdispatch.errors import DispatchFailed, InvalidJobType
from jobdispatch.models import (
    Job,
    JobState,
    JobType,
    RequestCorrelation,
    StatusSnapshot,
    iso_timestamp,
    snapshot_key,
)
from jobdispatch.queue.job_queue import WorkQueue

logger = logging.getLogger(__name__)


class JobDispatcher:
    """
    Dispatches jobs onto the queue matching their type.

    Every call mints a fresh request id; identical payloads are never
    deduplicated.
    """

    def __init__(
        self,
        queues: Mapping[JobType, WorkQueue],
        cache: StatusCache,
        ttl_seconds: int = config.STATUS_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.queues = dict(queues)
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def dispatch(self, job_type: Any, params: Optional[Dict[str, Any]] = None) -> RequestCorrelation:
        """
        Enqueue a job and record its initial status.

        Args:
            job_type: JobType or its selector string ("calculate-stats", "export-data")
            params: Caller-supplied job parameters

        Returns:
            RequestCorrelation with the new request id and the queue's job id

        Raises:
            InvalidJobType: Unknown selector; nothing was enqueued or cached
            DispatchFailed: The queue rejected the job; nothing was cached
        """
        resolved = job_type if isinstance(job_type, JobType) else JobType.from_selector(job_type)
        if resolved is None:
            logger.warning(f"Rejected dispatch with invalid job type {job_type!r}")
            raise InvalidJobType(job_type)

        queue = self.queues[resolved]
        request_id = str(uuid.uuid4())
        payload = dict(params or {})
        payload["requestId"] = request_id

        try:
            job_id = queue.enqueue(payload, resolved.retry_policy)
        except Exception as e:
            logger.error(f"Error creating {resolved.value} job: {e}", exc_info=True)
            raise DispatchFailed(resolved.value, e) from e

        created_at = iso_timestamp(self.clock())
        snapshot = StatusSnapshot(status="processing", job_id=job_id, created_at=created_at)
        try:
            # A worker may already have recorded the outcome; never overwrite it
            if not self.cache.add(snapshot_key(resolved, request_id), snapshot.to_dict(), self.ttl_seconds):
                logger.info(f"Request {request_id} finished before its initial status was cached")
        except Exception as e:
            # The job is queued either way; it stays visible through the lister
            logger.error(f"Could not cache status for request {request_id}: {e}", exc_info=True)

        logger.info(f"Dispatched {resolved.value} request {request_id} as job {job_id}")
        return RequestCorrelation(
            request_id=request_id,
            job_id=job_id,
            job_type=resolved,
            created_at=created_at,
        )

    def record_outcome(self, job: Job) -> Optional[StatusSnapshot]:
        """
        Rewrite a request's snapshot once its job reaches a terminal state.

        Args:
            job: Job in completed or failed state

        Returns:
            The snapshot written, or None if the job is not terminal or carries no request id
        """
        state = job.derived_status()
        request_id = job.request_id
        if state not in (JobState.COMPLETED, JobState.FAILED) or not request_id:
            return None

        key = snapshot_key(job.job_type, request_id)
        previous = self.cache.get(key)
        created_at = previous["createdAt"] if previous else iso_timestamp(job.created_at)

        snapshot = StatusSnapshot(
            status=state.value,
            job_id=job.id,
            created_at=created_at,
            finished_at=iso_timestamp(job.finished_at),
            result=job.result if state is JobState.COMPLETED else None,
            error=job.failed_reason if state is JobState.FAILED else None,
        )
        self.cache.set(key, snapshot.to_dict(), self.ttl_seconds)
        logger.info(f"Request {request_id} finished with status {state.value}")
        return snapshot
