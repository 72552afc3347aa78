"""
Job Queue - Manages job lifecycle and queue operations.

This module is responsible for:
- Enqueuing jobs with their retry policy
- Listing jobs by lifecycle state
- Claiming due jobs for a worker
- Recording success, retry and terminal failure
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from jobdispatch.database import QueueDatabase
from jobdispatch.models import Job, JobState, JobType
from jobdispatch.retry import RetryPolicy

logger = logging.getLogger(__name__)


class WorkQueue(ABC):
    """
    Contract every work queue satisfies.

    Dispatch and listing only rely on ``enqueue`` and ``list_jobs``;
    execution (claiming, retries) is the queue's own business.
    """

    job_type: JobType

    @abstractmethod
    def enqueue(self, payload: Dict[str, Any], policy: RetryPolicy) -> str:
        """Add a job and return its queue-assigned ID."""
        pass

    @abstractmethod
    def list_jobs(self, states: Iterable[JobState]) -> List[Job]:
        """Jobs in any of ``states``, in queue order (oldest first)."""
        pass


class JobQueue(WorkQueue):
    """
    Durable SQLite-backed queue for one job type.

    Execution is at-least-once: a job claimed by a worker that dies stays
    active until ``recover_stalled`` counts the interrupted run as a failed
    attempt.
    """

    def __init__(self, job_type: JobType, db_path: Path, clock: Callable[[], float] = time.time):
        """
        Initialize the job queue.

        Args:
            job_type: The single job type this queue holds
            db_path: SQLite file for this queue
            clock: Returns the current time in epoch seconds
        """
        self.job_type = job_type
        self.name = job_type.queue_name
        self.clock = clock
        self.db = QueueDatabase(db_path, clock=clock)
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    def _to_job(self, row: Dict) -> Job:
        return Job(
            id=row["id"],
            job_type=self.job_type,
            payload=json.loads(row["payload_json"]),
            status=JobState(row["status"]),
            created_at=row["created_at"],
            processed_at=row["processed_at"],
            finished_at=row["finished_at"],
            failed_reason=row["failed_reason"],
            attempts_made=row["attempts_made"],
            max_attempts=row["max_attempts"],
            last_error=row["last_error"],
            next_run_at=row["next_run_at"],
            result=json.loads(row["result_json"]) if row["result_json"] else None,
        )

    def _policy_for(self, row: Dict) -> RetryPolicy:
        return RetryPolicy.from_stored(
            row["max_attempts"], row["backoff_type"], row["backoff_delay_ms"]
        )

    def enqueue(self, payload: Dict[str, Any], policy: RetryPolicy) -> str:
        """
        Add a waiting job.

        Args:
            payload: JSON-serializable job data
            policy: Retry policy the job carries for its whole life

        Returns:
            Job ID
        """
        job_id = self.db.create_job(self.job_type.value, payload, policy)
        self.logger.info(
            f"Enqueued job {job_id} (max_attempts={policy.max_attempts}, backoff={policy.backoff_type})"
        )
        return job_id

    def get_job(self, job_id: str) -> Optional[Job]:
        row = self.db.get_job(job_id)
        return self._to_job(row) if row else None

    def list_jobs(self, states: Iterable[JobState]) -> List[Job]:
        """
        List jobs in the given states.

        Args:
            states: Lifecycle states to include

        Returns:
            Jobs ordered by creation time, oldest first
        """
        rows = self.db.get_jobs_by_status(state.value for state in states)
        return [self._to_job(row) for row in rows]

    def claim_next(self) -> Optional[Job]:
        """
        Claim the next due job for execution.

        Returns:
            The now-active job, or None if nothing is due
        """
        row = self.db.claim_next_due_job()
        if not row:
            return None
        job = self._to_job(row)
        self.logger.info(f"Claimed job {job.id} (attempt {job.attempts_made + 1}/{job.max_attempts})")
        return job

    def complete(self, job_id: str, result: Any = None) -> Optional[Job]:
        """
        Record a successful attempt.

        Returns:
            The completed job

        Raises:
            TypeError: ``result`` is not JSON-serializable; the job is left untouched
        """
        result_json = json.dumps(result) if result is not None else None
        self.db.mark_completed(job_id, result_json)
        return self.get_job(job_id)

    def fail(self, job_id: str, error: str) -> Optional[Job]:
        """
        Record a failed attempt and apply the job's retry policy.

        The job goes back to waiting with a backoff delay while attempts
        remain, otherwise it is marked failed.

        Args:
            job_id: Job ID
            error: Error message from the attempt

        Returns:
            The job after the transition, or None if it does not exist
        """
        row = self.db.get_job(job_id)
        if not row:
            return None

        error = error or "failed"
        policy = self._policy_for(row)
        attempts_made = row["attempts_made"] + 1

        if policy.allows_retry(attempts_made):
            delay = policy.delay_seconds_for(attempts_made)
            self.db.mark_retry(job_id, attempts_made, error, self.clock() + delay)
            self.logger.warning(
                f"Job {job_id} failed attempt {attempts_made}/{policy.max_attempts}: {error}; "
                f"retrying in {delay:.1f}s"
            )
        else:
            self.db.mark_failed(job_id, attempts_made, error)
            self.logger.error(
                f"Job {job_id} failed after {attempts_made} attempt(s): {error}"
            )

        return self.get_job(job_id)

    def recover_stalled(self) -> List[Job]:
        """
        Count interrupted runs of active jobs as failed attempts.

        Used on startup after a crash or restart. Each stalled job goes
        through ``fail``, so it is retried with backoff while attempts
        remain and marked failed otherwise.

        Returns:
            The recovered jobs after their transition
        """
        recovered = []
        for row in self.db.get_jobs_by_status([JobState.ACTIVE.value]):
            job = self.fail(row["id"], "stalled")
            if job is not None:
                recovered.append(job)

        if recovered:
            self.logger.info(f"Recovered {len(recovered)} stalled job(s)")
        return recovered

    def counts(self) -> Dict[str, int]:
        return self.db.count_by_status()

    def clear_finished(self, older_than_seconds: Optional[float] = None) -> int:
        """
        Delete completed and failed jobs.

        Args:
            older_than_seconds: Only delete jobs finished at least this long ago

        Returns:
            Number of jobs deleted
        """
        finished_before = None
        if older_than_seconds is not None:
            finished_before = self.clock() - older_than_seconds
        return self.db.delete_finished_jobs(finished_before)
