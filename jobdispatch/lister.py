"""
Job Lister - one merged, newest-first view over both work queues.

Reads go straight to the queues (not the status cache) since the listing
needs every job, not just the ones a caller holds a request id for.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from jobdispatch.errors import ListingFailed, ListingPartialFailure
from jobdispatch.models import ALL_STATES, JobType, NormalizedJobView
from jobdispatch.queue.job_queue import WorkQueue

logger = logging.getLogger(__name__)


@dataclass
class JobListing:
    """Result of a listing. ``failures`` names any queue whose jobs are missing."""
    jobs: List[NormalizedJobView] = field(default_factory=list)
    failures: List[ListingPartialFailure] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.failures)

    def to_dict(self) -> Dict[str, Any]:
        data = {"jobs": [job.to_dict() for job in self.jobs]}
        if self.failures:
            data["partial"] = True
            data["missing"] = [
                {"type": failure.job_type, "error": str(failure.cause)}
                for failure in self.failures
            ]
        return data


class JobLister:
    """Lists jobs of every type and state across the queues."""

    def __init__(self, queues: Mapping[JobType, WorkQueue]):
        self.queues = dict(queues)

    async def list_all(self) -> JobListing:
        """
        Read all queues concurrently and merge their jobs.

        Jobs are sorted by creation time, newest first; ties keep queue order.

        Returns:
            JobListing, with ``failures`` set if some (but not all) queues failed

        Raises:
            ListingFailed: Every queue read failed
        """
        job_types = list(self.queues)
        results = await asyncio.gather(
            *(asyncio.to_thread(self.queues[job_type].list_jobs, ALL_STATES) for job_type in job_types),
            return_exceptions=True,
        )

        listing = JobListing()
        for job_type, result in zip(job_types, results):
            if isinstance(result, BaseException):
                logger.warning(f"Listing {job_type.label} jobs failed: {result}")
                listing.failures.append(ListingPartialFailure(job_type.label, result))
                continue
            listing.jobs.extend(NormalizedJobView.from_job(job) for job in result)

        if job_types and len(listing.failures) == len(job_types):
            raise ListingFailed(listing.failures)

        listing.jobs.sort(key=lambda view: view.created_at, reverse=True)
        return listing
