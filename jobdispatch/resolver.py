"""
Status Resolver - looks up a request's snapshot without knowing its job type.
"""

import logging
from typing import Optional

from jobdispatch.cache import StatusCache
from jobdispatch.models import JobType, StatusSnapshot, snapshot_key

logger = logging.getLogger(__name__)

# Fixed probe order; request ids are UUIDs so namespaces never collide
PROBE_ORDER = (JobType.STATS_CALCULATION, JobType.DATA_EXPORT)


class StatusResolver:
    """Reads status snapshots. Never writes."""

    def __init__(self, cache: StatusCache):
        self.cache = cache

    def resolve(self, request_id: str) -> Optional[StatusSnapshot]:
        """
        Find the snapshot for a request id.

        A miss is ambiguous: the id may never have existed, may have expired,
        or may be mistyped. It does not mean the job failed.

        Args:
            request_id: Request id returned by dispatch

        Returns:
            StatusSnapshot or None if not found
        """
        for job_type in PROBE_ORDER:
            data = self.cache.get(snapshot_key(job_type, request_id))
            if data is not None:
                return StatusSnapshot.from_dict(data)

        logger.debug(f"No status snapshot for request {request_id}")
        return None
