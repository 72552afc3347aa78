"""
Wiring for the job subsystem.

``JobSystem`` constructs the two queues, the status cache and the services
that use them, and owns one background worker per queue. Nothing here is a
module-level singleton; the API and tests build their own instance.
"""

import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from jobdispatch import config, processors as default_processors
from jobdispatch.cache import StatusCache
from jobdispatch.dispatcher import JobDispatcher
from jobdispatch.lister import JobLister
from jobdispatch.models import JobType
from jobdispatch.queue.job_queue import JobQueue
from jobdispatch.queue.worker import BackgroundWorker, Processor
from jobdispatch.resolver import StatusResolver

logger = logging.getLogger(__name__)

DEFAULT_PROCESSORS: Dict[JobType, Processor] = {
    JobType.STATS_CALCULATION: default_processors.calculate_stats,
    JobType.DATA_EXPORT: default_processors.export_data,
}


class JobSystem:
    """Queues, cache, dispatcher, resolver, lister and workers for one process."""

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        processors: Optional[Mapping[JobType, Processor]] = None,
        clock: Callable[[], float] = time.time,
        poll_interval: float = config.WORKER_POLL_INTERVAL,
    ):
        """
        Build the subsystem.

        Args:
            data_dir: Directory for queue and cache databases (defaults to config.DATA_DIR)
            processors: Overrides for the per-type job processors
            clock: Time source shared by queues, cache and dispatcher
            poll_interval: Idle sleep for workers
        """
        self.data_dir = Path(data_dir or config.DATA_DIR)

        self.queues: Dict[JobType, JobQueue] = {
            job_type: JobQueue(job_type, config.queue_db_path(job_type.queue_name, self.data_dir), clock=clock)
            for job_type in JobType
        }
        self.cache = StatusCache(config.cache_db_path(self.data_dir), clock=clock)

        self.dispatcher = JobDispatcher(self.queues, self.cache, clock=clock)
        self.resolver = StatusResolver(self.cache)
        self.lister = JobLister(self.queues)

        selected = dict(DEFAULT_PROCESSORS)
        selected.update(processors or {})
        self.workers: Dict[JobType, BackgroundWorker] = {
            job_type: BackgroundWorker(
                queue,
                selected[job_type],
                on_finished=self.dispatcher.record_outcome,
                poll_interval=poll_interval,
            )
            for job_type, queue in self.queues.items()
        }

    def start(self):
        """Recover stalled jobs and start one worker per queue."""
        for queue in self.queues.values():
            for job in queue.recover_stalled():
                self.dispatcher.record_outcome(job)
        for worker in self.workers.values():
            worker.start()

    def stop(self):
        """Stop all workers."""
        for worker in self.workers.values():
            worker.stop()

    def close(self):
        self.stop()
        self.cache.close()

    def notify(self, job_type: JobType):
        """Wake the worker for ``job_type`` after a dispatch."""
        self.workers[job_type].trigger_processing()

    def health(self) -> Dict[str, Any]:
        """Worker liveness and per-queue job counts."""
        return {
            job_type.label: {
                "queue": queue.name,
                "worker_running": self.workers[job_type].is_running,
                "worker_processing": self.workers[job_type].is_processing,
                "counts": queue.counts(),
            }
            for job_type, queue in self.queues.items()
        }

    def clear_finished(self, older_than_seconds: Optional[float] = None) -> Dict[str, int]:
        """
        Delete finished jobs from every queue.

        Returns:
            Number of jobs deleted per type label
        """
        deleted = {
            job_type.label: queue.clear_finished(older_than_seconds)
            for job_type, queue in self.queues.items()
        }
        logger.info(f"Cleared finished jobs: {deleted}")
        return deleted
