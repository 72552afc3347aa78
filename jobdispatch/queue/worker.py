"""
Background Worker - Processes jobs from one work queue.

This module is responsible for:
- Running a background worker thread per queue
- Claiming due jobs and running the queue's processor
- Reporting success or failure back to the queue (which applies retries)
- Notifying a listener when a job reaches a terminal state
"""

import threading
import logging
from typing import Any, Callable, Dict, Optional

from jobdispatch import config
from jobdispatch.models import Job, TERMINAL_STATES
from jobdispatch.queue.job_queue import JobQueue

logger = logging.getLogger(__name__)

Processor = Callable[[Dict[str, Any]], Any]


class BackgroundWorker:
    """
    Background worker for one job queue.

    This worker:
    - Runs in a separate thread
    - Polls the queue for due jobs
    - Executes the processor with the job payload
    - Hands terminal jobs to ``on_finished``
    """

    def __init__(
        self,
        queue: JobQueue,
        processor: Processor,
        on_finished: Optional[Callable[[Job], Any]] = None,
        poll_interval: float = config.WORKER_POLL_INTERVAL,
    ):
        """
        Initialize the background worker.

        Args:
            queue: Queue to drain
            processor: Called with the job payload; its return value is the job result
            on_finished: Called with the job after it completes or finally fails
            poll_interval: Seconds to wait when nothing is due
        """
        self.queue = queue
        self.processor = processor
        self.on_finished = on_finished
        self.poll_interval = poll_interval
        self.is_running = False
        self.is_processing = False
        self.worker_thread = None
        self.lock = threading.Lock()
        self._wake = threading.Event()
        self.logger = logging.getLogger(f"{__name__}.{queue.name}")

    def start(self):
        """Start the background worker thread."""
        with self.lock:
            if self.is_running:
                self.logger.warning("Background worker is already running")
                return

            self.is_running = True
            self.worker_thread = threading.Thread(
                target=self._worker_loop, name=f"worker-{self.queue.name}", daemon=True
            )
            self.worker_thread.start()
            self.logger.info("Background worker started")

    def stop(self, timeout: Optional[float] = None):
        """Stop the background worker thread and wait for it to exit."""
        with self.lock:
            if not self.is_running:
                return

            self.is_running = False
            self._wake.set()
            thread = self.worker_thread

        if thread is not None:
            thread.join(timeout)
        self.logger.info("Background worker stopped")

    def trigger_processing(self):
        """Wake the worker if it is idle."""
        if not self.is_processing:
            self._wake.set()

    def _worker_loop(self):
        """Main worker loop that processes jobs."""
        self.logger.info("Worker loop started")

        while self.is_running:
            try:
                if self.run_once() is None:
                    # Nothing due, wait for a trigger or the next poll
                    self._wake.wait(self.poll_interval)
                    self._wake.clear()

            except Exception as e:
                self.logger.error(f"Error in worker loop: {e}", exc_info=True)
                self.is_processing = False
                self._wake.wait(self.poll_interval * 5)
                self._wake.clear()

        self.logger.info("Worker loop ended")

    def run_once(self) -> Optional[Job]:
        """
        Claim and process one due job.

        Returns:
            The job after processing, or None if nothing was due
        """
        job = self.queue.claim_next()
        if job is None:
            return None

        self.is_processing = True
        try:
            return self._process_job(job)
        finally:
            self.is_processing = False

    def _process_job(self, job: Job) -> Optional[Job]:
        """
        Run one attempt of a job.

        Args:
            job: Job claimed from the queue
        """
        self.logger.info(f"[{job.id}] Processing attempt {job.attempts_made + 1}/{job.max_attempts}")

        try:
            result = self.processor(dict(job.payload))
        except Exception as e:
            self.logger.error(f"[{job.id}] Attempt failed: {e}", exc_info=True)
            updated = self.queue.fail(job.id, str(e) or e.__class__.__name__)
        else:
            try:
                updated = self.queue.complete(job.id, result)
            except (TypeError, ValueError) as e:
                # Result could not be stored; the attempt counts as failed
                self.logger.error(f"[{job.id}] Could not store result: {e}", exc_info=True)
                updated = self.queue.fail(job.id, f"Result is not JSON serializable: {e}")
            else:
                self.logger.info(f"[{job.id}] Job completed successfully")

        if updated is not None and updated.status in TERMINAL_STATES and self.on_finished:
            try:
                self.on_finished(updated)
            except Exception as e:
                self.logger.error(f"[{job.id}] Terminal status hook failed: {e}", exc_info=True)

        return updated
