"""
Job Queue Module - Durable work queues and their workers.

This module handles:
- Job enqueueing with per-type retry policies
- Job listing by lifecycle state
- Job execution and retry scheduling via background workers
"""

from jobdispatch.queue.job_queue import WorkQueue, JobQueue
from jobdispatch.queue.worker import BackgroundWorker

__all__ = ['WorkQueue', 'JobQueue', 'BackgroundWorker']
