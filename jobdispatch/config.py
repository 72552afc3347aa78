"""
Configuration for the background job service.

Retry policies, the status TTL and the queue/namespace names are compiled in.
Only deployment-specific values (file locations, logging, worker polling,
server binding) are read from the environment.
"""

import os
from pathlib import Path

from jobdispatch.retry import RetryPolicy, FixedBackoff, ExponentialBackoff

# Status snapshots live for one hour
STATUS_TTL_SECONDS = 3600

STATS_RETRY_POLICY = RetryPolicy(max_attempts=3, backoff=ExponentialBackoff(base_delay_ms=5000))
EXPORT_RETRY_POLICY = RetryPolicy(max_attempts=2, backoff=FixedBackoff(delay_ms=10000))

STATS_QUEUE_NAME = "statistics-processing"
EXPORT_QUEUE_NAME = "data-export"

STATS_NAMESPACE = "stats_request"
EXPORT_NAMESPACE = "export_request"

# Data directory (queue databases and the status cache)
DATA_DIR = Path(os.environ.get("JOBDISPATCH_DATA_DIR", "data"))

LOG_DIR = Path(os.environ.get("JOBDISPATCH_LOG_DIR", "logs"))
LOG_LEVEL = os.environ.get("JOBDISPATCH_LOG_LEVEL", "INFO").upper()

# Seconds a worker sleeps when its queue has nothing due
WORKER_POLL_INTERVAL = float(os.environ.get("JOBDISPATCH_POLL_INTERVAL", "1.0"))

HOST = os.environ.get("JOBDISPATCH_HOST", "0.0.0.0")
PORT = int(os.environ.get("JOBDISPATCH_PORT", "8000"))


def queue_db_path(queue_name: str, data_dir: Path = None) -> Path:
    """Path of the SQLite file backing one work queue."""
    return Path(data_dir or DATA_DIR) / "queues" / f"{queue_name}.db"


def cache_db_path(data_dir: Path = None) -> Path:
    """Path of the SQLite file backing the status cache."""
    return Path(data_dir or DATA_DIR) / "cache.db"
