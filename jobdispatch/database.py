"""
SQLite persistence for a single durable work queue.

Each queue gets its own database file so the two queues share no state.
"""

import json
import sqlite3
import time
import uuid
import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from jobdispatch.retry import RetryPolicy

logger = logging.getLogger(__name__)


class QueueDatabase:
    """Database manager for one queue's jobs."""

    def __init__(self, db_path: Path, clock: Callable[[], float] = time.time):
        """
        Initialize database connection.

        Args:
            db_path: Path of the SQLite file for this queue
            clock: Returns the current time in epoch seconds
        """
        self.db_path = str(db_path)
        self.clock = clock
        self._ensure_db_exists()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=10.0)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_db_exists(self):
        """Create database and tables if they don't exist."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute("PRAGMA journal_mode=WAL")

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS jobs (
                id TEXT PRIMARY KEY,
                job_type TEXT NOT NULL,
                payload_json TEXT NOT NULL,
                status TEXT NOT NULL,
                attempts_made INTEGER NOT NULL DEFAULT 0,
                max_attempts INTEGER NOT NULL,
                backoff_type TEXT NOT NULL,
                backoff_delay_ms INTEGER NOT NULL,
                created_at REAL NOT NULL,
                processed_at REAL,
                finished_at REAL,
                failed_reason TEXT,
                last_error TEXT,
                next_run_at REAL,
                result_json TEXT
            )
        """)

        # Claim order: due waiting jobs, oldest first
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_status_next_run ON jobs(status, next_run_at)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_created_at ON jobs(created_at)
        """)

        conn.commit()
        conn.close()

        logger.info(f"Queue database initialized at {self.db_path}")

    def create_job(self, job_type: str, payload: Dict, policy: RetryPolicy) -> str:
        """
        Create a new waiting job.

        Args:
            job_type: Job type selector stored with the job
            payload: JSON-serializable job data
            policy: Retry policy honored when the job fails

        Returns:
            Job ID (UUID)
        """
        job_id = str(uuid.uuid4())
        now = self.clock()
        payload_json = json.dumps(payload)

        conn = self._connect()
        try:
            with conn:
                conn.execute("""
                    INSERT INTO jobs (
                        id, job_type, payload_json, status, attempts_made, max_attempts,
                        backoff_type, backoff_delay_ms, created_at, next_run_at
                    ) VALUES (?, ?, ?, 'waiting', 0, ?, ?, ?, ?, ?)
                """, (
                    job_id, job_type, payload_json, policy.max_attempts,
                    policy.backoff_type, policy.backoff_delay_ms, now, now,
                ))
        finally:
            conn.close()

        logger.info(f"Created job {job_id} ({job_type})")
        return job_id

    def get_job(self, job_id: str) -> Optional[Dict]:
        """
        Get job row by ID.

        Returns:
            Job row as a dictionary or None if not found
        """
        conn = self._connect()
        try:
            row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        finally:
            conn.close()

        return dict(row) if row else None

    def get_jobs_by_status(self, statuses: Iterable[str]) -> List[Dict]:
        """
        Get all jobs in the given states, oldest first.

        Args:
            statuses: Status values to include

        Returns:
            List of job rows
        """
        statuses = list(statuses)
        if not statuses:
            return []

        placeholders = ", ".join("?" for _ in statuses)
        conn = self._connect()
        try:
            rows = conn.execute(f"""
                SELECT * FROM jobs
                WHERE status IN ({placeholders})
                ORDER BY created_at ASC, rowid ASC
            """, statuses).fetchall()
        finally:
            conn.close()

        return [dict(row) for row in rows]

    def claim_next_due_job(self) -> Optional[Dict]:
        """
        Move the oldest due waiting job to active.

        Returns:
            The claimed job row, or None if nothing is due
        """
        now = self.clock()
        conn = self._connect()
        try:
            with conn:
                row = conn.execute("""
                    SELECT id FROM jobs
                    WHERE status = 'waiting' AND (next_run_at IS NULL OR next_run_at <= ?)
                    ORDER BY next_run_at ASC, created_at ASC, rowid ASC
                    LIMIT 1
                """, (now,)).fetchone()
                if not row:
                    return None

                updated = conn.execute("""
                    UPDATE jobs SET status = 'active', processed_at = ?
                    WHERE id = ? AND status = 'waiting'
                """, (now, row["id"]))
                # Another worker got there first
                if updated.rowcount != 1:
                    return None

                claimed = conn.execute("SELECT * FROM jobs WHERE id = ?", (row["id"],)).fetchone()
        finally:
            conn.close()

        return dict(claimed)

    def mark_completed(self, job_id: str, result_json: Optional[str] = None):
        """
        Mark an active job as completed.

        Args:
            job_id: Job ID
            result_json: Serialized processor result (optional)
        """
        conn = self._connect()
        try:
            with conn:
                conn.execute("""
                    UPDATE jobs
                    SET status = 'completed', attempts_made = attempts_made + 1,
                        finished_at = ?, result_json = ?, next_run_at = NULL
                    WHERE id = ?
                """, (self.clock(), result_json, job_id))
        finally:
            conn.close()

        logger.info(f"Updated job {job_id} to status completed")

    def mark_retry(self, job_id: str, attempts_made: int, error: str, next_run_at: float):
        """
        Send a failed attempt back to waiting until ``next_run_at``.

        Args:
            job_id: Job ID
            attempts_made: Attempts used so far, including the one that just failed
            error: Error from the failed attempt
            next_run_at: Epoch seconds before which the job is not claimed
        """
        conn = self._connect()
        try:
            with conn:
                conn.execute("""
                    UPDATE jobs
                    SET status = 'waiting', attempts_made = ?, last_error = ?,
                        next_run_at = ?, processed_at = NULL
                    WHERE id = ?
                """, (attempts_made, error[:500], next_run_at, job_id))
        finally:
            conn.close()

    def mark_failed(self, job_id: str, attempts_made: int, reason: str):
        """
        Mark a job as terminally failed.

        Args:
            job_id: Job ID
            attempts_made: Attempts used, including the final one
            reason: Failure reason
        """
        conn = self._connect()
        try:
            with conn:
                conn.execute("""
                    UPDATE jobs
                    SET status = 'failed', attempts_made = ?, failed_reason = ?,
                        last_error = ?, finished_at = ?, next_run_at = NULL
                    WHERE id = ?
                """, (attempts_made, reason[:500], reason[:500], self.clock(), job_id))
        finally:
            conn.close()

        logger.info(f"Updated job {job_id} to status failed")

    def count_by_status(self) -> Dict[str, int]:
        """Number of jobs in each state."""
        conn = self._connect()
        try:
            rows = conn.execute("""
                SELECT status, COUNT(*) AS n FROM jobs GROUP BY status
            """).fetchall()
        finally:
            conn.close()

        counts = {"waiting": 0, "active": 0, "completed": 0, "failed": 0}
        for row in rows:
            counts[row["status"]] = row["n"]
        return counts

    def delete_finished_jobs(self, finished_before: Optional[float] = None) -> int:
        """
        Delete completed and failed jobs.

        Args:
            finished_before: Only delete jobs finished before this epoch time

        Returns:
            Number of jobs deleted
        """
        query = "DELETE FROM jobs WHERE status IN ('completed', 'failed')"
        params = []
        if finished_before is not None:
            query += " AND finished_at < ?"
            params.append(finished_before)

        conn = self._connect()
        try:
            with conn:
                count = conn.execute(query, params).rowcount
        finally:
            conn.close()

        logger.info(f"Deleted {count} finished jobs from {self.db_path}")
        return count
