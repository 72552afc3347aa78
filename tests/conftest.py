"""Test configuration and fixtures."""

from pathlib import Path
from typing import Any, Dict, Iterable, List

import pytest
from fastapi.testclient import TestClient

from jobdispatch.api.routes import create_app
from jobdispatch.cache import StatusCache
from jobdispatch.models import Job, JobState, JobType
from jobdispatch.queue.job_queue import JobQueue, WorkQueue
from jobdispatch.retry import RetryPolicy
from jobdispatch.system import JobSystem


class FakeClock:
    """Manually advanced time source (epoch seconds)."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class BrokenQueue(WorkQueue):
    """Queue whose every operation fails."""

    def __init__(self, job_type: JobType, message: str = "queue unavailable"):
        self.job_type = job_type
        self.message = message

    def enqueue(self, payload: Dict[str, Any], policy: RetryPolicy) -> str:
        raise RuntimeError(self.message)

    def list_jobs(self, states: Iterable[JobState]) -> List[Job]:
        raise RuntimeError(self.message)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def stats_queue(tmp_path: Path, clock: FakeClock) -> JobQueue:
    return JobQueue(JobType.STATS_CALCULATION, tmp_path / "stats.db", clock=clock)


@pytest.fixture
def export_queue(tmp_path: Path, clock: FakeClock) -> JobQueue:
    return JobQueue(JobType.DATA_EXPORT, tmp_path / "export.db", clock=clock)


@pytest.fixture
def cache(tmp_path: Path, clock: FakeClock):
    store = StatusCache(tmp_path / "cache.db", clock=clock)
    yield store
    store.close()


@pytest.fixture
def system(tmp_path: Path, clock: FakeClock):
    job_system = JobSystem(data_dir=tmp_path / "data", clock=clock, poll_interval=0.05)
    yield job_system
    job_system.close()


@pytest.fixture
def client(system: JobSystem):
    """Test client over a system whose workers are not started."""
    return TestClient(create_app(system))
