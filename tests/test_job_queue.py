"""
Unit tests for jobdispatch/queue/job_queue.py

Covers enqueue/list, claiming, and retry scheduling under each policy.
"""
import pytest

from jobdispatch.models import ALL_STATES, JobState, JobType
from jobdispatch.queue.job_queue import JobQueue

STATS_POLICY = JobType.STATS_CALCULATION.retry_policy
EXPORT_POLICY = JobType.DATA_EXPORT.retry_policy


def test_enqueue_creates_waiting_job(stats_queue, clock):
    job_id = stats_queue.enqueue({"scope": "monthly", "requestId": "r1"}, STATS_POLICY)

    job = stats_queue.get_job(job_id)
    assert job.status == JobState.WAITING
    assert job.payload == {"scope": "monthly", "requestId": "r1"}
    assert job.created_at == clock.now
    assert job.processed_at is None
    assert job.finished_at is None
    assert job.max_attempts == 3


def test_list_jobs_filters_by_state(stats_queue):
    first = stats_queue.enqueue({"n": 1}, STATS_POLICY)
    second = stats_queue.enqueue({"n": 2}, STATS_POLICY)
    stats_queue.claim_next()

    waiting = stats_queue.list_jobs({JobState.WAITING})
    active = stats_queue.list_jobs({JobState.ACTIVE})

    assert [j.id for j in active] == [first]
    assert [j.id for j in waiting] == [second]
    assert [j.id for j in stats_queue.list_jobs(ALL_STATES)] == [first, second]


def test_list_jobs_oldest_first(stats_queue, clock):
    ids = []
    for n in range(3):
        ids.append(stats_queue.enqueue({"n": n}, STATS_POLICY))
        clock.advance(1)

    assert [j.id for j in stats_queue.list_jobs(ALL_STATES)] == ids


def test_claim_marks_active(stats_queue, clock):
    job_id = stats_queue.enqueue({}, STATS_POLICY)

    job = stats_queue.claim_next()
    assert job.id == job_id
    assert job.status == JobState.ACTIVE
    assert job.processed_at == clock.now
    assert stats_queue.claim_next() is None


def test_complete_records_result(stats_queue):
    job_id = stats_queue.enqueue({}, STATS_POLICY)
    stats_queue.claim_next()

    job = stats_queue.complete(job_id, {"total": 42})
    assert job.status == JobState.COMPLETED
    assert job.result == {"total": 42}
    assert job.finished_at is not None
    assert job.attempts_made == 1
    assert job.derived_status() == JobState.COMPLETED


def test_stats_job_exponential_retry_then_failed(stats_queue, clock):
    job_id = stats_queue.enqueue({}, STATS_POLICY)

    # Attempt 1 fails -> retry after 5s
    stats_queue.claim_next()
    job = stats_queue.fail(job_id, "boom")
    assert job.status == JobState.WAITING
    assert job.next_run_at - clock.now == pytest.approx(5.0)
    assert job.derived_status() == JobState.WAITING
    assert job.failed_reason is None
    assert job.last_error == "boom"

    clock.advance(4.9)
    assert stats_queue.claim_next() is None
    clock.advance(0.2)

    # Attempt 2 fails -> retry after 10s
    assert stats_queue.claim_next().id == job_id
    job = stats_queue.fail(job_id, "boom")
    assert job.status == JobState.WAITING
    assert job.next_run_at - clock.now == pytest.approx(10.0)

    clock.advance(10)

    # Attempt 3 is the last
    assert stats_queue.claim_next().id == job_id
    job = stats_queue.fail(job_id, "boom")
    assert job.status == JobState.FAILED
    assert job.failed_reason == "boom"
    assert job.attempts_made == 3
    assert job.derived_status() == JobState.FAILED

    clock.advance(3600)
    assert stats_queue.claim_next() is None


def test_export_job_fixed_retry_once_then_failed(export_queue, clock):
    job_id = export_queue.enqueue({}, EXPORT_POLICY)

    export_queue.claim_next()
    job = export_queue.fail(job_id, "disk full")
    assert job.status == JobState.WAITING
    assert job.next_run_at - clock.now == pytest.approx(10.0)

    clock.advance(10)
    assert export_queue.claim_next().id == job_id
    job = export_queue.fail(job_id, "disk full")
    assert job.status == JobState.FAILED
    assert job.attempts_made == 2


def test_success_after_retry(export_queue, clock):
    job_id = export_queue.enqueue({}, EXPORT_POLICY)
    export_queue.claim_next()
    export_queue.fail(job_id, "flaky")
    clock.advance(10)
    export_queue.claim_next()

    job = export_queue.complete(job_id, None)
    assert job.status == JobState.COMPLETED
    assert job.failed_reason is None
    assert job.attempts_made == 2


def test_fail_unknown_job_returns_none(stats_queue):
    assert stats_queue.fail("missing", "boom") is None


def test_recover_stalled_counts_interrupted_attempt(stats_queue, clock):
    job_id = stats_queue.enqueue({}, STATS_POLICY)
    stats_queue.claim_next()

    recovered = stats_queue.recover_stalled()

    assert [job.id for job in recovered] == [job_id]
    job = stats_queue.get_job(job_id)
    assert job.status == JobState.WAITING
    assert job.processed_at is None
    assert job.attempts_made == 1
    assert job.last_error == "stalled"
    assert job.next_run_at == clock.now + 5


def test_recover_stalled_honors_max_attempts(stats_queue, clock):
    job_id = stats_queue.enqueue({}, STATS_POLICY)

    executions = 0
    for _ in range(5):
        if stats_queue.claim_next() is not None:
            executions += 1
        stats_queue.recover_stalled()
        clock.advance(60)

    assert executions == STATS_POLICY.max_attempts
    job = stats_queue.get_job(job_id)
    assert job.status == JobState.FAILED
    assert job.failed_reason == "stalled"
    assert stats_queue.claim_next() is None


def test_recover_stalled_leaves_other_states_alone(stats_queue):
    stats_queue.enqueue({}, STATS_POLICY)
    assert stats_queue.recover_stalled() == []
    assert stats_queue.counts()["waiting"] == 1


def test_fail_with_empty_reason_stays_failed(export_queue, clock):
    job_id = export_queue.enqueue({}, EXPORT_POLICY)
    for _ in range(EXPORT_POLICY.max_attempts):
        export_queue.claim_next()
        job = export_queue.fail(job_id, "")
        clock.advance(10)

    assert job.status == JobState.FAILED
    assert job.failed_reason == "failed"
    assert job.derived_status() == JobState.FAILED


def test_counts(stats_queue):
    stats_queue.enqueue({}, STATS_POLICY)
    stats_queue.enqueue({}, STATS_POLICY)
    stats_queue.claim_next()

    assert stats_queue.counts() == {"waiting": 1, "active": 1, "completed": 0, "failed": 0}


def test_clear_finished(stats_queue, clock):
    done = stats_queue.enqueue({}, STATS_POLICY)
    pending = stats_queue.enqueue({}, STATS_POLICY)
    stats_queue.claim_next()
    stats_queue.complete(done)

    clock.advance(100)
    assert stats_queue.clear_finished(older_than_seconds=1000) == 0
    assert stats_queue.clear_finished(older_than_seconds=50) == 1
    assert stats_queue.get_job(done) is None
    assert stats_queue.get_job(pending) is not None


def test_queues_are_independent(stats_queue, export_queue):
    stats_queue.enqueue({}, STATS_POLICY)

    assert export_queue.list_jobs(ALL_STATES) == []
    assert export_queue.claim_next() is None


def test_jobs_survive_reopen(tmp_path, clock):
    path = tmp_path / "q.db"
    job_id = JobQueue(JobType.DATA_EXPORT, path, clock=clock).enqueue({"a": 1}, EXPORT_POLICY)

    reopened = JobQueue(JobType.DATA_EXPORT, path, clock=clock)
    assert reopened.get_job(job_id).payload == {"a": 1}
