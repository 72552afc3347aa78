"""
Unit tests for jobdispatch/resolver.py
"""
from jobdispatch.resolver import StatusResolver


def _snapshot(job_id, status="processing"):
    return {"status": status, "jobId": job_id, "createdAt": "2024-01-01T00:00:00+00:00"}


def test_resolves_stats_namespace(cache):
    cache.set("stats_request:r1", _snapshot("j1"), 3600)

    snapshot = StatusResolver(cache).resolve("r1")
    assert snapshot.job_id == "j1"
    assert snapshot.to_dict() == _snapshot("j1")


def test_resolves_export_namespace(cache):
    cache.set("export_request:r2", _snapshot("j2"), 3600)

    assert StatusResolver(cache).resolve("r2").job_id == "j2"


def test_stats_namespace_probed_first(cache):
    cache.set("stats_request:r3", _snapshot("from-stats"), 3600)
    cache.set("export_request:r3", _snapshot("from-export"), 3600)

    assert StatusResolver(cache).resolve("r3").job_id == "from-stats"


def test_unknown_request_is_not_found(cache):
    assert StatusResolver(cache).resolve("never-dispatched") is None


def test_expired_snapshot_is_not_found(cache, clock):
    cache.set("stats_request:r4", _snapshot("j4"), 1)
    clock.advance(2)

    assert StatusResolver(cache).resolve("r4") is None
