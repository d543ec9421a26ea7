from fastapi.testclient import TestClient

from srr.app import create_app
from srr.errors import RosterUnavailable
from srr.loop import ReconcileLoop
from srr.persistence import CachePersistence
from srr.reconciler import Reconciler


def _client(registry, kv, roster):
    loop = ReconcileLoop(Reconciler(registry, CachePersistence(kv, "test/cache")), roster)
    return TestClient(create_app(loop=loop, autostart=False))


def test_health(registry, kv):
    with _client(registry, kv, lambda: []) as client:
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json() == {"status": "healthy"}


def test_reconcile_then_inspect_cache_and_events(registry, kv, make_descriptor):
    roster = [make_descriptor("m1", tags=["leader", "master"])]
    with _client(registry, kv, lambda: roster) as client:
        assert client.get("/cache").json() == []

        r = client.post("/reconcile")
        assert r.status_code == 200
        assert r.json()["created"] == ["m1"]

        entries = client.get("/cache").json()
        assert entries[0]["entry_id"] == "m1"
        assert entries[0]["tags"] == ["leader", "master"]
        assert entries[0]["liveness"] == "seen"

        status = client.get("/runs/last").json()
        assert status["runs"] == 1
        assert status["last_report"]["created"] == ["m1"]

        events = client.get("/events", params={"entry_id": "m1"}).json()
        assert events and all(e["entry_id"] == "m1" for e in events)


def test_reconcile_without_roster_is_503(registry, kv):
    def roster():
        raise RosterUnavailable("mesos down")

    with _client(registry, kv, roster) as client:
        r = client.post("/reconcile")
        assert r.status_code == 503
        assert "mesos down" in r.json()["detail"]
        assert client.get("/runs/last").json()["skipped"] == 1
