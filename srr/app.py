from __future__ import annotations

from dataclasses import asdict

from fastapi import FastAPI, HTTPException, Query

from . import db
from .api_models import EntryView, LoopStatusView, RunReportView
from .consul_ops import ConsulKV, ConsulRegistry
from .db import SqliteKV
from .loop import ReconcileLoop
from .persistence import CachePersistence, KeyValueStore
from .reconciler import Reconciler, RunReport
from .roster import fetch_roster
from .settings import settings


def build_loop() -> ReconcileLoop:
    """Wire Consul, the KV backend and the Mesos roster from settings."""
    store: KeyValueStore = SqliteKV() if settings.kv_backend == "sqlite" else ConsulKV()
    reconciler = Reconciler(ConsulRegistry(), CachePersistence(store, settings.cache_key))
    return ReconcileLoop(reconciler, fetch_roster)


def _report_view(report: RunReport) -> RunReportView:
    return RunReportView(**asdict(report))


def create_app(loop: ReconcileLoop | None = None, autostart: bool | None = None) -> FastAPI:
    app = FastAPI(title="Service Registry Reconciler")
    rloop = loop or build_loop()
    start = settings.autostart if autostart is None else autostart

    @app.on_event("startup")
    def startup() -> None:
        db.init_db()
        if start:
            rloop.start()

    @app.on_event("shutdown")
    def shutdown() -> None:
        rloop.stop()

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "healthy"}

    @app.get("/cache", response_model=list[EntryView])
    def cache() -> list[EntryView]:
        current = rloop.reconciler.cache
        if current is None:
            return []
        out: list[EntryView] = []
        for entry_id, entry in current.items():
            d = entry.descriptor
            out.append(
                EntryView(
                    entry_id=entry_id,
                    name=d.name,
                    address=d.address,
                    port=d.port,
                    role=d.role,
                    tags=list(d.tags),
                    check_url=d.check.http if d.check else None,
                    liveness=entry.liveness.value,
                )
            )
        return out

    @app.get("/events")
    def events(limit: int = Query(100, ge=1, le=1000), entry_id: str | None = None) -> list[dict]:
        return db.latest_events(limit=limit, entry_id=entry_id)

    @app.get("/runs/last", response_model=LoopStatusView)
    def last_run() -> LoopStatusView:
        report, error, runs, skipped = rloop.runtime.snapshot()
        return LoopStatusView(
            runs=runs,
            skipped=skipped,
            last_error=error,
            last_report=_report_view(report) if report else None,
        )

    @app.post("/reconcile", response_model=RunReportView)
    def reconcile() -> RunReportView:
        report = rloop.tick()
        if report is None:
            _, error, _, _ = rloop.runtime.snapshot()
            raise HTTPException(status_code=503, detail=f"Roster unavailable: {error}")
        return _report_view(report)

    return app
