from __future__ import annotations

from pydantic import BaseModel, Field


class EntryView(BaseModel):
    entry_id: str
    name: str
    address: str
    port: int
    role: str
    tags: list[str]
    check_url: str | None = None
    liveness: str = Field(..., description="seen|pending_removal")


class FailureView(BaseModel):
    kind: str
    entry_id: str | None = None
    detail: str


class RunReportView(BaseModel):
    started_at: str
    created: list[str] = []
    replaced: list[str] = []
    unchanged: list[str] = []
    deregistered: list[str] = []
    failures: list[FailureView] = []
    flushed: bool = False


class LoopStatusView(BaseModel):
    runs: int
    skipped: int
    last_error: str | None = None
    last_report: RunReportView | None = None
