from __future__ import annotations

from threading import Lock

from .reconciler import RunReport


class RuntimeState:
    """In-memory status of the reconcile loop, shared with the API."""

    def __init__(self) -> None:
        self.lock = Lock()
        self.last_report: RunReport | None = None
        self.last_error: str | None = None
        self.runs: int = 0
        self.skipped: int = 0  # ticks without a usable roster

    def record_run(self, report: RunReport) -> None:
        with self.lock:
            self.last_report = report
            self.last_error = None
            self.runs += 1

    def record_skip(self, error: str) -> None:
        with self.lock:
            self.last_error = error
            self.skipped += 1

    def snapshot(self) -> tuple[RunReport | None, str | None, int, int]:
        with self.lock:
            return self.last_report, self.last_error, self.runs, self.skipped
