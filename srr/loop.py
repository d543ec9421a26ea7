from __future__ import annotations

import time
from threading import Lock, Thread
from typing import Callable, Sequence

from . import db
from .errors import SrrError
from .models import RegistrationDescriptor
from .reconciler import Reconciler, RunReport
from .runtime import RuntimeState
from .settings import settings


RosterSupplier = Callable[[], Sequence[RegistrationDescriptor]]


class ReconcileLoop:
    """Runs the reconciler on a fixed interval, one pass at a time."""

    def __init__(self, reconciler: Reconciler, roster: RosterSupplier, runtime: RuntimeState | None = None):
        self.reconciler = reconciler
        self.roster = roster
        self.runtime = runtime or RuntimeState()
        self._run_lock = Lock()
        self._stop = False
        self._thr: Thread | None = None

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop = False
        self._thr = Thread(target=self._loop, daemon=True)
        self._thr.start()

    def stop(self) -> None:
        self._stop = True

    def _loop(self) -> None:
        db.log_event("INFO", "Reconcile loop started")
        while not self._stop:
            try:
                self.tick()
            except Exception as e:
                db.log_event("ERROR", f"Reconcile tick failed: {type(e).__name__}: {e}")
            time.sleep(max(1, settings.poll_interval_s))

    def tick(self) -> RunReport | None:
        """Fetch the roster and run one pass.

        Without a roster the pass is skipped; sweeping against an empty
        roster would start deregistering the whole cluster.
        """
        with self._run_lock:
            try:
                desired = list(self.roster())
            except SrrError as e:
                db.log_event("WARN", f"Skipping reconcile, roster unavailable: {e}")
                self.runtime.record_skip(str(e))
                return None
            report = self.reconciler.run(desired)
            self.runtime.record_run(report)
            return report
