from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Protocol

from . import db
from .cache import RegistrationCache, UpsertResult
from .db import utc_now
from .errors import RegistryCallFailure, SrrError
from .models import RegistrationDescriptor
from .persistence import CachePersistence


class RegistryClient(Protocol):
    def register(self, descriptor: RegistrationDescriptor) -> None: ...

    def deregister(self, descriptor: RegistrationDescriptor) -> None: ...


@dataclass(frozen=True)
class Failure:
    kind: str
    entry_id: str | None
    detail: str


@dataclass
class RunReport:
    started_at: str = field(default_factory=utc_now)
    created: list[str] = field(default_factory=list)
    replaced: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    deregistered: list[str] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)
    flushed: bool = False

    @property
    def registry_calls(self) -> int:
        return len(self.created) + len(self.replaced) + len(self.deregistered)


class Reconciler:
    """Makes registry entries match a roster, one pass per run().

    Owns the registration cache. The first run hydrates it from the
    persistence layer unless a cache was handed in. Runs must not overlap.
    """

    def __init__(
        self,
        registry: RegistryClient,
        persistence: CachePersistence,
        cache: RegistrationCache | None = None,
    ):
        self.registry = registry
        self.persistence = persistence
        self.cache = cache
        self._pending_failures: list[Failure] = []

    def _ensure_cache(self) -> RegistrationCache:
        if self.cache is None:
            self.cache = self.persistence.hydrate()
        return self.cache

    def run(self, desired: Iterable[RegistrationDescriptor]) -> RunReport:
        """Register, re-register and sweep; never raises."""
        report = RunReport()
        cache = self._ensure_cache()

        for descriptor in desired:
            try:
                self._upsert(cache, descriptor, report)
            except SrrError as e:
                self._absorb(report, e)

        for entry_id, descriptor in cache.sweep_and_collect_stale().items():
            try:
                self._deregister(descriptor, report)
            except SrrError as e:
                self._absorb(report, e)
            report.deregistered.append(entry_id)

        report.flushed = self.persistence.flush(cache)
        self._journal(
            report,
            "INFO",
            f"Reconciled: {len(report.created)} created, {len(report.replaced)} replaced, "
            f"{len(report.unchanged)} unchanged, {len(report.deregistered)} deregistered, "
            f"{len(report.failures)} failures",
        )
        self._collect_journal_failures(report)
        return report

    def ensure(self, descriptor: RegistrationDescriptor) -> bool:
        """Register an entry once, without comparing tags.

        A cached id is only marked seen. Returns True if a registration was
        attempted. Failures are logged; the entry stays cached.
        """
        cache = self._ensure_cache()
        if cache.mark_seen(descriptor.entry_id):
            self._journal(None, "INFO", "Service found. Not registering", descriptor.entry_id)
            return False
        cache.insert(descriptor)
        try:
            self._register(descriptor, None)
        except SrrError as e:
            self._journal(None, "ERROR", str(e), e.entry_id)
        return True

    def _upsert(self, cache: RegistrationCache, descriptor: RegistrationDescriptor, report: RunReport) -> None:
        previous = cache.lookup(descriptor.entry_id)
        result = cache.upsert(descriptor)
        if result is UpsertResult.UNCHANGED:
            report.unchanged.append(descriptor.entry_id)
            return
        if result is UpsertResult.REPLACED:
            old_tags = list(previous.descriptor.tags) if previous else []
            self._journal(
                report,
                "INFO",
                f"Tags changed {old_tags} -> {list(descriptor.tags)}. Re-registering",
                descriptor.entry_id,
            )
            report.replaced.append(descriptor.entry_id)
        else:
            report.created.append(descriptor.entry_id)
        self._register(descriptor, report)

    def _register(self, descriptor: RegistrationDescriptor, report: RunReport | None) -> None:
        self._journal(report, "INFO", f"Registering {descriptor.address}:{descriptor.port}", descriptor.entry_id)
        try:
            self.registry.register(descriptor)
        except SrrError:
            raise
        except Exception as e:
            raise RegistryCallFailure(f"register failed: {type(e).__name__}: {e}", descriptor.entry_id) from e

    def _deregister(self, descriptor: RegistrationDescriptor, report: RunReport) -> None:
        self._journal(report, "INFO", "Deregistering", descriptor.entry_id)
        try:
            self.registry.deregister(descriptor)
        except SrrError:
            raise
        except Exception as e:
            raise RegistryCallFailure(
                f"could not deregister service: {type(e).__name__}: {e}", descriptor.entry_id
            ) from e

    def _absorb(self, report: RunReport, e: SrrError) -> None:
        report.failures.append(Failure(kind=e.kind, entry_id=e.entry_id, detail=str(e)))
        self._journal(report, "ERROR", f"{e.kind}: {e}", e.entry_id)

    def _journal(self, report: RunReport | None, level: str, message: str, entry_id: str | None = None) -> None:
        error = db.try_log_event(level, message, entry_id=entry_id)
        if error is None:
            return
        failure = Failure(kind="journal", entry_id=entry_id, detail=error)
        if report is None:
            # Outside a run; surfaced by the next run's report.
            self._pending_failures.append(failure)
        else:
            report.failures.append(failure)

    def _collect_journal_failures(self, report: RunReport) -> None:
        report.failures.extend(self._pending_failures)
        self._pending_failures.clear()
        for error in self.persistence.drain_journal_errors():
            report.failures.append(Failure(kind="journal", entry_id=None, detail=error))
