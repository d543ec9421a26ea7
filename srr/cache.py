from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from .models import RegistrationDescriptor


class Liveness(str, Enum):
    SEEN = "seen"
    PENDING_REMOVAL = "pending_removal"


class UpsertResult(str, Enum):
    CREATED = "created"
    UNCHANGED = "unchanged"
    REPLACED = "replaced"


@dataclass
class CacheEntry:
    descriptor: RegistrationDescriptor
    liveness: Liveness = Liveness.SEEN


class RegistrationCache:
    """Entry id -> last registered descriptor plus a mark-and-sweep flag.

    A sweep closes a pass. Entries confirmed during the pass stay SEEN,
    entries missed for the first time drop to PENDING_REMOVAL, and entries
    already PENDING_REMOVAL are removed and reported stale. An id therefore
    has to be missing from two consecutive passes before it is reported.
    """

    def __init__(self, entries: dict[str, CacheEntry] | None = None) -> None:
        self._entries: dict[str, CacheEntry] = dict(entries or {})
        self._confirmed: set[str] = set()  # ids seen since the last sweep

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def items(self) -> list[tuple[str, CacheEntry]]:
        return list(self._entries.items())

    def lookup(self, entry_id: str) -> CacheEntry | None:
        return self._entries.get(entry_id)

    def upsert(self, descriptor: RegistrationDescriptor) -> UpsertResult:
        entry_id = descriptor.entry_id
        self._confirmed.add(entry_id)
        current = self._entries.get(entry_id)
        if current is not None:
            if current.descriptor.equivalent(descriptor):
                current.liveness = Liveness.SEEN
                return UpsertResult.UNCHANGED
            del self._entries[entry_id]
            self._entries[entry_id] = CacheEntry(descriptor)
            return UpsertResult.REPLACED
        self._entries[entry_id] = CacheEntry(descriptor)
        return UpsertResult.CREATED

    def insert(self, descriptor: RegistrationDescriptor) -> None:
        self._confirmed.add(descriptor.entry_id)
        self._entries[descriptor.entry_id] = CacheEntry(descriptor)

    def mark_seen(self, entry_id: str) -> bool:
        entry = self._entries.get(entry_id)
        if entry is None:
            return False
        entry.liveness = Liveness.SEEN
        self._confirmed.add(entry_id)
        return True

    def sweep_and_collect_stale(self) -> dict[str, RegistrationDescriptor]:
        """Close the current pass.

        Returns stale id -> descriptor stored when staleness was detected;
        those entries are no longer in the cache.
        """
        stale: dict[str, RegistrationDescriptor] = {}
        for entry_id, entry in list(self._entries.items()):
            if entry_id in self._confirmed:
                continue
            if entry.liveness is Liveness.PENDING_REMOVAL:
                stale[entry_id] = entry.descriptor
                del self._entries[entry_id]
            else:
                entry.liveness = Liveness.PENDING_REMOVAL
        self._confirmed.clear()
        return stale
