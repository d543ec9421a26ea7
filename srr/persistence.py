from __future__ import annotations

from typing import Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from . import db
from .cache import CacheEntry, Liveness, RegistrationCache
from .errors import DeserializationFailure, PersistenceReadFailure, PersistenceWriteFailure, SrrError
from .models import HealthCheck, RegistrationDescriptor
from .settings import settings


class KeyValueStore(Protocol):
    def get(self, key: str) -> bytes | None: ...

    def put(self, key: str, value: bytes) -> None: ...


# Field names follow the JSON written by the mesos-consul bridge, so a cache
# it left in the KV store is read as-is.
class StoredCheck(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    http: str = Field("", alias="HTTP")
    interval: str = Field("", alias="Interval")


class StoredService(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="ID")
    name: str = Field("", alias="Name")
    address: str = Field("", alias="Address")
    port: int = Field(0, alias="Port")
    tags: Optional[list[str]] = Field(None, alias="Tags")
    check: Optional[StoredCheck] = Field(None, alias="Check")
    role: str = Field("", alias="Role")


class StoredEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    service: StoredService = Field(..., alias="Service")
    is_registered: bool = Field(False, alias="IsRegistered")


_document = TypeAdapter(Optional[dict[str, StoredEntry]])


def _to_stored(entry: CacheEntry) -> StoredEntry:
    d = entry.descriptor
    check = StoredCheck(http=d.check.http, interval=d.check.interval) if d.check else None
    return StoredEntry(
        service=StoredService(
            id=d.entry_id,
            name=d.name,
            address=d.address,
            port=d.port,
            tags=list(d.tags),
            check=check,
            role=d.role,
        ),
        is_registered=entry.liveness is Liveness.SEEN,
    )


def _from_stored(entry_id: str, stored: StoredEntry) -> CacheEntry:
    s = stored.service
    if s.id != entry_id:
        # Sweeping such an entry would deregister a service under another id.
        raise DeserializationFailure(f"cache key {entry_id!r} does not match Service.ID {s.id!r}")
    tags = tuple(s.tags or ())
    role = s.role or ("master" if "master" in tags else "follower")
    check = HealthCheck(http=s.check.http, interval=s.check.interval) if s.check and s.check.http else None
    descriptor = RegistrationDescriptor(
        entry_id=entry_id,
        name=s.name,
        address=s.address,
        port=s.port,
        role=role,
        tags=tags,
        check=check,
    )
    liveness = Liveness.SEEN if stored.is_registered else Liveness.PENDING_REMOVAL
    return CacheEntry(descriptor=descriptor, liveness=liveness)


def serialize(cache: RegistrationCache) -> bytes:
    doc = {entry_id: _to_stored(entry) for entry_id, entry in cache.items()}
    return _document.dump_json(doc, by_alias=True)


def deserialize(raw: bytes) -> RegistrationCache:
    try:
        doc = _document.validate_json(raw)
    except ValidationError as e:
        raise DeserializationFailure(f"could not deserialize cache: {e.error_count()} error(s)") from e
    except ValueError as e:
        raise DeserializationFailure(f"could not deserialize cache: {e}") from e
    if not doc:
        return RegistrationCache()
    return RegistrationCache({entry_id: _from_stored(entry_id, stored) for entry_id, stored in doc.items()})


class CachePersistence:
    """Reads and writes the whole cache under one key of a KV store."""

    def __init__(self, store: KeyValueStore, key: str | None = None):
        self.store = store
        self.key = key or settings.cache_key
        self._journal_errors: list[str] = []

    def load(self) -> RegistrationCache:
        """Read the cache; raises on read or decode failure.

        A missing key is an empty cache, not an error.
        """
        try:
            raw = self.store.get(self.key)
        except SrrError:
            raise
        except Exception as e:
            raise PersistenceReadFailure(f"could not get cache from KV store: {type(e).__name__}: {e}") from e
        if raw is None:
            return RegistrationCache()
        return deserialize(raw)

    def hydrate(self) -> RegistrationCache:
        try:
            cache = self.load()
        except SrrError as e:
            self._journal("ERROR", f"Hydrate failed ({e.kind}): {e}; using empty cache")
            return RegistrationCache()
        self._journal("INFO", f"Hydrated cache with {len(cache)} entries from '{self.key}'")
        return cache

    def save(self, cache: RegistrationCache) -> None:
        payload = serialize(cache)
        try:
            self.store.put(self.key, payload)
        except SrrError:
            raise
        except Exception as e:
            raise PersistenceWriteFailure(f"could not save cache: {type(e).__name__}: {e}") from e

    def flush(self, cache: RegistrationCache) -> bool:
        try:
            self.save(cache)
        except SrrError as e:
            self._journal("ERROR", f"Flush failed ({e.kind}): {e}")
            return False
        return True

    def _journal(self, level: str, message: str) -> None:
        error = db.try_log_event(level, message)
        if error is not None:
            self._journal_errors.append(error)

    def drain_journal_errors(self) -> list[str]:
        """Journal writes that failed since the last call."""
        errors, self._journal_errors = self._journal_errors, []
        return errors
