from __future__ import annotations


class SrrError(Exception):
    """Base class for failures absorbed at the reconciliation boundary."""

    kind = "error"

    def __init__(self, message: str, entry_id: str | None = None):
        super().__init__(message)
        self.entry_id = entry_id


class RegistryCallFailure(SrrError):
    kind = "registry_call"


class PersistenceReadFailure(SrrError):
    kind = "persistence_read"


class PersistenceWriteFailure(SrrError):
    kind = "persistence_write"


class DeserializationFailure(SrrError):
    kind = "deserialization"


class RosterUnavailable(SrrError):
    kind = "roster"
