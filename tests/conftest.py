import os as _os
import sys

import pytest

# Ensure project root is importable (so `import srr...` works without installing)
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from srr import db  # noqa: E402
from srr.errors import PersistenceReadFailure, PersistenceWriteFailure  # noqa: E402
from srr.models import HealthCheck, RegistrationDescriptor  # noqa: E402
from srr.settings import Settings  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_db(tmp_path, monkeypatch):
    """Point the event journal (and SqliteKV) at a per-test sqlite file."""
    monkeypatch.setattr(db, "settings", Settings(db_path=str(tmp_path / "srr.db")))
    db.init_db()
    return tmp_path / "srr.db"


class FakeRegistry:
    def __init__(self):
        self.calls: list[tuple[str, str]] = []
        self.fail_register: set[str] = set()
        self.fail_deregister: set[str] = set()

    def register(self, descriptor):
        self.calls.append(("register", descriptor.entry_id))
        if descriptor.entry_id in self.fail_register:
            raise ConnectionError("registry unreachable")

    def deregister(self, descriptor):
        self.calls.append(("deregister", descriptor.entry_id))
        if descriptor.entry_id in self.fail_deregister:
            raise ConnectionError("registry unreachable")

    def reset(self):
        self.calls.clear()


class MemoryKV:
    def __init__(self):
        self.data: dict[str, bytes] = {}
        self.fail_get = False
        self.fail_put = False
        self.gets = 0
        self.puts = 0

    def get(self, key):
        self.gets += 1
        if self.fail_get:
            raise PersistenceReadFailure("kv down")
        return self.data.get(key)

    def put(self, key, value):
        self.puts += 1
        if self.fail_put:
            raise PersistenceWriteFailure("kv down")
        self.data[key] = value


@pytest.fixture
def registry():
    return FakeRegistry()


@pytest.fixture
def kv():
    return MemoryKV()


@pytest.fixture
def make_descriptor():
    def _make(entry_id, tags=("master",), address="10.0.0.1", port=5050, role="master"):
        return RegistrationDescriptor(
            entry_id=entry_id,
            name="mesos",
            address=address,
            port=port,
            role=role,
            tags=tuple(tags),
            check=HealthCheck(http=f"http://{address}:{port}/master/health", interval="10s"),
        )

    return _make
