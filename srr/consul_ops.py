from __future__ import annotations

from typing import Any

import consul
import requests

from .errors import PersistenceReadFailure, PersistenceWriteFailure, RegistryCallFailure
from .models import RegistrationDescriptor
from .settings import settings


# Transport errors surface from the requests-based python-consul client.
_CONSUL_ERRORS = (consul.ConsulException, requests.RequestException, OSError)


def _client() -> consul.Consul:
    return consul.Consul(
        host=settings.consul_host,
        port=settings.consul_port,
        scheme=settings.consul_scheme,
        token=settings.consul_token,
        dc=settings.consul_dc,
    )


def check_definition(descriptor: RegistrationDescriptor) -> dict[str, str] | None:
    if descriptor.check is None:
        return None
    return {"http": descriptor.check.http, "interval": descriptor.check.interval}


class ConsulRegistry:
    """Registers descriptors as services on the local Consul agent."""

    def __init__(self, client: Any | None = None):
        self._c = client

    @property
    def client(self) -> Any:
        if self._c is None:
            self._c = _client()
        return self._c

    def register(self, descriptor: RegistrationDescriptor) -> None:
        try:
            self.client.agent.service.register(
                descriptor.name,
                service_id=descriptor.entry_id,
                address=descriptor.address,
                port=descriptor.port,
                tags=list(descriptor.tags),
                check=check_definition(descriptor),
            )
        except _CONSUL_ERRORS as e:
            raise RegistryCallFailure(f"consul register failed: {type(e).__name__}: {e}", descriptor.entry_id) from e

    def deregister(self, descriptor: RegistrationDescriptor) -> None:
        try:
            self.client.agent.service.deregister(descriptor.entry_id)
        except _CONSUL_ERRORS as e:
            raise RegistryCallFailure(
                f"consul deregister failed: {type(e).__name__}: {e}", descriptor.entry_id
            ) from e


class ConsulKV:
    """Consul KV as the cache's backing store."""

    def __init__(self, client: Any | None = None):
        self._c = client

    @property
    def client(self) -> Any:
        if self._c is None:
            self._c = _client()
        return self._c

    def get(self, key: str) -> bytes | None:
        try:
            _index, data = self.client.kv.get(key)
        except _CONSUL_ERRORS as e:
            raise PersistenceReadFailure(f"consul kv get {key!r} failed: {type(e).__name__}: {e}") from e
        if data is None:
            return None
        value = data.get("Value")
        if value is None:
            return None
        return value if isinstance(value, bytes) else str(value).encode("utf-8")

    def put(self, key: str, value: bytes) -> None:
        try:
            ok = self.client.kv.put(key, value)
        except _CONSUL_ERRORS as e:
            raise PersistenceWriteFailure(f"consul kv put {key!r} failed: {type(e).__name__}: {e}") from e
        if ok is False:
            raise PersistenceWriteFailure(f"consul kv put {key!r} was rejected")
