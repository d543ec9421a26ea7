import consul
import pytest

from srr.consul_ops import ConsulKV, ConsulRegistry
from srr.errors import PersistenceReadFailure, PersistenceWriteFailure, RegistryCallFailure


class _Service:
    def __init__(self):
        self.registered = []
        self.deregistered = []
        self.fail = False

    def register(self, name, **kwargs):
        if self.fail:
            raise consul.ConsulException("500 agent error")
        self.registered.append((name, kwargs))

    def deregister(self, service_id):
        if self.fail:
            raise consul.ConsulException("500 agent error")
        self.deregistered.append(service_id)


class _Agent:
    def __init__(self):
        self.service = _Service()


class _KV:
    def __init__(self):
        self.data = {}
        self.fail = False

    def get(self, key):
        if self.fail:
            raise consul.ConsulException("kv down")
        if key not in self.data:
            return 7, None
        return 7, {"Key": key, "Value": self.data[key]}

    def put(self, key, value):
        if self.fail:
            raise consul.ConsulException("kv down")
        self.data[key] = value
        return True


class _Client:
    def __init__(self):
        self.agent = _Agent()
        self.kv = _KV()


def test_register_passes_descriptor_fields(make_descriptor):
    client = _Client()
    ConsulRegistry(client).register(make_descriptor("mesos:m1:5050", tags=["leader", "master"]))

    name, kwargs = client.agent.service.registered[0]
    assert name == "mesos"
    assert kwargs["service_id"] == "mesos:m1:5050"
    assert kwargs["tags"] == ["leader", "master"]
    assert kwargs["port"] == 5050
    assert kwargs["check"] == {"http": "http://10.0.0.1:5050/master/health", "interval": "10s"}


def test_deregister_uses_entry_id(make_descriptor):
    client = _Client()
    ConsulRegistry(client).deregister(make_descriptor("a1:node-1"))
    assert client.agent.service.deregistered == ["a1:node-1"]


def test_registry_errors_are_wrapped(make_descriptor):
    client = _Client()
    client.agent.service.fail = True
    reg = ConsulRegistry(client)

    with pytest.raises(RegistryCallFailure) as exc:
        reg.register(make_descriptor("m1"))
    assert exc.value.entry_id == "m1"
    with pytest.raises(RegistryCallFailure):
        reg.deregister(make_descriptor("m1"))


def test_kv_get_put():
    client = _Client()
    kv = ConsulKV(client)

    assert kv.get("mesos-consul/cache") is None
    kv.put("mesos-consul/cache", b"{}")
    assert kv.get("mesos-consul/cache") == b"{}"


def test_kv_errors_are_wrapped():
    client = _Client()
    client.kv.fail = True
    kv = ConsulKV(client)

    with pytest.raises(PersistenceReadFailure):
        kv.get("k")
    with pytest.raises(PersistenceWriteFailure):
        kv.put("k", b"{}")
