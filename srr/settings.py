from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(p.strip() for p in raw.split(",") if p.strip())


@dataclass(frozen=True)
class Settings:
    # Core
    db_path: str = os.getenv("SRR_DB_PATH", "srr.db")
    poll_interval_s: int = _env_int("SRR_POLL_INTERVAL_S", 15)
    cache_key: str = os.getenv("SRR_CACHE_KEY", "mesos-consul/cache")
    kv_backend: str = os.getenv("SRR_KV_BACKEND", "consul")  # consul|sqlite
    autostart: bool = _env_bool("SRR_AUTOSTART", True)

    # Registry (Consul)
    consul_host: str = os.getenv("SRR_CONSUL_HOST", "127.0.0.1")
    consul_port: int = _env_int("SRR_CONSUL_PORT", 8500)
    consul_scheme: str = os.getenv("SRR_CONSUL_SCHEME", "http")
    consul_token: str | None = os.getenv("SRR_CONSUL_TOKEN")
    consul_dc: str | None = os.getenv("SRR_CONSUL_DC")

    # Roster (Mesos)
    mesos_url: str = os.getenv("SRR_MESOS_URL", "http://127.0.0.1:5050")
    # Comma separated host:port list; the leader from state.json is always included.
    mesos_masters: tuple[str, ...] = _env_list("SRR_MESOS_MASTERS")
    service_name: str = os.getenv("SRR_SERVICE_NAME", "mesos")
    check_interval: str = os.getenv("SRR_CHECK_INTERVAL", "10s")
    http_timeout_s: int = _env_int("SRR_HTTP_TIMEOUT_S", 10)


settings = Settings()
