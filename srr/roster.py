from __future__ import annotations

import ipaddress
import socket
from dataclasses import dataclass
from typing import Any

import httpx

from .errors import RosterUnavailable
from .models import HealthCheck, RegistrationDescriptor
from .settings import settings


@dataclass(frozen=True)
class MasterRef:
    host: str
    port: str
    is_leader: bool = False


def parse_pid(pid: str) -> tuple[str, str]:
    """Split a libprocess PID like ``slave(1)@10.0.0.5:5051`` into (host, port)."""
    _, _, addr = pid.rpartition("@")
    host, sep, port = addr.rpartition(":")
    if not sep or not host or not port:
        raise ValueError(f"Invalid libprocess pid: {pid!r}")
    return host, port


def to_ip(host: str) -> str:
    try:
        ipaddress.ip_address(host)
        return host
    except ValueError:
        pass
    try:
        return socket.gethostbyname(host)
    except OSError:
        # Registering the hostname beats dropping the entry.
        return host


def to_port(port: str) -> int:
    try:
        return int(port)
    except ValueError:
        return 0


def follower_descriptor(agent_id: str, hostname: str, pid: str) -> RegistrationDescriptor:
    h, p = parse_pid(pid)
    host = to_ip(h)
    port = to_port(p)
    return RegistrationDescriptor(
        entry_id=f"{agent_id}:{hostname}",
        name=settings.service_name,
        address=host,
        port=port,
        role="follower",
        tags=("follower",),
        check=HealthCheck(http=f"http://{host}:{port}/slave(1)/health", interval=settings.check_interval),
    )


def master_descriptor(master: MasterRef) -> RegistrationDescriptor:
    host = to_ip(master.host)
    port = to_port(master.port)
    tags = ("leader", "master") if master.is_leader else ("master",)
    return RegistrationDescriptor(
        entry_id=f"mesos:{master.host}:{master.port}",
        name=settings.service_name,
        address=host,
        port=port,
        role="master",
        tags=tags,
        check=HealthCheck(http=f"http://{host}:{port}/master/health", interval=settings.check_interval),
    )


def masters_from_state(state: dict[str, Any], configured: tuple[str, ...] = ()) -> list[MasterRef]:
    leader: tuple[str, str] | None = None
    if state.get("leader"):
        leader = parse_pid(state["leader"])

    out: list[MasterRef] = []
    seen: set[tuple[str, str]] = set()
    for item in configured:
        host, _, port = item.rpartition(":")
        if not host:
            host, port = port, "5050"
        if (host, port) in seen:
            continue
        seen.add((host, port))
        out.append(MasterRef(host=host, port=port, is_leader=(host, port) == leader))
    if leader and leader not in seen:
        out.append(MasterRef(host=leader[0], port=leader[1], is_leader=True))
    return out


def roster_from_state(state: dict[str, Any], configured_masters: tuple[str, ...] = ()) -> list[RegistrationDescriptor]:
    """Followers first, then masters, in state.json order."""
    roster: list[RegistrationDescriptor] = []
    for agent in state.get("slaves") or state.get("agents") or []:
        try:
            roster.append(follower_descriptor(agent["id"], agent["hostname"], agent["pid"]))
        except (KeyError, TypeError, ValueError):
            continue
    for master in masters_from_state(state, configured_masters):
        roster.append(master_descriptor(master))
    return roster


def fetch_state(base_url: str | None = None, timeout_s: float | None = None) -> dict[str, Any]:
    url = f"{(base_url or settings.mesos_url).rstrip('/')}/master/state.json"
    try:
        with httpx.Client(timeout=timeout_s or settings.http_timeout_s, follow_redirects=True) as client:
            resp = client.get(url)
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPError as e:
        raise RosterUnavailable(f"GET {url} failed: {type(e).__name__}: {e}") from e
    except ValueError as e:
        raise RosterUnavailable(f"GET {url} returned invalid JSON") from e
    if not isinstance(data, dict):
        raise RosterUnavailable(f"GET {url} returned unexpected payload")
    return data


def fetch_roster() -> list[RegistrationDescriptor]:
    return roster_from_state(fetch_state(), settings.mesos_masters)
