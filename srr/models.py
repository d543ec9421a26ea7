from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class HealthCheck:
    http: str
    interval: str = "10s"


@dataclass(frozen=True)
class RegistrationDescriptor:
    """One registry entry as it should look for a roster member."""

    entry_id: str
    name: str
    address: str
    port: int
    role: str  # master|follower
    tags: tuple[str, ...] = field(default_factory=tuple)
    check: HealthCheck | None = None

    def __post_init__(self) -> None:
        # Accept any sequence for tags but store it immutably, order kept.
        object.__setattr__(self, "tags", tuple(self.tags))

    def equivalent(self, other: RegistrationDescriptor) -> bool:
        """Tag sequences equal, element-wise and in order.

        Name, address and port are not compared: an address-only change does
        not trigger re-registration.
        """
        return self.tags == other.tags
