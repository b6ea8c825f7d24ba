"""Connection events and the hostname -> caller mapping built from them."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class ConnectionEvent:
    """A successful in-cluster name lookup taken from one resolver log line.

    Immutable: produced by the log grammar, consumed by the correlator.
    """

    source_ip: str
    source_port: str
    destination_hostname: str


@dataclass(frozen=True)
class SourceIdentity:
    """The pod an event's source IP belongs to."""

    pod_name: str
    namespace: str


@dataclass(frozen=True)
class DiscoveryRecord:
    """A newly discovered (hostname, pod) pair, reported once per run."""

    pod_name: str
    namespace: str
    hostname: str

    @property
    def message(self) -> str:
        return f"pod: {self.pod_name}, ns: {self.namespace} via svc: {self.hostname}"


class HostnameMapping:
    """Destination hostname -> callers, in first-seen order.

    Callers are deduplicated per hostname by pod name only; two pods with the
    same name in different namespaces count as one caller.
    """

    def __init__(self) -> None:
        self._entries: dict[str, list[SourceIdentity]] = {}
        self._pod_names: dict[str, set[str]] = {}

    def add(self, hostname: str, identity: SourceIdentity) -> bool:
        """Record *identity* under *hostname*. Returns False if already present."""
        seen = self._pod_names.setdefault(hostname, set())
        if identity.pod_name in seen:
            return False
        seen.add(identity.pod_name)
        self._entries.setdefault(hostname, []).append(identity)
        return True

    def contains(self, hostname: str, pod_name: str) -> bool:
        return pod_name in self._pod_names.get(hostname, ())

    def get(self, hostname: str) -> tuple[SourceIdentity, ...]:
        return tuple(self._entries.get(hostname, ()))

    def hostnames(self) -> list[str]:
        return list(self._entries)

    def identities(self) -> Iterator[SourceIdentity]:
        """Every caller across all hostnames, hostname by hostname."""
        for callers in self._entries.values():
            yield from callers

    def as_dict(self) -> dict[str, list[SourceIdentity]]:
        return {hostname: list(callers) for hostname, callers in self._entries.items()}

    def __contains__(self, hostname: object) -> bool:
        return hostname in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HostnameMapping):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __repr__(self) -> str:
        return f"HostnameMapping({self.as_dict()!r})"
