"""NetworkPolicy suggestion data structures."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field


def strip_noise_labels(labels: Mapping[str, str], noise_labels: Iterable[str]) -> dict[str, str]:
    """Return a copy of *labels* without per-replica labels such as pod-template-hash."""
    noise = set(noise_labels)
    return {key: value for key, value in labels.items() if key not in noise}


@dataclass(frozen=True)
class PolicyPeer:
    """One caller shape allowed in: a pod label set.

    Stored as sorted (key, value) pairs so equality and hashing ignore the
    order labels were listed in.
    """

    labels: tuple[tuple[str, str], ...]

    @classmethod
    def from_labels(cls, labels: Mapping[str, str]) -> PolicyPeer:
        return cls(labels=tuple(sorted(labels.items())))

    @property
    def match_labels(self) -> dict[str, str]:
        return dict(self.labels)


@dataclass
class PolicySpec:
    """A single-rule ingress policy allowing every discovered caller shape."""

    name: str
    namespace: str
    target_selector_labels: dict[str, str] = field(default_factory=dict)
    peers: list[PolicyPeer] = field(default_factory=list)

    def add_peer(self, peer: PolicyPeer) -> bool:
        """Append *peer* unless an equal label set is already present."""
        if peer in self.peers:
            return False
        self.peers.append(peer)
        return True
