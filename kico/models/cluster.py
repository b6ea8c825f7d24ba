"""Plain-data views of the Kubernetes objects kico reads.

The cluster provider converts API objects into these so that the topology
index, the correlator and the tests never depend on client model classes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_FQDN_SUFFIX = ".svc.cluster.local."


@dataclass(frozen=True)
class PodInfo:
    """A pod's identity and labels."""

    name: str
    namespace: str
    labels: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ServiceInfo:
    """A Service and the label selector it routes to."""

    name: str
    namespace: str
    selector: dict[str, str] = field(default_factory=dict)

    def fqdn(self, suffix: str = DEFAULT_FQDN_SUFFIX) -> str:
        """The in-cluster name resolvers log for this service, e.g. ``db.prod.svc.cluster.local.``."""
        return f"{self.name}.{self.namespace}{suffix}"

    def selects(self, labels: dict[str, str]) -> bool:
        """True when the selector is non-empty and every pair matches *labels*."""
        if not self.selector:
            return False
        return all(labels.get(key) == value for key, value in self.selector.items())


@dataclass(frozen=True)
class EndpointAddress:
    """One ready address of an endpoint subset."""

    ip: str
    target_kind: str = ""
    target_name: str = ""
    target_namespace: str = ""


@dataclass(frozen=True)
class EndpointsInfo:
    """An Endpoints object: the addresses backing a Service, grouped by subset."""

    name: str
    namespace: str
    subsets: tuple[tuple[EndpointAddress, ...], ...] = ()
