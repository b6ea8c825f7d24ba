"""TopologyIndex: namespaces, endpoints and services read once per run.

Source IPs are resolved through a flat ``ip -> SourceIdentity`` index built
at construction. When one IP appears in several endpoint subsets the first
one wins, in namespace (as listed) -> endpoints -> subset -> address order,
so lookups are deterministic for a given snapshot.

The snapshot is never refreshed. A pod that started or moved after the
snapshot was taken simply does not resolve.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Iterable, Mapping
from types import MappingProxyType
from typing import TypeVar

from kico.cluster.provider import ClusterProvider
from kico.errors import ConfigError
from kico.models.cluster import DEFAULT_FQDN_SUFFIX, EndpointsInfo, PodInfo, ServiceInfo
from kico.models.connections import SourceIdentity

_POD_KIND = "Pod"

MAX_LIST_REQUESTS = 8

_T = TypeVar("_T")


class TopologyIndex:
    """Immutable, read-only view of the cluster; safe to share between tasks."""

    def __init__(
        self,
        namespaces: Iterable[str],
        endpoints_by_namespace: Mapping[str, Iterable[EndpointsInfo]],
        services_by_namespace: Mapping[str, Iterable[ServiceInfo]],
    ) -> None:
        self._namespaces = tuple(namespaces)
        self._endpoints = MappingProxyType(
            {ns: tuple(endpoints_by_namespace.get(ns, ())) for ns in self._namespaces}
        )
        self._services = MappingProxyType(
            {ns: tuple(services_by_namespace.get(ns, ())) for ns in self._namespaces}
        )
        self._by_ip = MappingProxyType(self._index_addresses())

    @classmethod
    def build(
        cls,
        namespaces: Iterable[str],
        endpoints_by_namespace: Mapping[str, Iterable[EndpointsInfo]],
        services_by_namespace: Mapping[str, Iterable[ServiceInfo]],
    ) -> TopologyIndex:
        return cls(namespaces, endpoints_by_namespace, services_by_namespace)

    @classmethod
    async def load(cls, provider: ClusterProvider, *, max_requests: int = MAX_LIST_REQUESTS) -> TopologyIndex:
        """List every namespace's endpoints and services and build the index.

        At most *max_requests* list calls are in flight at once. Any provider
        error propagates once every call has settled: without a topology
        nothing can be resolved, so this is a fatal setup failure.
        """
        if max_requests < 1:
            raise ConfigError(f"max_requests must be at least 1, got {max_requests}")
        namespaces = await provider.list_namespaces()
        limit = asyncio.Semaphore(max_requests)

        async def bounded(call: Awaitable[_T]) -> _T:
            async with limit:
                return await call

        results = await asyncio.gather(
            *(bounded(provider.list_endpoints(ns)) for ns in namespaces),
            *(bounded(provider.list_services(ns)) for ns in namespaces),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        endpoints = results[: len(namespaces)]
        services = results[len(namespaces) :]
        return cls(
            namespaces,
            dict(zip(namespaces, endpoints, strict=True)),  # type: ignore[arg-type]
            dict(zip(namespaces, services, strict=True)),  # type: ignore[arg-type]
        )

    def _index_addresses(self) -> dict[str, SourceIdentity]:
        by_ip: dict[str, SourceIdentity] = {}
        for ns in self._namespaces:
            for endpoints in self._endpoints[ns]:
                for subset in endpoints.subsets:
                    for address in subset:
                        if address.target_kind != _POD_KIND or address.ip in by_ip:
                            continue
                        by_ip[address.ip] = SourceIdentity(
                            pod_name=address.target_name,
                            namespace=address.target_namespace,
                        )
        return by_ip

    @property
    def namespaces(self) -> tuple[str, ...]:
        return self._namespaces

    @property
    def address_count(self) -> int:
        return len(self._by_ip)

    def endpoints(self, namespace: str) -> tuple[EndpointsInfo, ...]:
        return self._endpoints.get(namespace, ())

    def services(self, namespace: str) -> tuple[ServiceInfo, ...]:
        return self._services.get(namespace, ())

    def resolve_source_identity(self, ip: str) -> SourceIdentity | None:
        """The pod behind *ip*, or None when no Pod endpoint address matches."""
        return self._by_ip.get(ip)

    def find_target_service_fqdns(
        self,
        target_pod: PodInfo,
        fqdn_suffix: str = DEFAULT_FQDN_SUFFIX,
    ) -> tuple[str, ...]:
        """FQDNs, under *fqdn_suffix*, of the services in the pod's namespace whose selector picks the pod."""
        fqdns: dict[str, None] = {}
        for service in self.services(target_pod.namespace):
            if service.selects(target_pod.labels):
                fqdns[service.fqdn(fqdn_suffix)] = None
        return tuple(fqdns)
