"""In-memory ClusterProvider used across unit and integration tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from kico.errors import ResourceLookupError, StreamError
from kico.models.cluster import EndpointAddress, EndpointsInfo, PodInfo, ServiceInfo

SAMPLE_LINE = (
    '[INFO] 10.42.2.90:59003 - 9687 "AAAA IN user-db.sock-shop.svc.cluster.local. udp 53 false 512" '
    "NOERROR qr,aa,rd 146 0.000428325s"
)


def dns_line(
    ip: str = "10.42.2.90",
    port: str = "59003",
    hostname: str = "user-db.sock-shop.svc.cluster.local.",
    rcode: str = "NOERROR",
    qtype: str = "A",
) -> str:
    """A CoreDNS ``log`` plugin line in the default format."""
    return f'[INFO] {ip}:{port} - 9687 "{qtype} IN {hostname} udp 53 false 512" {rcode} qr,aa,rd 146 0.000428325s'


class FakeCluster:
    """Implements ClusterProvider over plain dicts.

    Follow streams replay the last ``tail_lines`` of ``follow_logs`` (or of
    ``logs`` when unset) and then stay open without producing anything, like
    a quiet live tail, unless the pod is listed in ``closing_streams``.
    """

    def __init__(self) -> None:
        self.namespaces: list[str] = []
        self.pods: dict[tuple[str, str], PodInfo] = {}
        self.endpoints: dict[str, list[EndpointsInfo]] = {}
        self.services: dict[str, list[ServiceInfo]] = {}
        self.logs: dict[str, list[str]] = {}
        self.follow_logs: dict[str, list[str]] = {}
        self.closing_streams: set[str] = set()
        self.open_failures: dict[str, Exception] = {}
        self.read_failures: dict[str, Exception] = {}
        self.get_pod_failures: set[tuple[str, str]] = set()
        self.get_pod_calls: list[tuple[str, str]] = []
        self.stream_calls: list[dict[str, object]] = []

    def _ensure_namespace(self, namespace: str) -> None:
        if namespace not in self.namespaces:
            self.namespaces.append(namespace)

    def add_pod(
        self,
        name: str,
        namespace: str,
        labels: dict[str, str] | None = None,
        ip: str | None = None,
        endpoints_name: str | None = None,
    ) -> PodInfo:
        self._ensure_namespace(namespace)
        pod = PodInfo(name=name, namespace=namespace, labels=dict(labels or {}))
        self.pods[(namespace, name)] = pod
        if ip is not None:
            address = EndpointAddress(ip=ip, target_kind="Pod", target_name=name, target_namespace=namespace)
            self.add_endpoints(namespace, endpoints_name or name, [address])
        return pod

    def add_endpoints(self, namespace: str, name: str, addresses: list[EndpointAddress]) -> None:
        self._ensure_namespace(namespace)
        self.endpoints.setdefault(namespace, []).append(
            EndpointsInfo(name=name, namespace=namespace, subsets=(tuple(addresses),))
        )

    def add_service(self, name: str, namespace: str, selector: dict[str, str]) -> ServiceInfo:
        self._ensure_namespace(namespace)
        service = ServiceInfo(name=name, namespace=namespace, selector=dict(selector))
        self.services.setdefault(namespace, []).append(service)
        return service

    def add_resolver(self, name: str, lines: list[str], namespace: str = "kube-system") -> PodInfo:
        pod = self.add_pod(name, namespace, labels={"k8s-app": "kube-dns"})
        self.logs[name] = list(lines)
        return pod

    # -- ClusterProvider ---------------------------------------------------

    async def get_pod(self, namespace: str, name: str) -> PodInfo:
        self.get_pod_calls.append((namespace, name))
        if (namespace, name) in self.get_pod_failures or (namespace, name) not in self.pods:
            raise ResourceLookupError("Pod", namespace, name)
        return self.pods[(namespace, name)]

    async def list_namespaces(self) -> list[str]:
        return list(self.namespaces)

    async def list_endpoints(self, namespace: str) -> list[EndpointsInfo]:
        return list(self.endpoints.get(namespace, []))

    async def list_services(self, namespace: str) -> list[ServiceInfo]:
        return list(self.services.get(namespace, []))

    async def list_pods_by_label(self, namespace: str, selector: str) -> list[PodInfo]:
        key, _, value = selector.partition("=")
        return [
            pod for (ns, _name), pod in self.pods.items() if ns == namespace and pod.labels.get(key) == value
        ]

    @asynccontextmanager
    async def stream_logs(
        self,
        namespace: str,
        pod_name: str,
        *,
        follow: bool = False,
        tail_lines: int | None = None,
    ) -> AsyncIterator[AsyncIterator[str]]:
        self.stream_calls.append({"pod": pod_name, "follow": follow, "tail_lines": tail_lines})
        if pod_name in self.open_failures:
            raise StreamError(pod_name, self.open_failures[pod_name])
        lines = self.follow_logs.get(pod_name, self.logs.get(pod_name, [])) if follow else self.logs.get(pod_name, [])
        if tail_lines is not None:
            lines = lines[-tail_lines:]
        yield self._lines(pod_name, list(lines), follow)

    async def _lines(self, pod_name: str, lines: list[str], follow: bool) -> AsyncIterator[str]:
        for line in lines:
            await asyncio.sleep(0)
            yield line
        if pod_name in self.read_failures:
            raise StreamError(pod_name, self.read_failures[pod_name])
        if follow and pod_name not in self.closing_streams:
            await asyncio.Event().wait()


def sock_shop_cluster() -> FakeCluster:
    """user-db with two callers of shape {name: user} and one {name: cart}."""
    cluster = FakeCluster()
    cluster.add_pod("user-db-b8dfb847c-wvkgf", "sock-shop", {"name": "user-db", "pod-template-hash": "b8dfb847c"})
    cluster.add_service("user-db", "sock-shop", {"name": "user-db"})
    cluster.add_pod(
        "user-79dddf5cc9-bzvhd",
        "sock-shop",
        {"name": "user", "pod-template-hash": "79dddf5cc9"},
        ip="10.42.2.90",
        endpoints_name="user",
    )
    cluster.add_pod(
        "user-79dddf5cc9-x7k2p",
        "sock-shop",
        {"name": "user", "pod-template-hash": "79dddf5cc9"},
        ip="10.42.1.17",
        endpoints_name="user",
    )
    cluster.add_pod("carts-6d4b5c7d9-q2w8e", "sock-shop", {"name": "cart"}, ip="10.42.0.33", endpoints_name="carts")
    return cluster
