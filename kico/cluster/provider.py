"""The cluster topology provider the discovery engine depends on."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager
from typing import Protocol

from kico.models.cluster import EndpointsInfo, PodInfo, ServiceInfo


class ClusterProvider(Protocol):
    """Read-only view of the cluster.

    ``get_pod`` raises ResourceLookupError when the pod does not exist; other
    API failures raise ClusterAPIError. ``stream_logs`` raises StreamError
    when the stream cannot be opened, and its line iterator raises
    StreamError when reading fails midway.
    """

    async def get_pod(self, namespace: str, name: str) -> PodInfo: ...

    async def list_namespaces(self) -> list[str]: ...

    async def list_endpoints(self, namespace: str) -> list[EndpointsInfo]: ...

    async def list_services(self, namespace: str) -> list[ServiceInfo]: ...

    async def list_pods_by_label(self, namespace: str, selector: str) -> list[PodInfo]: ...

    def stream_logs(
        self,
        namespace: str,
        pod_name: str,
        *,
        follow: bool = False,
        tail_lines: int | None = None,
    ) -> AbstractAsyncContextManager[AsyncIterator[str]]: ...
