"""kubernetes-asyncio implementation of ClusterProvider."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import structlog
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio.client.rest import ApiException  # type: ignore[import-untyped]

from kico.errors import ClusterAPIError, ResourceLookupError, StreamError
from kico.models.cluster import EndpointAddress, EndpointsInfo, PodInfo, ServiceInfo
from kico.observability.logging import get_logger

_T = TypeVar("_T")


def _pod_info(pod: Any) -> PodInfo:
    meta = pod.metadata
    return PodInfo(name=meta.name, namespace=meta.namespace, labels=dict(meta.labels or {}))


def _endpoints_info(endpoints: Any) -> EndpointsInfo:
    subsets = []
    for subset in endpoints.subsets or []:
        addresses = []
        for address in subset.addresses or []:
            ref = address.target_ref
            addresses.append(
                EndpointAddress(
                    ip=address.ip,
                    target_kind=(ref.kind or "") if ref else "",
                    target_name=(ref.name or "") if ref else "",
                    target_namespace=(ref.namespace or "") if ref else "",
                )
            )
        subsets.append(tuple(addresses))
    return EndpointsInfo(
        name=endpoints.metadata.name,
        namespace=endpoints.metadata.namespace,
        subsets=tuple(subsets),
    )


def _service_info(service: Any) -> ServiceInfo:
    return ServiceInfo(
        name=service.metadata.name,
        namespace=service.metadata.namespace,
        selector=dict(service.spec.selector or {}),
    )


class KubernetesProvider:
    """Reads pods, namespaces, endpoints, services and logs through CoreV1Api.

    Args:
        api_client: an initialised ``kubernetes_asyncio.client.ApiClient``.
        logger:     optional bound logger; defaults to the ``cluster`` component.
    """

    def __init__(self, api_client: Any, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self._v1 = k8s_client.CoreV1Api(api_client)
        self._log = logger or get_logger("cluster")

    async def _call(self, operation: str, call: Awaitable[_T]) -> _T:
        self._log.debug("k8s_api_call", operation=operation)
        try:
            return await call
        except (ApiException, OSError) as exc:
            raise ClusterAPIError(operation, exc) from exc

    async def get_pod(self, namespace: str, name: str) -> PodInfo:
        try:
            pod = await self._v1.read_namespaced_pod(name, namespace)
        except ApiException as exc:
            if exc.status == 404:
                raise ResourceLookupError("Pod", namespace, name) from exc
            raise ClusterAPIError("read_namespaced_pod", exc) from exc
        except OSError as exc:
            raise ClusterAPIError("read_namespaced_pod", exc) from exc
        return _pod_info(pod)

    async def list_namespaces(self) -> list[str]:
        resp = await self._call("list_namespace", self._v1.list_namespace())
        return [ns.metadata.name for ns in resp.items]

    async def list_endpoints(self, namespace: str) -> list[EndpointsInfo]:
        resp = await self._call("list_namespaced_endpoints", self._v1.list_namespaced_endpoints(namespace))
        return [_endpoints_info(ep) for ep in resp.items]

    async def list_services(self, namespace: str) -> list[ServiceInfo]:
        resp = await self._call("list_namespaced_service", self._v1.list_namespaced_service(namespace))
        return [_service_info(svc) for svc in resp.items]

    async def list_pods_by_label(self, namespace: str, selector: str) -> list[PodInfo]:
        resp = await self._call(
            "list_namespaced_pod",
            self._v1.list_namespaced_pod(namespace, label_selector=selector),
        )
        return [_pod_info(pod) for pod in resp.items]

    @asynccontextmanager
    async def stream_logs(
        self,
        namespace: str,
        pod_name: str,
        *,
        follow: bool = False,
        tail_lines: int | None = None,
    ) -> AsyncIterator[AsyncIterator[str]]:
        """Open a pod log stream and yield an iterator over its decoded lines.

        The underlying HTTP response is closed on exit, which also ends a
        follow stream that is still open.
        """
        kwargs: dict[str, Any] = {"follow": follow, "_preload_content": False}
        if tail_lines is not None:
            kwargs["tail_lines"] = tail_lines
        try:
            response = await self._v1.read_namespaced_pod_log(pod_name, namespace, **kwargs)
        except Exception as exc:
            raise StreamError(pod_name, exc) from exc
        try:
            yield _read_lines(response, pod_name)
        finally:
            response.close()


async def _read_lines(response: Any, source: str) -> AsyncIterator[str]:
    try:
        async for raw in response.content:
            yield raw.decode("utf-8", errors="replace").rstrip("\r\n")
    except Exception as exc:
        raise StreamError(source, exc) from exc
