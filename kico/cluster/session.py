"""Cluster session setup: credentials and the default namespace.

Credentials come from the in-cluster service account when running inside a
pod, otherwise from the local kubeconfig.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
import structlog
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

from kico.errors import ConfigError
from kico.observability.logging import get_logger

_SERVICE_ACCOUNT_NAMESPACE = Path("/var/run/secrets/kubernetes.io/serviceaccount/namespace")


async def load_credentials(logger: structlog.stdlib.BoundLogger | None = None) -> None:
    """Configure the kubernetes-asyncio client, raising ConfigError on failure."""
    log = logger or get_logger("session")
    try:
        # load_incluster_config() is synchronous in kubernetes-asyncio
        k8s_config.load_incluster_config()
        log.debug("k8s_credentials_loaded", source="in_cluster")
        return
    except k8s_config.ConfigException:
        pass
    try:
        # load_kube_config() is async in kubernetes-asyncio
        await k8s_config.load_kube_config()
    except (k8s_config.ConfigException, OSError) as exc:
        raise ConfigError(f"Cannot load cluster credentials: {exc}") from exc
    log.debug("k8s_credentials_loaded", source="kubeconfig")


@asynccontextmanager
async def cluster_session(logger: structlog.stdlib.BoundLogger | None = None) -> AsyncIterator[Any]:
    """Yield a configured ApiClient and close its connection pool on exit."""
    await load_credentials(logger)
    api_client = k8s_client.ApiClient()
    try:
        yield api_client
    finally:
        await api_client.close()


def current_namespace() -> str:
    """Namespace of the kubeconfig current context, else the pod's own, else ``default``."""
    try:
        _contexts, active = k8s_config.list_kube_config_contexts()
    except (k8s_config.ConfigException, OSError):
        active = None
    if active:
        namespace = (active.get("context") or {}).get("namespace")
        if namespace:
            return str(namespace)
    if _SERVICE_ACCOUNT_NAMESPACE.is_file():
        namespace = _SERVICE_ACCOUNT_NAMESPACE.read_text().strip()
        if namespace:
            return namespace
    return "default"
