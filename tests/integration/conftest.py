"""Shared fixtures for kico integration tests.

Provides an in-memory sock-shop cluster with two CoreDNS replicas whose logs
contain realistic lookups, so the engine can be exercised end to end without
a real Kubernetes cluster.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from kico.engine import DiscoveryEngine
from kico.models.config import DiscoveryConfig, KicoConfig
from tests.fakes import FakeCluster, dns_line, sock_shop_cluster

USER_DB = "user-db.sock-shop.svc.cluster.local."
CATALOGUE = "catalogue.sock-shop.svc.cluster.local."
TARGET_POD = "user-db-b8dfb847c-wvkgf"


def resolver_logs() -> dict[str, list[str]]:
    """Two resolver replicas: repeated callers, other services, failed and unknown lookups."""
    return {
        "coredns-558bd4d5db-4kz9n": [
            "[INFO] plugin/reload: Running configuration SHA512 = 1e3b2c",
            dns_line(ip="10.42.2.90", port="59003", hostname=USER_DB, qtype="AAAA"),
            dns_line(ip="10.42.2.90", port="59004", hostname=USER_DB),
            dns_line(ip="10.42.0.33", port="41000", hostname=CATALOGUE),
            dns_line(ip="10.42.9.99", port="41001", hostname=USER_DB),
        ],
        "coredns-558bd4d5db-xw7tq": [
            dns_line(ip="10.42.1.17", port="33001", hostname=USER_DB, rcode="NXDOMAIN"),
            dns_line(ip="10.42.1.17", port="33002", hostname=USER_DB),
            dns_line(ip="10.42.0.33", port="41002", hostname=USER_DB),
            dns_line(ip="10.42.2.90", port="59010", hostname=USER_DB),
        ],
    }


@pytest.fixture()
def cluster() -> FakeCluster:
    cluster = sock_shop_cluster()
    for name, lines in resolver_logs().items():
        cluster.add_resolver(name, lines)
    return cluster


@pytest.fixture()
def config() -> KicoConfig:
    return KicoConfig(discovery=DiscoveryConfig(concurrency=2, wait_for_logs_seconds=0.2, tail_lines=5))


@pytest.fixture()
def engine(cluster: FakeCluster, config: KicoConfig) -> DiscoveryEngine:
    return DiscoveryEngine(cluster, config, logger=MagicMock())
