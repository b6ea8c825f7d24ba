"""End-to-end tests of DiscoveryEngine.run against the in-memory cluster."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from kico.engine import DiscoveryEngine
from kico.errors import ConfigError, ResourceLookupError
from kico.models.config import KicoConfig, ResolverConfig
from kico.models.connections import SourceIdentity
from kico.models.harvest import WaitOutcome
from kico.policy.render import to_manifest
from kico.policy.synthesizer import ALLOW_ALL_WARNING
from tests.fakes import FakeCluster, dns_line, sock_shop_cluster

from .conftest import TARGET_POD, USER_DB

pytestmark = pytest.mark.integration


class TestDiscovery:
    async def test_discovers_callers_in_first_seen_order(self, engine: DiscoveryEngine) -> None:
        result = await engine.run(TARGET_POD, "sock-shop")

        assert result.target_fqdns == (USER_DB,)
        assert result.discovery_log == [
            f"pod: user-79dddf5cc9-bzvhd, ns: sock-shop via svc: {USER_DB}",
            f"pod: user-79dddf5cc9-x7k2p, ns: sock-shop via svc: {USER_DB}",
            f"pod: carts-6d4b5c7d9-q2w8e, ns: sock-shop via svc: {USER_DB}",
        ]
        assert result.mapping.hostnames() == [USER_DB]
        assert result.policy is None
        assert result.warnings == []

    async def test_repeat_callers_yield_single_entry(self, engine: DiscoveryEngine) -> None:
        result = await engine.run(TARGET_POD, "sock-shop")
        callers = result.mapping.get(USER_DB)
        assert callers.count(SourceIdentity("user-79dddf5cc9-bzvhd", "sock-shop")) == 1
        assert sum(1 for d in result.discoveries if d.pod_name == "user-79dddf5cc9-bzvhd") == 1

    async def test_all_resolvers_found_relevant_logs(self, engine: DiscoveryEngine) -> None:
        result = await engine.run(TARGET_POD, "sock-shop")
        assert result.wait_report.all_found
        assert result.harvest.parse_errors == 0
        assert len(result.harvest.events) == 7

    async def test_suggests_deduplicated_policy(self, engine: DiscoveryEngine) -> None:
        result = await engine.run(TARGET_POD, "sock-shop", suggest_policy=True)

        assert result.policy is not None
        manifest = to_manifest(result.policy)
        assert manifest["metadata"]["name"] == f"{TARGET_POD}-ingress"
        assert manifest["spec"]["podSelector"] == {"matchLabels": {"name": "user-db"}}
        assert manifest["spec"]["ingress"][0]["from"] == [
            {"podSelector": {"matchLabels": {"name": "user"}}},
            {"podSelector": {"matchLabels": {"name": "cart"}}},
        ]

    async def test_runs_are_independent(self, engine: DiscoveryEngine) -> None:
        first = await engine.run(TARGET_POD, "sock-shop", suggest_policy=True)
        second = await engine.run(TARGET_POD, "sock-shop", suggest_policy=True)
        assert first.mapping == second.mapping
        assert first.discoveries == second.discoveries
        assert first.policy == second.policy

    @pytest.mark.parametrize("concurrency", [1, 3, 100])
    async def test_concurrency_does_not_change_result(self, engine: DiscoveryEngine, concurrency: int) -> None:
        baseline = await engine.run(TARGET_POD, "sock-shop", concurrency=2)
        result = await engine.run(TARGET_POD, "sock-shop", concurrency=concurrency)
        assert result.discoveries == baseline.discoveries


class TestPartialFailures:
    async def test_broken_resolver_stream_is_a_warning(self, cluster: FakeCluster, engine: DiscoveryEngine) -> None:
        cluster.open_failures["coredns-558bd4d5db-xw7tq"] = ConnectionError("connection refused")

        result = await engine.run(TARGET_POD, "sock-shop")

        wait = result.wait_report.results["coredns-558bd4d5db-xw7tq"]
        assert wait.outcome == WaitOutcome.STREAM_ERROR
        assert [d.pod_name for d in result.discoveries] == ["user-79dddf5cc9-bzvhd"]
        assert any("connection refused" in w for w in result.warnings)

    async def test_quiet_resolver_times_out_without_aborting(self, cluster: FakeCluster, engine: DiscoveryEngine) -> None:
        cluster.follow_logs["coredns-558bd4d5db-4kz9n"] = ["[INFO] plugin/reload: Running configuration"]

        result = await engine.run(TARGET_POD, "sock-shop", wait_duration=0.05)

        assert [r.source for r in result.wait_report.timed_out] == ["coredns-558bd4d5db-4kz9n"]
        assert any("waited" in w for w in result.warnings)
        assert len(result.discoveries) == 3

    async def test_unparseable_lines_are_skipped(self, cluster: FakeCluster, engine: DiscoveryEngine) -> None:
        cluster.logs["coredns-558bd4d5db-4kz9n"].append(
            '[INFO] 10.42.2.90: - 1 "A IN user-db.sock-shop.svc.cluster.local. udp" NOERROR qr 1 0.1s'
        )
        result = await engine.run(TARGET_POD, "sock-shop")
        assert result.harvest.parse_errors == 1
        assert len(result.discoveries) == 3
        assert any("could not be parsed" in w for w in result.warnings)

    async def test_unreadable_caller_is_left_out_of_policy(
        self, cluster: FakeCluster, engine: DiscoveryEngine
    ) -> None:
        cluster.get_pod_failures.add(("sock-shop", "carts-6d4b5c7d9-q2w8e"))
        result = await engine.run(TARGET_POD, "sock-shop", suggest_policy=True)
        assert result.policy is not None
        assert [peer.match_labels for peer in result.policy.peers] == [{"name": "user"}]
        assert any("carts-6d4b5c7d9-q2w8e" in w for w in result.warnings)


class TestFatalErrors:
    async def test_unknown_target_pod(self, engine: DiscoveryEngine) -> None:
        with pytest.raises(ResourceLookupError, match="not-there"):
            await engine.run("not-there", "sock-shop")

    async def test_target_without_service(self, cluster: FakeCluster, engine: DiscoveryEngine) -> None:
        cluster.add_pod("lonely", "sock-shop", {"name": "lonely"})
        with pytest.raises(ResourceLookupError, match="no Service selects this pod"):
            await engine.run("lonely", "sock-shop")

    async def test_no_resolver_pods(self, config: KicoConfig) -> None:
        cluster = FakeCluster()
        cluster.add_pod(TARGET_POD, "sock-shop", {"name": "user-db"})
        cluster.add_service("user-db", "sock-shop", {"name": "user-db"})
        engine = DiscoveryEngine(cluster, config, logger=MagicMock())
        with pytest.raises(ResourceLookupError, match="no DNS resolver pods"):
            await engine.run(TARGET_POD, "sock-shop")

    async def test_invalid_concurrency(self, engine: DiscoveryEngine) -> None:
        with pytest.raises(ConfigError):
            await engine.run(TARGET_POD, "sock-shop", concurrency=0)


class TestResolverSettings:
    async def test_custom_cluster_domain(self, config: KicoConfig) -> None:
        cluster = FakeCluster()
        cluster.add_pod("db-0", "prod", {"app": "db"})
        cluster.add_service("db", "prod", {"app": "db"})
        cluster.add_pod("api-0", "prod", {"app": "api"}, ip="10.1.0.5")
        cluster.add_resolver("coredns-a", [dns_line(ip="10.1.0.5", hostname="db.prod.svc.corp.internal.")])
        config.resolver = ResolverConfig(fqdn_suffix=".svc.corp.internal.")

        result = await DiscoveryEngine(cluster, config, logger=MagicMock()).run("db-0", "prod")

        assert result.target_fqdns == ("db.prod.svc.corp.internal.",)
        assert result.discovery_log == ["pod: api-0, ns: prod via svc: db.prod.svc.corp.internal."]
        assert result.warnings == []


class TestNoCallers:
    async def test_policy_without_callers_is_flagged(self, config: KicoConfig) -> None:
        cluster = sock_shop_cluster()
        cluster.add_resolver("coredns-a", [dns_line(hostname="other.sock-shop.svc.cluster.local.")])
        engine = DiscoveryEngine(cluster, config, logger=MagicMock())

        result = await engine.run(TARGET_POD, "sock-shop", suggest_policy=True)

        assert result.discoveries == []
        assert result.policy is not None
        assert to_manifest(result.policy)["spec"]["ingress"] == [{"from": []}]
        assert result.warnings == [ALLOW_ALL_WARNING]
