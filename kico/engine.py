"""Discovery engine: wires every stage of a run in dependency order.

Order: target pod -> topology snapshot -> target service FQDNs -> resolver
pods -> log wait -> log harvest -> correlation -> policy synthesis.

The first four steps are setup: any failure there raises and aborts the
run. From the log wait onwards every failure is local to one resolver pod,
log line or caller pod; it is logged, copied into ``DiscoveryResult.warnings``
and the run carries on with whatever it still has.
"""

from __future__ import annotations

import time

import structlog

from kico.cluster.provider import ClusterProvider
from kico.correlate.correlator import ConnectionCorrelator
from kico.errors import ConfigError, ResourceLookupError
from kico.harvest.harvester import LogHarvester
from kico.harvest.waiter import LogWaiter
from kico.models.config import KicoConfig
from kico.models.result import DiscoveryResult
from kico.observability.logging import get_logger
from kico.policy.synthesizer import PolicySynthesizer
from kico.topology.index import TopologyIndex


class DiscoveryEngine:
    """Runs one point-in-time discovery against a cluster provider.

    The engine holds no state between runs; every call to ``run`` takes a
    fresh topology snapshot and reads the resolver logs again.
    """

    def __init__(
        self,
        provider: ClusterProvider,
        config: KicoConfig | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._provider = provider
        self._config = config or KicoConfig()
        self._log = logger or get_logger("engine")

    async def run(
        self,
        target_pod_name: str,
        target_namespace: str,
        suggest_policy: bool = False,
        concurrency: int | None = None,
        wait_duration: float | None = None,
    ) -> DiscoveryResult:
        """Discover the pods connecting to *target_pod_name*.

        Args:
            target_pod_name:  pod whose callers are wanted.
            target_namespace: namespace of that pod.
            suggest_policy:   also synthesize an ingress NetworkPolicy.
            concurrency:      correlation segment size; defaults to config.
            wait_duration:    seconds to wait for relevant resolver logs; defaults to config.

        Raises:
            ResourceLookupError: target pod, its services, or the resolver pods are missing.
            ClusterAPIError:     the cluster could not be listed.
            ConfigError:         concurrency or wait duration is out of range.
        """
        discovery = self._config.discovery
        resolver = self._config.resolver
        concurrency = discovery.concurrency if concurrency is None else concurrency
        wait_seconds = discovery.wait_for_logs_seconds if wait_duration is None else wait_duration
        if concurrency < 1:
            raise ConfigError(f"concurrency must be at least 1, got {concurrency}")
        if wait_seconds < 0:
            raise ConfigError(f"wait duration must not be negative, got {wait_seconds}")

        log = self._log.bind(pod=target_pod_name, namespace=target_namespace)
        started = time.monotonic()

        # --- 1. Target pod ----------------------------------------------
        target = await self._provider.get_pod(target_namespace, target_pod_name)

        # --- 2. Topology snapshot ---------------------------------------
        topology = await TopologyIndex.load(self._provider)
        log.debug(
            "topology_loaded",
            namespaces=len(topology.namespaces),
            pod_addresses=topology.address_count,
        )

        # --- 3. Target service FQDNs ------------------------------------
        target_fqdns = topology.find_target_service_fqdns(target, resolver.fqdn_suffix)
        if not target_fqdns:
            raise ResourceLookupError("Service", target_namespace, target_pod_name, "no Service selects this pod")
        log.debug("target_services_resolved", fqdns=list(target_fqdns))

        # --- 4. Resolver pods -------------------------------------------
        resolver_pods = await self._provider.list_pods_by_label(resolver.namespace, resolver.label_selector)
        if not resolver_pods:
            raise ResourceLookupError(
                "Pod",
                resolver.namespace,
                resolver.label_selector,
                "no DNS resolver pods match the label selector",
            )
        sources = [pod.name for pod in resolver_pods]

        # --- 5. Wait for relevant logs ----------------------------------
        waiter = LogWaiter(
            self._provider,
            namespace=resolver.namespace,
            wait_seconds=wait_seconds,
            tail_lines=discovery.tail_lines,
            fqdn_suffix=resolver.fqdn_suffix,
        )
        wait_report = await waiter.wait(sources)

        # --- 6. Harvest -------------------------------------------------
        harvester = LogHarvester(self._provider, namespace=resolver.namespace, fqdn_suffix=resolver.fqdn_suffix)
        harvest = await harvester.harvest(sources)

        # --- 7. Correlate -----------------------------------------------
        correlator = ConnectionCorrelator(topology, target_fqdns, concurrency=concurrency)
        outcome = correlator.correlate(harvest.events)

        result = DiscoveryResult(
            target=target,
            target_fqdns=target_fqdns,
            wait_report=wait_report,
            harvest=harvest,
            mapping=outcome.mapping,
            discoveries=outcome.discoveries,
            warnings=wait_report.warnings() + harvest.warnings(),
        )
        if outcome.failed_segments:
            result.warnings.append(
                f"{outcome.failed_segments} correlation segment(s) failed; results may be incomplete"
            )

        # --- 8. Policy suggestion ---------------------------------------
        if suggest_policy:
            synthesizer = PolicySynthesizer(self._provider, noise_labels=self._config.policy.noise_labels)
            result.policy = await synthesizer.synthesize(outcome.mapping, target)
            result.warnings.extend(synthesizer.warnings)

        log.info(
            "discovery_finished",
            callers=len(result.discoveries),
            warnings=len(result.warnings),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return result
