"""ConnectionCorrelator: fold connection events into a HostnameMapping.

Events are cut into contiguous segments of ``concurrency`` events each (the
last one may be shorter). Each segment is folded into a private shard by
resolving source IPs against the TopologyIndex and collecting (hostname, pod)
pairs. Folding is pure CPU work with no I/O, so segments are folded one after
another in the calling thread. A segment that raises keeps the pairs it
already folded. Shards are then merged in segment order into the run's mapping, which
makes the result identical for identical input whatever the segment size.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import structlog

from kico.errors import ConfigError
from kico.models.connections import ConnectionEvent, DiscoveryRecord, HostnameMapping, SourceIdentity
from kico.observability.logging import get_logger
from kico.topology.index import TopologyIndex


def split_segments(events: Sequence[ConnectionEvent], size: int) -> list[Sequence[ConnectionEvent]]:
    """Cut *events* into contiguous slices of *size*; the last may be shorter."""
    if size < 1:
        raise ConfigError(f"concurrency must be at least 1, got {size}")
    return [events[start : start + size] for start in range(0, len(events), size)]


@dataclass
class CorrelationOutcome:
    """Merged result of all segment tasks."""

    mapping: HostnameMapping = field(default_factory=HostnameMapping)
    discoveries: list[DiscoveryRecord] = field(default_factory=list)
    events_matched: int = 0
    unresolved_ips: int = 0
    failed_segments: int = 0


@dataclass
class _Shard:
    seen: HostnameMapping = field(default_factory=HostnameMapping)
    pairs: list[tuple[str, SourceIdentity]] = field(default_factory=list)
    matched: int = 0
    unresolved: int = 0
    failed: bool = False


class ConnectionCorrelator:
    """Maps target-facing hostnames to the pods that looked them up.

    Args:
        topology:      snapshot used to resolve source IPs.
        target_fqdns:  service FQDNs of the target pod; other hostnames are ignored.
        concurrency:   segment size.
        logger:        optional bound logger.
    """

    def __init__(
        self,
        topology: TopologyIndex,
        target_fqdns: Iterable[str],
        *,
        concurrency: int = 4,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        if concurrency < 1:
            raise ConfigError(f"concurrency must be at least 1, got {concurrency}")
        self._topology = topology
        self._target_fqdns = frozenset(target_fqdns)
        self._concurrency = concurrency
        self._log = logger or get_logger("correlator")

    def correlate(self, events: Sequence[ConnectionEvent]) -> CorrelationOutcome:
        segments = split_segments(events, self._concurrency)
        shards = [self._process_segment(index, segment) for index, segment in enumerate(segments)]
        outcome = CorrelationOutcome()
        for shard in shards:
            self._merge(shard, outcome)
        self._log.debug(
            "correlation_finished",
            events=len(events),
            segments=len(segments),
            matched=outcome.events_matched,
            unresolved=outcome.unresolved_ips,
            callers=len(outcome.discoveries),
        )
        return outcome

    def _process_segment(self, index: int, segment: Sequence[ConnectionEvent]) -> _Shard:
        shard = _Shard()
        try:
            for event in segment:
                self._fold(event, shard)
        except Exception as exc:
            # keep what the shard collected so far; sibling segments carry on
            self._log.error("segment_failed", segment=index, error=str(exc))
            shard.failed = True
        return shard

    def _fold(self, event: ConnectionEvent, shard: _Shard) -> None:
        hostname = event.destination_hostname
        if hostname not in self._target_fqdns:
            return
        shard.matched += 1
        identity = self._topology.resolve_source_identity(event.source_ip)
        if identity is None:
            shard.unresolved += 1
            self._log.debug("source_ip_unresolved", ip=event.source_ip, hostname=hostname)
            return
        if shard.seen.add(hostname, identity):
            shard.pairs.append((hostname, identity))

    def _merge(self, shard: _Shard, outcome: CorrelationOutcome) -> None:
        outcome.events_matched += shard.matched
        outcome.unresolved_ips += shard.unresolved
        if shard.failed:
            outcome.failed_segments += 1
        for hostname, identity in shard.pairs:
            if not outcome.mapping.add(hostname, identity):
                continue
            record = DiscoveryRecord(pod_name=identity.pod_name, namespace=identity.namespace, hostname=hostname)
            outcome.discoveries.append(record)
            self._log.info(
                "connection_discovered",
                pod=identity.pod_name,
                namespace=identity.namespace,
                hostname=hostname,
            )
