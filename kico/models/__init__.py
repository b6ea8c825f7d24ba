"""Core data structures for kico."""

from kico.models.cluster import EndpointAddress, EndpointsInfo, PodInfo, ServiceInfo
from kico.models.config import KicoConfig
from kico.models.connections import (
    ConnectionEvent,
    DiscoveryRecord,
    HostnameMapping,
    SourceIdentity,
)
from kico.models.harvest import HarvestResult, SourceWaitResult, WaitOutcome, WaitReport
from kico.models.policy import PolicyPeer, PolicySpec, strip_noise_labels
from kico.models.result import DiscoveryResult

__all__ = [
    "ConnectionEvent",
    "DiscoveryRecord",
    "DiscoveryResult",
    "EndpointAddress",
    "EndpointsInfo",
    "HarvestResult",
    "HostnameMapping",
    "KicoConfig",
    "PodInfo",
    "PolicyPeer",
    "PolicySpec",
    "ServiceInfo",
    "SourceIdentity",
    "SourceWaitResult",
    "WaitOutcome",
    "WaitReport",
    "strip_noise_labels",
]
