"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field

from kico.models.cluster import DEFAULT_FQDN_SUFFIX


@dataclass
class DiscoveryConfig:
    """Log wait and correlation tuning."""

    concurrency: int = 4
    wait_for_logs_seconds: float = 60.0
    tail_lines: int = 5


@dataclass
class ResolverConfig:
    """Where the cluster DNS resolver pods live and how their logs look."""

    namespace: str = "kube-system"
    label_selector: str = "k8s-app=kube-dns"
    fqdn_suffix: str = DEFAULT_FQDN_SUFFIX


@dataclass
class PolicyConfig:
    """NetworkPolicy synthesis configuration."""

    noise_labels: tuple[str, ...] = ("pod-template-hash",)


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "console"


@dataclass
class KicoConfig:
    """Top-level kico configuration."""

    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    log: LogConfig = field(default_factory=LogConfig)
