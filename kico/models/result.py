"""The result of one discovery run."""

from __future__ import annotations

from dataclasses import dataclass, field

from kico.models.cluster import PodInfo
from kico.models.connections import DiscoveryRecord, HostnameMapping
from kico.models.harvest import HarvestResult, WaitReport
from kico.models.policy import PolicySpec


@dataclass
class DiscoveryResult:
    """Everything a run found, returned to the CLI for rendering.

    ``discoveries`` is ordered the way callers were first seen in the
    resolver logs. ``warnings`` collects every non-fatal problem (timed out
    or failed log streams, unparseable lines, unreadable caller pods).
    """

    target: PodInfo
    target_fqdns: tuple[str, ...]
    wait_report: WaitReport
    harvest: HarvestResult
    mapping: HostnameMapping
    discoveries: list[DiscoveryRecord] = field(default_factory=list)
    policy: PolicySpec | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def discovery_log(self) -> list[str]:
        return [record.message for record in self.discoveries]
