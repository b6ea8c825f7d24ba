"""PolicySynthesizer: turn discovered callers into one ingress rule."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from kico.cluster.provider import ClusterProvider
from kico.errors import KicoError
from kico.models.cluster import PodInfo
from kico.models.connections import HostnameMapping, SourceIdentity
from kico.models.policy import PolicyPeer, PolicySpec, strip_noise_labels
from kico.observability.logging import get_logger

DEFAULT_NOISE_LABELS = ("pod-template-hash",)
ALLOW_ALL_WARNING = "no caller labels could be used; the suggested policy admits all ingress"


class PolicySynthesizer:
    """Builds a PolicySpec whose single ingress rule admits every caller shape.

    Each caller pod's current labels are fetched once, stripped of noise
    labels, and kept only if no equal label set was seen before. A caller
    whose labels cannot be fetched is logged and left out.
    """

    def __init__(
        self,
        provider: ClusterProvider,
        *,
        noise_labels: Iterable[str] = DEFAULT_NOISE_LABELS,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._provider = provider
        self._noise_labels = tuple(noise_labels)
        self._log = logger or get_logger("policy_synthesizer")
        self.warnings: list[str] = []

    async def synthesize(self, mapping: HostnameMapping, target_pod: PodInfo) -> PolicySpec:
        self.warnings = []
        spec = PolicySpec(
            name=f"{target_pod.name}-ingress",
            namespace=target_pod.namespace,
            target_selector_labels=strip_noise_labels(target_pod.labels, self._noise_labels),
        )
        fetched: set[SourceIdentity] = set()
        for identity in mapping.identities():
            if identity in fetched:
                continue
            fetched.add(identity)
            try:
                caller = await self._provider.get_pod(identity.namespace, identity.pod_name)
            except KicoError as exc:
                message = f"couldn't get pod {identity.namespace}/{identity.pod_name}: {exc}"
                self.warnings.append(message)
                self._log.warning(
                    "peer_label_fetch_failed",
                    pod=identity.pod_name,
                    namespace=identity.namespace,
                    error=str(exc),
                )
                continue
            peer = PolicyPeer.from_labels(strip_noise_labels(caller.labels, self._noise_labels))
            if spec.add_peer(peer):
                self._log.debug("policy_peer_added", pod=identity.pod_name, labels=peer.match_labels)
        if not spec.peers:
            # an empty "from" list matches every source
            self.warnings.append(ALLOW_ALL_WARNING)
            self._log.warning("policy_admits_all_ingress", name=spec.name, callers=len(fetched))
        self._log.info("policy_synthesized", name=spec.name, peers=len(spec.peers))
        return spec
