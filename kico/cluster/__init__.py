"""Cluster access for kico.

Submodules:
    provider    -- ClusterProvider protocol: the reads the engine needs.
    kubernetes  -- KubernetesProvider: kubernetes-asyncio implementation.
    session     -- credential loading and current-namespace resolution.
"""

from kico.cluster.provider import ClusterProvider

__all__ = ["ClusterProvider"]
