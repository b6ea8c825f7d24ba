"""Frozen snapshot of cluster topology used to resolve callers and targets."""

from kico.topology.index import TopologyIndex

__all__ = ["TopologyIndex"]
