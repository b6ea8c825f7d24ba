"""Render a PolicySpec as a networking.k8s.io/v1 NetworkPolicy."""

from __future__ import annotations

from typing import Any

import yaml

from kico.models.policy import PolicySpec


def to_manifest(spec: PolicySpec) -> dict[str, Any]:
    """Build the NetworkPolicy object as plain dicts, ready for YAML or JSON."""
    return {
        "apiVersion": "networking.k8s.io/v1",
        "kind": "NetworkPolicy",
        "metadata": {
            "name": spec.name,
            "namespace": spec.namespace,
        },
        "spec": {
            "podSelector": {"matchLabels": dict(spec.target_selector_labels)},
            "policyTypes": ["Ingress"],
            "ingress": [
                {
                    "from": [{"podSelector": {"matchLabels": peer.match_labels}} for peer in spec.peers],
                }
            ],
        },
    }


def to_yaml(spec: PolicySpec) -> str:
    result: str = yaml.safe_dump(to_manifest(spec), default_flow_style=False, sort_keys=False, indent=2)
    return result
