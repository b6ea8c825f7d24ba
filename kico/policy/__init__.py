"""NetworkPolicy suggestion.

Submodules:
    synthesizer -- PolicySynthesizer: caller labels -> deduplicated PolicySpec.
    render      -- PolicySpec -> NetworkPolicy manifest dict / YAML.
"""

from kico.policy.render import to_manifest, to_yaml
from kico.policy.synthesizer import PolicySynthesizer

__all__ = ["PolicySynthesizer", "to_manifest", "to_yaml"]
