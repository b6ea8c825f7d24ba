"""kico command-line interface.

Exposes:
    cli -- Click command entry point (registered as ``kico`` script).
"""

from kico.cli.main import cli

__all__ = ["cli"]
