"""Entry point for `python -m kico`.

Usage:
    python -m kico <pod-name> -n <namespace> --suggest-netpol
"""

from __future__ import annotations

from kico.cli import cli

cli()
