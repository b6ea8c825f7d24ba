"""The ``kico`` command.

Prints the pods that connect to POD_NAME, as seen in the cluster DNS
resolver logs, and optionally a NetworkPolicy admitting exactly those
callers. For example::

    $ kico user-db-b8dfb847c-wvkgf -n sock-shop --suggest-netpol
    INCOMING CONNECTIONS
    --------------------
    pod: user-79dddf5cc9-bzvhd, ns: sock-shop via svc: user-db.sock-shop.svc.cluster.local.

    SUGGESTED NetworkPolicy
    -----------------------
    apiVersion: networking.k8s.io/v1
    kind: NetworkPolicy
    ...
"""

from __future__ import annotations

import asyncio

import click

from kico import __version__
from kico.cluster.kubernetes import KubernetesProvider
from kico.cluster.session import cluster_session, current_namespace
from kico.config import load_config, parse_duration
from kico.engine import DiscoveryEngine
from kico.errors import ConfigError, KicoError
from kico.models.config import KicoConfig
from kico.models.result import DiscoveryResult
from kico.observability.logging import get_logger, setup_logging
from kico.policy.render import to_yaml


async def _discover(
    config: KicoConfig,
    pod_name: str,
    namespace: str,
    suggest_policy: bool,
    concurrency: int | None,
    wait_seconds: float | None,
) -> DiscoveryResult:
    async with cluster_session() as api_client:
        engine = DiscoveryEngine(KubernetesProvider(api_client), config)
        return await engine.run(
            pod_name,
            namespace,
            suggest_policy=suggest_policy,
            concurrency=concurrency,
            wait_duration=wait_seconds,
        )


def _heading(title: str) -> None:
    click.echo(title)
    click.echo("-" * len(title))


def _print_result(result: DiscoveryResult) -> None:
    _heading("INCOMING CONNECTIONS")
    if result.discoveries:
        for line in result.discovery_log:
            click.echo(line)
    else:
        click.echo(f"no incoming connections found for {', '.join(result.target_fqdns)}")

    for warning in result.warnings:
        click.secho(f"warning: {warning}", fg="yellow", err=True)

    if result.policy is not None:
        click.echo("")
        _heading("SUGGESTED NetworkPolicy")
        click.echo(to_yaml(result.policy), nl=False)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="kico")
@click.argument("pod_name")
@click.option(
    "--namespace",
    "-n",
    default="",
    help="Namespace where the pod exists (default: current kubeconfig namespace).",
)
@click.option("--suggest-netpol", "-s", is_flag=True, help="Suggest a NetworkPolicy for the observed callers.")
@click.option(
    "--concurrency",
    "-c",
    type=click.IntRange(min=1),
    default=None,
    help="Concurrency for processing logs (default 4, or KICO_CONCURRENCY).",
)
@click.option(
    "--wait-for-logs",
    "-w",
    default=None,
    metavar="DURATION",
    help="How long to wait for relevant resolver logs, e.g. 60s or 1m30s (default 60s).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(
    pod_name: str,
    namespace: str,
    suggest_netpol: bool,
    concurrency: int | None,
    wait_for_logs: str | None,
    verbose: bool,
) -> None:
    """Show which pods are connecting to POD_NAME."""
    if not pod_name.strip():
        raise click.BadParameter("please provide a pod name", param_hint="POD_NAME")
    try:
        config = load_config()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    wait_seconds: float | None = None
    if wait_for_logs is not None:
        try:
            wait_seconds = parse_duration(wait_for_logs)
        except ConfigError as exc:
            raise click.BadParameter(str(exc), param_hint="'--wait-for-logs'") from exc

    setup_logging("debug" if verbose else config.log.level, config.log.format)
    namespace = namespace or current_namespace()

    try:
        result = asyncio.run(
            _discover(config, pod_name, namespace, suggest_netpol, concurrency, wait_seconds),
        )
    except KicoError as exc:
        get_logger("cli").error("discovery_failed", pod=pod_name, namespace=namespace, error=str(exc))
        raise click.ClickException(str(exc)) from exc

    _print_result(result)
