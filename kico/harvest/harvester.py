"""LogHarvester: read resolver logs in full and parse them into events."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import structlog

from kico.cluster.provider import ClusterProvider
from kico.errors import ParseError, StreamError
from kico.harvest.grammar import FQDN_SUFFIX, parse
from kico.models.harvest import HarvestResult
from kico.observability.logging import get_logger


class LogHarvester:
    """Reads each resolver pod's full log concurrently.

    Events are returned in resolver-pod order, then line order. An
    unparseable line is logged and skipped. A pod whose stream fails
    contributes no events; the other pods are unaffected.
    """

    def __init__(
        self,
        provider: ClusterProvider,
        *,
        namespace: str,
        fqdn_suffix: str = FQDN_SUFFIX,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._provider = provider
        self._namespace = namespace
        self._fqdn_suffix = fqdn_suffix
        self._log = logger or get_logger("log_harvester")

    async def harvest(self, sources: Sequence[str]) -> HarvestResult:
        partials = await asyncio.gather(*(self._harvest_one(source) for source in sources))
        result = HarvestResult()
        for partial in partials:
            result.events.extend(partial.events)
            result.lines_read += partial.lines_read
            result.parse_errors += partial.parse_errors
            result.stream_errors.update(partial.stream_errors)
        self._log.info(
            "logs_harvested",
            sources=len(sources),
            lines=result.lines_read,
            events=len(result.events),
            parse_errors=result.parse_errors,
            stream_errors=len(result.stream_errors),
        )
        return result

    async def _harvest_one(self, source: str) -> HarvestResult:
        partial = HarvestResult()
        try:
            async with self._provider.stream_logs(self._namespace, source) as lines:
                async for line in lines:
                    partial.lines_read += 1
                    try:
                        event = parse(line, self._fqdn_suffix)
                    except ParseError as exc:
                        partial.parse_errors += 1
                        self._log.warning("log_line_unparseable", source=source, error=str(exc))
                        continue
                    if event is not None:
                        partial.events.append(event)
        except StreamError as exc:
            self._log.warning("log_stream_error", source=source, error=str(exc))
            return HarvestResult(
                lines_read=partial.lines_read,
                parse_errors=partial.parse_errors,
                stream_errors={source: str(exc)},
            )
        return partial
