"""LogWaiter: wait until every resolver pod has logged a relevant line.

Each resolver pod gets its own task that tails the last few lines of its log
and follows it until a relevant line shows up, the wait deadline passes, or
the stream fails. Tasks never cancel each other and there are no retries;
the phase ends once every pod has reached one of those outcomes, and all of
them are kept in the WaitReport.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence

import structlog

from kico.cluster.provider import ClusterProvider
from kico.errors import LogWaitTimeoutError, StreamError
from kico.harvest.grammar import FQDN_SUFFIX, is_relevant
from kico.models.harvest import SourceWaitResult, WaitOutcome, WaitReport
from kico.observability.logging import get_logger


class LogWaiter:
    """Bounded, concurrent wait for relevant resolver log lines.

    Args:
        provider:      cluster provider used to open follow streams.
        namespace:     namespace of the resolver pods.
        wait_seconds:  per-run deadline applied to each pod independently.
        tail_lines:    how many existing lines to replay before following.
        fqdn_suffix:   cluster FQDN suffix passed to the relevance check.
        logger:        optional bound logger.
    """

    def __init__(
        self,
        provider: ClusterProvider,
        *,
        namespace: str,
        wait_seconds: float,
        tail_lines: int = 5,
        fqdn_suffix: str = FQDN_SUFFIX,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._provider = provider
        self._namespace = namespace
        self._wait_seconds = wait_seconds
        self._tail_lines = tail_lines
        self._fqdn_suffix = fqdn_suffix
        self._log = logger or get_logger("log_waiter")

    async def wait(self, sources: Sequence[str]) -> WaitReport:
        """Wait on every source concurrently and report each one's outcome."""
        results = await asyncio.gather(*(self._wait_one(source) for source in sources))
        report = WaitReport()
        for result in results:
            report.add(result)
        self._log.info(
            "log_wait_finished",
            sources=len(sources),
            found=len(report.found),
            timed_out=len(report.timed_out),
            stream_errors=len(report.errored),
        )
        return report

    async def _wait_one(self, source: str) -> SourceWaitResult:
        log = self._log.bind(source=source)
        started = time.monotonic()
        log.debug("looking_for_relevant_logs", wait_seconds=self._wait_seconds)
        try:
            line = await asyncio.wait_for(self._first_relevant_line(source), timeout=self._wait_seconds)
        except TimeoutError:
            timeout = LogWaitTimeoutError(source, self._wait_seconds)
            log.warning("log_wait_timed_out", error=str(timeout))
            return SourceWaitResult(
                source=source,
                outcome=WaitOutcome.TIMED_OUT,
                elapsed_seconds=time.monotonic() - started,
                error=str(timeout),
            )
        except StreamError as exc:
            log.warning("log_stream_error", error=str(exc))
            return SourceWaitResult(
                source=source,
                outcome=WaitOutcome.STREAM_ERROR,
                elapsed_seconds=time.monotonic() - started,
                error=str(exc),
            )

        log.debug("relevant_log_found", line=line)
        return SourceWaitResult(
            source=source,
            outcome=WaitOutcome.FOUND,
            elapsed_seconds=time.monotonic() - started,
            line=line,
        )

    async def _first_relevant_line(self, source: str) -> str:
        async with self._provider.stream_logs(
            self._namespace,
            source,
            follow=True,
            tail_lines=self._tail_lines,
        ) as lines:
            async for line in lines:
                if is_relevant(line, self._fqdn_suffix):
                    return line
        raise StreamError(source, "log stream closed before a relevant line appeared")
