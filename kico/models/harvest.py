"""Outcomes of the resolver log wait and harvest phases."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from kico.models.connections import ConnectionEvent


class WaitOutcome(StrEnum):
    """Terminal state of one resolver pod's log wait."""

    FOUND = "found"
    TIMED_OUT = "timed_out"
    STREAM_ERROR = "stream_error"


@dataclass(frozen=True)
class SourceWaitResult:
    """How the wait ended for a single resolver pod."""

    source: str
    outcome: WaitOutcome
    elapsed_seconds: float = 0.0
    line: str | None = None  # the relevant line, when found
    error: str | None = None


@dataclass
class WaitReport:
    """Per-source outcomes of the wait phase, keyed by resolver pod name."""

    results: dict[str, SourceWaitResult] = field(default_factory=dict)

    def add(self, result: SourceWaitResult) -> None:
        self.results[result.source] = result

    def _with(self, outcome: WaitOutcome) -> list[SourceWaitResult]:
        return [r for r in self.results.values() if r.outcome == outcome]

    @property
    def found(self) -> list[SourceWaitResult]:
        return self._with(WaitOutcome.FOUND)

    @property
    def timed_out(self) -> list[SourceWaitResult]:
        return self._with(WaitOutcome.TIMED_OUT)

    @property
    def errored(self) -> list[SourceWaitResult]:
        return self._with(WaitOutcome.STREAM_ERROR)

    @property
    def all_found(self) -> bool:
        return bool(self.results) and len(self.found) == len(self.results)

    def warnings(self) -> list[str]:
        return [r.error for r in self.results.values() if r.outcome != WaitOutcome.FOUND and r.error]


@dataclass
class HarvestResult:
    """Connection events read from every resolver pod, in pod then line order."""

    events: list[ConnectionEvent] = field(default_factory=list)
    lines_read: int = 0
    parse_errors: int = 0
    stream_errors: dict[str, str] = field(default_factory=dict)

    def warnings(self) -> list[str]:
        messages = list(self.stream_errors.values())
        if self.parse_errors:
            messages.append(f"{self.parse_errors} resolver log line(s) could not be parsed and were skipped")
        return messages
