"""Exception hierarchy for kico.

Setup-phase errors (ConfigError, ResourceLookupError, ClusterAPIError) are
fatal and abort a run before any logs are read. Per-source and per-line
errors (LogWaitTimeoutError, StreamError, ParseError) are recorded, logged
as warnings, and never stop the rest of the run.
"""

from __future__ import annotations


class KicoError(Exception):
    """Base class for every error raised by kico."""


class ConfigError(KicoError):
    """Raised when configuration or the cluster session cannot be established."""


class ResourceLookupError(KicoError):
    """Raised when a required cluster object does not exist."""

    def __init__(self, kind: str, namespace: str, name: str, detail: str = "") -> None:
        where = f"{namespace}/{name}" if namespace else name
        message = f"{kind} '{where}' not found"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.kind = kind
        self.namespace = namespace
        self.name = name


class ClusterAPIError(KicoError):
    """Raised when a Kubernetes API call fails for a reason other than 404."""

    def __init__(self, operation: str, cause: Exception) -> None:
        super().__init__(f"Kubernetes API call '{operation}' failed: {cause}")
        self.operation = operation
        self.cause = cause


class LogWaitTimeoutError(KicoError):
    """No relevant resolver log line appeared within the wait deadline."""

    def __init__(self, source: str, waited_seconds: float) -> None:
        super().__init__(f"{source}: waited {waited_seconds:g}s for the relevant log to appear but it didn't")
        self.source = source
        self.waited_seconds = waited_seconds


class StreamError(KicoError):
    """A resolver log stream could not be opened or read."""

    def __init__(self, source: str, cause: Exception | str) -> None:
        super().__init__(f"{source}: log stream failed: {cause}")
        self.source = source
        self.cause = cause


class ParseError(KicoError):
    """A relevant resolver log line does not follow the expected field layout."""

    def __init__(self, reason: str, line: str) -> None:
        super().__init__(f"{reason} in the log '{line}'")
        self.reason = reason
        self.line = line
