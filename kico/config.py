"""Configuration loading from environment variables."""

from __future__ import annotations

import os
import re

from kico.errors import ConfigError
from kico.models.cluster import DEFAULT_FQDN_SUFFIX
from kico.models.config import (
    DiscoveryConfig,
    KicoConfig,
    LogConfig,
    PolicyConfig,
    ResolverConfig,
)

_DURATION_PART_RE = re.compile(r"([0-9]+(?:\.[0-9]+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KICO_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None) -> int:
    raw = _env(key, str(default))
    try:
        val = int(raw)
    except ValueError as exc:
        raise ConfigError(f"KICO_{key} must be an integer, got {raw!r}") from exc
    if min_val is not None:
        val = max(val, min_val)
    return val


def _env_list(key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = _env(key, ",".join(default))
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def parse_duration(value: str) -> float:
    """Parse a Go-style duration (``60s``, ``1m30s``, ``500ms``) into seconds."""
    text = value.strip()
    if text == "0":
        return 0.0
    pos = 0
    total = 0.0
    for match in _DURATION_PART_RE.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if not text or pos != len(text):
        raise ConfigError(f"Invalid duration: {value!r} (expected e.g. 60s, 1m30s, 500ms)")
    return total


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ConfigError(f"Invalid log level: {value}. Must be one of {sorted(valid)}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    if value.lower() not in ("console", "json"):
        raise ConfigError(f"Invalid log format: {value}. Must be 'console' or 'json'")
    return value.lower()


def _validate_fqdn_suffix(value: str) -> str:
    if not value.startswith(".") or not value.endswith("."):
        raise ConfigError(f"FQDN suffix must start and end with '.', got {value!r}")
    return value


def load_config() -> KicoConfig:
    """Load configuration from KICO_* environment variables."""
    return KicoConfig(
        discovery=DiscoveryConfig(
            concurrency=_env_int("CONCURRENCY", 4, min_val=1),
            wait_for_logs_seconds=parse_duration(_env("WAIT_FOR_LOGS", "60s")),
            tail_lines=_env_int("TAIL_LINES", 5, min_val=1),
        ),
        resolver=ResolverConfig(
            namespace=_env("RESOLVER_NAMESPACE", "kube-system"),
            label_selector=_env("RESOLVER_SELECTOR", "k8s-app=kube-dns"),
            fqdn_suffix=_validate_fqdn_suffix(_env("FQDN_SUFFIX", DEFAULT_FQDN_SUFFIX)),
        ),
        policy=PolicyConfig(
            noise_labels=_env_list("NOISE_LABELS", ("pod-template-hash",)),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            format=_validate_log_format(_env("LOG_FORMAT", "console")),
        ),
    )
