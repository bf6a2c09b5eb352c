"""Service registry — loads services.json and provides typed models.

The file may be JSON or YAML (JSON parses as YAML), e.g.::

    {
      "interval_seconds": 60,
      "timeout_ms": 5000,
      "concurrency": 8,
      "services": [
        {"name": "api", "url": "https://api.example.com/health", "env": "production"}
      ]
    }

Anything that fails validation raises ConfigError; the monitor never starts
with a partial service list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from statusboard.config import ConfigError

logger = logging.getLogger(__name__)

KEY_SEPARATOR = ":"


# ── Data models ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Service:
    """A single monitored endpoint."""

    name: str
    url: str
    env: str = ""

    @property
    def key(self) -> str:
        """State key; same name in another environment is a different service."""
        return f"{self.name}{KEY_SEPARATOR}{self.env}"

    @property
    def display_name(self) -> str:
        return f"{self.name} ({self.env})"


@dataclass
class MonitorConfig:
    """Polling parameters plus the ordered service list."""

    interval_seconds: int
    timeout_ms: int
    concurrency: int
    services: list[Service] = field(default_factory=list)


def environments_of(services: list[Service]) -> list[str]:
    """Environments in order of first appearance."""
    seen: list[str] = []
    for s in services:
        if s.env not in seen:
            seen.append(s.env)
    return seen


# ── Loading ──────────────────────────────────────────────────────────────────


def load_config(path: Path | str) -> MonitorConfig:
    """Read and validate the services file."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"read file {path}: {e}") from e

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"parse {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: top level must be a mapping")

    cfg = parse_config(raw)
    logger.info(
        "Loaded %d services from %s (interval=%ds, timeout=%dms, concurrency=%d)",
        len(cfg.services), path, cfg.interval_seconds, cfg.timeout_ms, cfg.concurrency,
    )
    return cfg


def parse_config(raw: dict[str, Any]) -> MonitorConfig:
    interval = _positive_int(raw, "interval_seconds")
    timeout_ms = _positive_int(raw, "timeout_ms")
    concurrency = _positive_int(raw, "concurrency")

    raw_services = raw.get("services") or []
    if not isinstance(raw_services, list):
        raise ConfigError("services must be a list")
    if not raw_services:
        raise ConfigError("no services defined")

    services = [_parse_service(idx, entry) for idx, entry in enumerate(raw_services)]

    keys: set[str] = set()
    for s in services:
        if s.key in keys:
            logger.warning("Duplicate service %r; later entry shares its state", s.display_name)
        keys.add(s.key)

    return MonitorConfig(
        interval_seconds=interval,
        timeout_ms=timeout_ms,
        concurrency=concurrency,
        services=services,
    )


def _positive_int(raw: dict[str, Any], name: str) -> int:
    value = raw.get(name)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name} must be an integer greater than 0")
    if value <= 0:
        raise ConfigError(f"{name} must be greater than 0")
    return value


def _parse_service(idx: int, entry: Any) -> Service:
    if not isinstance(entry, dict):
        raise ConfigError(f"services[{idx}] must be a mapping, got {type(entry).__name__}")

    name = str(entry.get("name") or "").strip()
    if not name:
        raise ConfigError(f"services[{idx}].name is required")

    return Service(
        name=name,
        url=str(entry.get("url") or "").strip(),
        env=str(entry.get("env") or "").strip(),
    )
