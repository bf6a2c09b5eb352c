"""Probe engine — one HTTP GET per service, fanned out with a bounded semaphore.

Probe-level problems never raise: a bad URL, a transport error, a timeout or
a non-2xx response all come back as a down ProbeOutcome with an error tag.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

from statusboard.services.registry import Service

logger = logging.getLogger(__name__)

ERROR_INVALID_URL = "invalid_url"
ERROR_REQUEST_FAILED = "request_failed"


# ── Models ───────────────────────────────────────────────────────────────────


@dataclass
class ProbeOutcome:
    """Result of a single probe. Produced fresh every cycle."""

    service: Service
    up: bool
    latency_ms: float
    status_code: int | None = None
    error: str = ""
    message: str = ""
    timestamp: str = ""

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()


def make_client(timeout_ms: int, concurrency: int) -> httpx.AsyncClient:
    """Shared client for one monitor; pool sized to the concurrency limit."""
    return httpx.AsyncClient(
        timeout=timeout_ms / 1000,
        follow_redirects=True,
        limits=httpx.Limits(
            max_connections=max(concurrency, 1),
            max_keepalive_connections=max(concurrency, 1),
            keepalive_expiry=90,
        ),
    )


# ── Prober ───────────────────────────────────────────────────────────────────


def _parse_target(raw: str) -> httpx.URL | None:
    try:
        url = httpx.URL(raw)
    except httpx.InvalidURL:
        return None
    if url.scheme not in ("http", "https") or not url.raw_host:
        return None
    try:
        # Decoding an xn-- label can fail even though the URL parsed.
        if not url.host:
            return None
    except UnicodeError:
        return None
    return url


async def _fetch_status(client: httpx.AsyncClient, url: httpx.URL) -> int:
    # Only the status line matters; the body is never read.
    async with client.stream("GET", url) as resp:
        return resp.status_code


async def run_http_probe(
    client: httpx.AsyncClient,
    service: Service,
    timeout_ms: int | None = None,
) -> ProbeOutcome:
    """GET the service URL once; up iff the response status is 2xx.

    ``timeout_ms`` bounds the whole attempt, not each socket read, so a
    server that trickles its headers still fails on time.
    """
    url = _parse_target(service.url)
    if url is None:
        return ProbeOutcome(
            service=service, up=False, latency_ms=0.0,
            error=ERROR_INVALID_URL, message=f"Invalid URL: {service.url!r}",
        )

    deadline = timeout_ms / 1000 if timeout_ms else None
    t0 = time.perf_counter()
    try:
        status_code = await asyncio.wait_for(_fetch_status(client, url), timeout=deadline)
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        latency = (time.perf_counter() - t0) * 1000
        return ProbeOutcome(
            service=service, up=False, latency_ms=round(latency, 1),
            error=ERROR_REQUEST_FAILED, message=f"Timed out: {type(e).__name__}",
        )
    except httpx.HTTPError as e:
        latency = (time.perf_counter() - t0) * 1000
        return ProbeOutcome(
            service=service, up=False, latency_ms=round(latency, 1),
            error=ERROR_REQUEST_FAILED, message=f"Request failed: {type(e).__name__}: {e}",
        )
    except Exception as e:
        latency = (time.perf_counter() - t0) * 1000
        logger.warning("Probe for %s raised %s: %s", service.display_name, type(e).__name__, e)
        return ProbeOutcome(
            service=service, up=False, latency_ms=round(latency, 1),
            error=ERROR_REQUEST_FAILED, message=f"Probe error: {type(e).__name__}: {e}",
        )

    latency = (time.perf_counter() - t0) * 1000
    up = 200 <= status_code < 300
    return ProbeOutcome(
        service=service, up=up, latency_ms=round(latency, 1),
        status_code=status_code,
        error="" if up else f"http_{status_code}",
        message=f"HTTP {status_code}",
    )


# ── Fan-out ──────────────────────────────────────────────────────────────────


async def check_all(
    client: httpx.AsyncClient,
    services: list[Service],
    concurrency: int,
    timeout_ms: int | None = None,
) -> list[ProbeOutcome]:
    """Probe every service with at most ``concurrency`` probes in flight.

    Results are positional: ``result[i]`` belongs to ``services[i]`` no matter
    which probe finished first. Returns only once every probe has finished.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")

    logger.debug("Probing %d services (concurrency=%d)", len(services), concurrency)
    slots = asyncio.Semaphore(concurrency)

    async def _bounded(svc: Service) -> ProbeOutcome:
        async with slots:
            return await run_http_probe(client, svc, timeout_ms)

    results = await asyncio.gather(*(_bounded(svc) for svc in services))
    return list(results)
