"""
tezedge_stacks.probes.health

HTTP reachability probes for the endpoints a stack declares.

Responsibilities:
- Derive probes from the descriptor itself (URLs in environment values and
  `--rpc-port` flags of host-network services); nothing about the images'
  protocols is assumed beyond "answers HTTP".
- Run probes concurrently and poll until ready or a deadline passes.
"""

from __future__ import annotations

import asyncio
import re
import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import Any
from urllib.parse import urlsplit

import httpx

from tezedge_stacks.compose.models import ComposeFile
from tezedge_stacks.observability.logging import get_logger

log = get_logger(__name__)

_HTTP_URL = re.compile(r"\bhttps?://[^\s\"',\]}]+")
LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "0.0.0.0", "::1"})


@dataclass(frozen=True, slots=True)
class EndpointProbe:
    service: str
    name: str
    url: str


@dataclass(frozen=True, slots=True)
class ProbeResult:
    probe: EndpointProbe
    ok: bool
    status_code: int | None = None
    error: str | None = None
    elapsed_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def probes_for_stack(compose: ComposeFile, *, host: str = "localhost") -> list[EndpointProbe]:
    """
    `compose` must already be interpolated. Local addresses are rewritten onto
    `host` so a stack started on another machine can be probed remotely.
    """

    owners = {b.port: b.service for b in compose.host_bindings() if b.protocol == "tcp"}
    seen: set[tuple[str, int]] = set()
    probes: list[EndpointProbe] = []

    def _add(referrer: str, name: str, url: str) -> None:
        parts = urlsplit(url)
        try:
            port = parts.port or (443 if parts.scheme == "https" else 80)
        except ValueError:
            return
        target = host if (parts.hostname or "") in LOCAL_HOSTS else parts.hostname
        if not target or (target, port) in seen:
            return
        seen.add((target, port))
        rewritten = parts._replace(netloc=f"{target}:{port}").geturl()
        probes.append(EndpointProbe(service=owners.get(port, referrer), name=name, url=rewritten))

    for name, svc in compose.services.items():
        for key, value in svc.environment.items():
            for url in _HTTP_URL.findall(value or ""):
                _add(name, key, url)

    for name, svc in compose.services.items():
        if not svc.uses_host_network:
            continue
        for flag, _, port in svc.command_ports():
            if flag == "--rpc-port":
                _add(name, flag, f"http://{host}:{port}/")

    return probes


async def probe_one(http: httpx.AsyncClient, probe: EndpointProbe, *, timeout: float) -> ProbeResult:
    started = time.perf_counter()
    try:
        r = await http.get(probe.url, timeout=timeout)
    except httpx.HTTPError as e:
        return ProbeResult(
            probe=probe,
            ok=False,
            error=f"{type(e).__name__}: {e}",
            elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
        )
    return ProbeResult(
        probe=probe,
        # Any non-5xx answer means the process is up and serving HTTP.
        ok=r.status_code < 500,
        status_code=r.status_code,
        elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
    )


async def probe_all(
    http: httpx.AsyncClient, probes: list[EndpointProbe], *, timeout: float = 3.0
) -> list[ProbeResult]:
    return list(await asyncio.gather(*(probe_one(http, p, timeout=timeout) for p in probes)))


async def wait_until_ready(
    http: httpx.AsyncClient,
    probes: list[EndpointProbe],
    *,
    deadline_s: float,
    interval_s: float,
    timeout: float = 3.0,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> list[ProbeResult]:
    """Returns the results of the last round: all ok, or whatever failed at the deadline."""

    deadline = clock() + deadline_s
    attempt = 0
    while True:
        attempt += 1
        results = await probe_all(http, probes, timeout=timeout)
        pending = [r.probe.url for r in results if not r.ok]
        if not pending:
            log.info("stack_ready", attempts=attempt, probes=len(results))
            return results
        if clock() + interval_s > deadline:
            log.warning("stack_not_ready", attempts=attempt, pending=pending)
            return results
        log.info("stack_waiting", attempt=attempt, pending=pending)
        await sleep(interval_s)


# --- Module Notes -----------------------------------------------------------
# WebSocket URLs are skipped: the port is already covered by a process-level
# binding check during validation, and opening a WS session would be protocol-aware.
