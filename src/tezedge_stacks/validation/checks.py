"""
tezedge_stacks.validation.checks

Individual validity checks over an interpolated `ComposeFile`.

Responsibilities:
- Detect host port collisions (published ports and host-network command ports).
- Verify named volume references and read/write sharing between sidecars.
- Verify the node -> debugger syslog wiring and URLs embedded in environment values.
- Flag unpinned images and out-of-range ports.

Each check is a plain function `(compose, ctx) -> list[Finding]`; `CHECKS` is the
ordered list the validator runs.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from itertools import combinations
from pathlib import Path
from urllib.parse import urlsplit

from tezedge_stacks.compose.models import ComposeFile
from tezedge_stacks.validation.report import Finding

_URL = re.compile(r"\b(?:https?|wss?)://[^\s\"',\]}]+")


@dataclass(frozen=True, slots=True)
class CheckContext:
    base_dir: Path | None = None


Check = Callable[[ComposeFile, CheckContext], list[Finding]]


def _valid_port(port: int | None) -> bool:
    return port is None or 1 <= port <= 65535


def check_port_ranges(compose: ComposeFile, ctx: CheckContext) -> list[Finding]:
    findings: list[Finding] = []
    for name, svc in compose.services.items():
        for p in svc.ports:
            if not (_valid_port(p.host_port) and _valid_port(p.container_port)):
                findings.append(
                    Finding(
                        code="invalid-port",
                        severity="error",
                        service=name,
                        message=f"port mapping {p.to_short()} is outside 1..65535",
                    )
                )
        for flag, _, port in svc.command_ports():
            if not _valid_port(port):
                findings.append(
                    Finding(
                        code="invalid-port",
                        severity="error",
                        service=name,
                        message=f"{flag} sets port {port}, outside 1..65535",
                    )
                )
    return findings


def check_port_collisions(compose: ComposeFile, ctx: CheckContext) -> list[Finding]:
    findings: list[Finding] = []
    for a, b in combinations(compose.host_bindings(), 2):
        if not a.overlaps(b):
            continue
        findings.append(
            Finding(
                code="port-collision",
                severity="error",
                service=b.service,
                message=(
                    f"host port {b.port}/{b.protocol} is bound by both "
                    f"{a.service} ({a.source}) and {b.service} ({b.source})"
                ),
            )
        )
    return findings


def check_host_network_ports(compose: ComposeFile, ctx: CheckContext) -> list[Finding]:
    return [
        Finding(
            code="host-network-ports",
            severity="error",
            service=name,
            message="network_mode: host cannot be combined with published ports",
        )
        for name, svc in compose.services.items()
        if svc.uses_host_network and svc.ports
    ]


def check_volume_references(compose: ComposeFile, ctx: CheckContext) -> list[Finding]:
    findings: list[Finding] = []
    used: set[str] = set()
    for name, svc in compose.services.items():
        for mount in svc.volumes:
            if mount.kind != "named":
                continue
            used.add(mount.source)
            if mount.source not in compose.volumes:
                findings.append(
                    Finding(
                        code="undeclared-volume",
                        severity="error",
                        service=name,
                        message=f"volume {mount.source!r} mounted at {mount.target} is not declared",
                    )
                )
    for volume in compose.volumes:
        if volume not in used:
            findings.append(
                Finding(
                    code="unused-volume",
                    severity="warning",
                    message=f"volume {volume!r} is declared but never mounted",
                )
            )
    return findings


def check_readonly_volumes(compose: ComposeFile, ctx: CheckContext) -> list[Finding]:
    """A named volume that every service mounts read-only never receives data."""

    modes: dict[str, list[bool]] = {}
    for svc in compose.services.values():
        for mount in svc.volumes:
            if mount.kind == "named" and mount.source in compose.volumes:
                modes.setdefault(mount.source, []).append(mount.read_only)
    return [
        Finding(
            code="readonly-only-volume",
            severity="warning",
            message=f"volume {volume!r} is only mounted read-only; no service writes to it",
        )
        for volume, ro in modes.items()
        if all(ro)
    ]


def check_bind_sources(compose: ComposeFile, ctx: CheckContext) -> list[Finding]:
    if ctx.base_dir is None:
        return []
    findings: list[Finding] = []
    for name, svc in compose.services.items():
        for mount in svc.volumes:
            if mount.kind != "bind" or not mount.source.startswith("."):
                continue
            if not (ctx.base_dir / mount.source).exists():
                findings.append(
                    Finding(
                        code="missing-bind-source",
                        severity="warning",
                        service=name,
                        message=f"bind source {mount.source} does not exist under {ctx.base_dir}",
                    )
                )
    return findings


def check_syslog_wiring(compose: ComposeFile, ctx: CheckContext) -> list[Finding]:
    findings: list[Finding] = []
    bindings = compose.host_bindings()
    for name, svc in compose.services.items():
        if svc.logging is None or svc.logging.driver != "syslog":
            continue
        address = svc.logging.options.get("syslog-address")
        if not address:
            # Falls back to the host's syslog daemon.
            continue
        parts = urlsplit(address)
        if parts.scheme == "unix" or parts.scheme == "unixgram":
            continue
        try:
            port = parts.port
        except ValueError:
            port = None
        if port is None:
            findings.append(
                Finding(
                    code="syslog-port-mismatch",
                    severity="error",
                    service=name,
                    message=f"syslog-address {address!r} has no valid port",
                )
            )
            continue
        protocol = "udp" if parts.scheme == "udp" else "tcp"
        if not any(b.port == port and b.protocol == protocol and b.service != name for b in bindings):
            findings.append(
                Finding(
                    code="syslog-port-mismatch",
                    severity="error",
                    service=name,
                    message=f"logs are sent to {port}/{protocol} but no service in the stack binds it",
                )
            )
    return findings


def check_endpoint_references(compose: ComposeFile, ctx: CheckContext) -> list[Finding]:
    bound = {b.port for b in compose.host_bindings() if b.protocol == "tcp"}
    findings: list[Finding] = []
    for name, svc in compose.services.items():
        for key, value in svc.environment.items():
            for url in _URL.findall(value or ""):
                try:
                    port = urlsplit(url).port
                except ValueError:
                    port = None
                if port is None or port in bound:
                    continue
                findings.append(
                    Finding(
                        code="unreachable-endpoint",
                        severity="warning",
                        service=name,
                        message=f"{key} references {url} but no service in the stack binds port {port}",
                    )
                )
    return findings


def check_images(compose: ComposeFile, ctx: CheckContext) -> list[Finding]:
    findings: list[Finding] = []
    for name, svc in compose.services.items():
        if not svc.image:
            findings.append(
                Finding(
                    code="missing-image",
                    severity="error",
                    service=name,
                    message="service has no image; stacks only pull pre-built images",
                )
            )
            continue
        if "@" in svc.image:
            continue
        last = svc.image.rsplit("/", 1)[-1]
        tag = last.partition(":")[2]
        if not tag or tag == "latest":
            findings.append(
                Finding(
                    code="unpinned-image",
                    severity="warning",
                    service=name,
                    message=f"image {svc.image!r} is not pinned to a release tag",
                )
            )
    return findings


CHECKS: list[Check] = [
    check_port_ranges,
    check_port_collisions,
    check_host_network_ports,
    check_volume_references,
    check_readonly_volumes,
    check_bind_sources,
    check_syslog_wiring,
    check_endpoint_references,
    check_images,
]


# --- Module Notes -----------------------------------------------------------
# Checks never raise for descriptor content; anything wrong becomes a Finding so a
# single run reports every problem at once.
