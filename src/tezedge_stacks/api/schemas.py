"""
tezedge_stacks.api.schemas

Request/response models shared by the stack and deployment routers.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from tezedge_stacks.db.models import DeploymentEvent
from tezedge_stacks.probes.health import ProbeResult
from tezedge_stacks.runtime.compose_cli import ServiceState
from tezedge_stacks.validation.report import Finding, ValidationReport


class StackSummary(BaseModel):
    name: str
    description: str
    compose_file: str
    services: list[str]


class EnvOverrides(BaseModel):
    # Interpolation variables layered over the server's environment and .env file.
    env: dict[str, str] = Field(default_factory=dict)


class ValidationResponse(BaseModel):
    stack: str | None
    ok: bool
    findings: list[Finding]

    @classmethod
    def from_report(cls, report: ValidationReport) -> ValidationResponse:
        return cls(stack=report.stack, ok=report.ok, findings=report.findings)


class ProbeResultModel(BaseModel):
    service: str
    name: str
    url: str
    ok: bool
    status_code: int | None = None
    error: str | None = None
    elapsed_ms: float = 0.0

    @classmethod
    def from_result(cls, r: ProbeResult) -> ProbeResultModel:
        return cls(
            service=r.probe.service,
            name=r.probe.name,
            url=r.probe.url,
            ok=r.ok,
            status_code=r.status_code,
            error=r.error,
            elapsed_ms=r.elapsed_ms,
        )


class ServiceStateModel(BaseModel):
    service: str
    container: str
    state: str
    health: str | None = None
    status: str | None = None

    @classmethod
    def from_state(cls, s: ServiceState) -> ServiceStateModel:
        return cls(service=s.service, container=s.container, state=s.state, health=s.health, status=s.status)


class StatusResponse(BaseModel):
    stack: str
    ready: bool
    services: list[ServiceStateModel]
    probes: list[ProbeResultModel]


class UpRequest(EnvOverrides):
    wait: bool = True


class UpResponse(BaseModel):
    stack: str
    compose_file: str
    ready: bool | None
    warnings: list[Finding]
    probes: list[ProbeResultModel]


class DownRequest(BaseModel):
    volumes: bool = False


class DeploymentEventModel(BaseModel):
    id: uuid.UUID
    stack: str
    actor: str
    event_type: str
    details: dict[str, Any]
    created_at: datetime

    @classmethod
    def from_event(cls, ev: DeploymentEvent) -> DeploymentEventModel:
        return cls(
            id=ev.id,
            stack=ev.stack,
            actor=ev.actor,
            event_type=ev.event_type,
            details=ev.details,
            created_at=ev.created_at,
        )
