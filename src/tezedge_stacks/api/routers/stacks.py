"""
tezedge_stacks.api.routers.stacks

Read-side stack endpoints.

Responsibilities:
- List shipped stacks and serve their rendered compose YAML.
- Validate a stack against the server environment plus caller overrides.
- Report container state and endpoint probes for a running stack (role=stack_viewer).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse
from starlette.status import HTTP_502_BAD_GATEWAY

from tezedge_stacks.api.deps import deployment_service, stack_dep
from tezedge_stacks.api.schemas import (
    EnvOverrides,
    ProbeResultModel,
    ServiceStateModel,
    StackSummary,
    StatusResponse,
    ValidationResponse,
)
from tezedge_stacks.auth.deps import require_roles
from tezedge_stacks.auth.models import ROLE_VIEWER
from tezedge_stacks.compose.loader import dump_compose
from tezedge_stacks.runtime.compose_cli import ComposeCommandError
from tezedge_stacks.services.deployment_service import DeploymentService
from tezedge_stacks.stacks.registry import StackDefinition, list_stacks

router = APIRouter(prefix="/v1/stacks", tags=["stacks"])


@router.get("", response_model=list[StackSummary])
async def get_stacks() -> list[StackSummary]:
    return [
        StackSummary(
            name=s.name,
            description=s.description,
            compose_file=s.compose_file,
            services=list(s.build().services),
        )
        for s in list_stacks()
    ]


@router.get("/{name}/compose", response_class=PlainTextResponse)
async def get_compose(stack: StackDefinition = Depends(stack_dep)) -> PlainTextResponse:
    return PlainTextResponse(dump_compose(stack.build()), media_type="application/yaml")


@router.post("/{name}/validate", response_model=ValidationResponse)
async def validate_stack(
    body: EnvOverrides | None = None,
    stack: StackDefinition = Depends(stack_dep),
    svc: DeploymentService = Depends(deployment_service),
) -> ValidationResponse:
    report = await svc.validate(stack.name, actor="anonymous", env_overrides=body.env if body else None)
    return ValidationResponse.from_report(report)


@router.get(
    "/{name}/status",
    response_model=StatusResponse,
    dependencies=[Depends(require_roles(ROLE_VIEWER))],
)
async def stack_status(
    stack: StackDefinition = Depends(stack_dep),
    svc: DeploymentService = Depends(deployment_service),
) -> StatusResponse:
    try:
        status = await svc.status(stack.name)
    except ComposeCommandError as e:
        raise HTTPException(status_code=HTTP_502_BAD_GATEWAY, detail=str(e)) from e
    return StatusResponse(
        stack=status.stack,
        ready=status.ready,
        services=[ServiceStateModel.from_state(s) for s in status.services],
        probes=[ProbeResultModel.from_result(p) for p in status.probes],
    )
