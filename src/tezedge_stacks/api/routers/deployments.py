"""
tezedge_stacks.api.routers.deployments

Lifecycle endpoints (role=stack_operator) and the deployment event log
(role=stack_viewer).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from starlette.status import HTTP_422_UNPROCESSABLE_ENTITY, HTTP_502_BAD_GATEWAY

from tezedge_stacks.api.deps import deployment_service, stack_dep
from tezedge_stacks.api.schemas import (
    DeploymentEventModel,
    DownRequest,
    ProbeResultModel,
    UpRequest,
    UpResponse,
    ValidationResponse,
)
from tezedge_stacks.auth.deps import require_roles
from tezedge_stacks.auth.models import ROLE_OPERATOR, ROLE_VIEWER, Principal
from tezedge_stacks.runtime.compose_cli import ComposeCommandError
from tezedge_stacks.services.deployment_service import DeploymentService
from tezedge_stacks.stacks.registry import StackDefinition
from tezedge_stacks.validation.report import StackValidationError

router = APIRouter(prefix="/v1/deployments", tags=["deployments"])


@router.post("/{name}/up", response_model=UpResponse)
async def up(
    body: UpRequest | None = None,
    stack: StackDefinition = Depends(stack_dep),
    principal: Principal = Depends(require_roles(ROLE_OPERATOR)),
    svc: DeploymentService = Depends(deployment_service),
) -> UpResponse:
    body = body or UpRequest()
    try:
        outcome = await svc.up(stack.name, actor=principal.subject, env_overrides=body.env, wait=body.wait)
    except StackValidationError as e:
        raise HTTPException(
            status_code=HTTP_422_UNPROCESSABLE_ENTITY,
            detail=ValidationResponse.from_report(e.report).model_dump(),
        ) from e
    except ComposeCommandError as e:
        raise HTTPException(status_code=HTTP_502_BAD_GATEWAY, detail=str(e)) from e

    return UpResponse(
        stack=outcome.stack,
        compose_file=outcome.compose_file,
        ready=outcome.ready,
        warnings=outcome.report.warnings,
        probes=[ProbeResultModel.from_result(p) for p in outcome.probes],
    )


@router.post("/{name}/down")
async def down(
    body: DownRequest | None = None,
    stack: StackDefinition = Depends(stack_dep),
    principal: Principal = Depends(require_roles(ROLE_OPERATOR)),
    svc: DeploymentService = Depends(deployment_service),
) -> dict[str, str]:
    body = body or DownRequest()
    try:
        await svc.down(stack.name, actor=principal.subject, remove_volumes=body.volumes)
    except ComposeCommandError as e:
        raise HTTPException(status_code=HTTP_502_BAD_GATEWAY, detail=str(e)) from e
    return {"stack": stack.name, "status": "down"}


@router.get(
    "/{name}/events",
    response_model=list[DeploymentEventModel],
    dependencies=[Depends(require_roles(ROLE_VIEWER))],
)
async def events(
    stack: StackDefinition = Depends(stack_dep),
    limit: int = Query(default=100, ge=1, le=1000),
    svc: DeploymentService = Depends(deployment_service),
) -> list[DeploymentEventModel]:
    return [DeploymentEventModel.from_event(ev) for ev in await svc.events(stack.name, limit=limit)]
