"""
tezedge_stacks.services.deployment_service

Deployment lifecycle service (transaction + event log owner).

Responsibilities:
- Render a stack to disk and validate it against the resolved environment.
- Refuse to start stacks with validation errors.
- Start/stop stacks through `docker compose` and wait for declared endpoints.
- Record every action in the deployment event log.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from tezedge_stacks.compose.loader import interpolate_compose, resolve_environment, write_compose
from tezedge_stacks.compose.models import ComposeFile
from tezedge_stacks.db.models import DeploymentEvent, DeploymentEventType
from tezedge_stacks.db.repositories.events import DeploymentEventRepo
from tezedge_stacks.observability.logging import get_logger
from tezedge_stacks.probes.health import ProbeResult, probe_all, probes_for_stack, wait_until_ready
from tezedge_stacks.runtime.compose_cli import ComposeCommandError, ComposeRunner, ServiceState
from tezedge_stacks.settings import Settings
from tezedge_stacks.stacks.options import StackOptions
from tezedge_stacks.stacks.registry import StackDefinition, get_stack
from tezedge_stacks.validation.report import StackValidationError, ValidationReport
from tezedge_stacks.validation.validator import validate_compose

log = get_logger(__name__)

RunnerFactory = Callable[[StackDefinition, Path, Mapping[str, str]], ComposeRunner]


@dataclass(slots=True)
class UpOutcome:
    stack: str
    compose_file: str
    # None when startup was not waited for.
    ready: bool | None
    report: ValidationReport
    probes: list[ProbeResult] = field(default_factory=list)


@dataclass(slots=True)
class StackStatus:
    stack: str
    services: list[ServiceState]
    probes: list[ProbeResult]

    @property
    def ready(self) -> bool:
        return bool(self.services) and all(s.running for s in self.services) and all(p.ok for p in self.probes)


class DeploymentService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings,
        http: httpx.AsyncClient,
        options: StackOptions | None = None,
        runner_factory: RunnerFactory | None = None,
    ) -> None:
        self._session = session
        self._settings = settings
        self._http = http
        self._options = options
        self._runner_factory = runner_factory or self._default_runner
        self._events = DeploymentEventRepo(session)

    def _default_runner(self, stack: StackDefinition, path: Path, env: Mapping[str, str]) -> ComposeRunner:
        return ComposeRunner(
            compose_file=path,
            project=self.project_name(stack),
            docker_binary=self._settings.docker_binary,
            env=env,
            timeout=self._settings.compose_timeout_s,
        )

    def project_name(self, stack: StackDefinition) -> str:
        return f"{self._settings.compose_project_prefix}-{stack.name}"

    def compose_path(self, stack: StackDefinition, output_dir: str | Path | None = None) -> Path:
        # Mirror the repository layout so relative bind mounts resolve the same way.
        return Path(output_dir or self._settings.output_dir) / stack.compose_file

    def environment(self, overrides: Mapping[str, str] | None = None) -> dict[str, str]:
        return resolve_environment(env_file=self._settings.env_file, overrides=overrides)

    def build(self, stack: StackDefinition) -> ComposeFile:
        return stack.build(self._options)

    async def render(self, name: str, *, actor: str, output_dir: str | Path | None = None) -> Path:
        stack = get_stack(name)
        path = write_compose(self.build(stack), self.compose_path(stack, output_dir))
        await self._events.add(
            stack=stack.name,
            actor=actor,
            event_type=DeploymentEventType.rendered,
            details={"path": str(path)},
        )
        await self._session.commit()
        return path

    async def validate(
        self, name: str, *, actor: str, env_overrides: Mapping[str, str] | None = None
    ) -> ValidationReport:
        stack = get_stack(name)
        report = self._validate(stack, self.environment(env_overrides))
        await self._events.add(
            stack=stack.name,
            actor=actor,
            event_type=DeploymentEventType.validated,
            details={**report.summary(), "codes": sorted(report.codes())},
        )
        await self._session.commit()
        return report

    def _validate(self, stack: StackDefinition, env: Mapping[str, str]) -> ValidationReport:
        return validate_compose(
            self.build(stack),
            env,
            base_dir=self.compose_path(stack).parent,
            stack=stack.name,
        )

    async def up(
        self,
        name: str,
        *,
        actor: str,
        env_overrides: Mapping[str, str] | None = None,
        wait: bool = True,
    ) -> UpOutcome:
        stack = get_stack(name)
        env = self.environment(env_overrides)

        report = self._validate(stack, env)
        if not report.ok:
            await self._events.add(
                stack=stack.name,
                actor=actor,
                event_type=DeploymentEventType.up_rejected,
                details={"errors": [f.model_dump() for f in report.errors]},
            )
            await self._session.commit()
            raise StackValidationError(report)

        compose = self.build(stack)
        path = write_compose(compose, self.compose_path(stack))
        await self._events.add(
            stack=stack.name,
            actor=actor,
            event_type=DeploymentEventType.up_started,
            details={"path": str(path), "warnings": len(report.warnings)},
        )
        await self._session.commit()

        runner = self._runner_factory(stack, path, env)
        try:
            await runner.up()
        except ComposeCommandError as e:
            await self._events.add(
                stack=stack.name,
                actor=actor,
                event_type=DeploymentEventType.up_failed,
                details={"error": str(e), "returncode": e.returncode},
            )
            await self._session.commit()
            raise

        if not wait:
            # Nothing was checked, so no readiness verdict is recorded.
            log.info("stack_up", stack=stack.name, ready=None, probes=0)
            return UpOutcome(stack=stack.name, compose_file=str(path), ready=None, report=report)

        probes = probes_for_stack(interpolate_compose(compose, env), host=self._settings.probe_host)
        results = await wait_until_ready(
            self._http,
            probes,
            deadline_s=self._settings.startup_deadline_s,
            interval_s=self._settings.probe_interval_s,
            timeout=self._settings.probe_timeout_s,
        )
        ready = all(r.ok for r in results)

        await self._events.add(
            stack=stack.name,
            actor=actor,
            event_type=DeploymentEventType.up_ready if ready else DeploymentEventType.up_degraded,
            details={"probes": [_probe_summary(r) for r in results]},
        )
        await self._session.commit()
        log.info("stack_up", stack=stack.name, ready=ready, probes=len(results))
        return UpOutcome(
            stack=stack.name, compose_file=str(path), ready=ready, report=report, probes=results
        )

    async def down(self, name: str, *, actor: str, remove_volumes: bool = False) -> None:
        stack = get_stack(name)
        runner = self._runner_factory(stack, self.compose_path(stack), self.environment())
        try:
            await runner.down(volumes=remove_volumes)
        except ComposeCommandError as e:
            await self._events.add(
                stack=stack.name,
                actor=actor,
                event_type=DeploymentEventType.down_failed,
                details={"error": str(e), "returncode": e.returncode},
            )
            await self._session.commit()
            raise
        await self._events.add(
            stack=stack.name,
            actor=actor,
            event_type=DeploymentEventType.down,
            details={"volumes_removed": remove_volumes},
        )
        await self._session.commit()
        log.info("stack_down", stack=stack.name, volumes_removed=remove_volumes)

    async def status(self, name: str) -> StackStatus:
        stack = get_stack(name)
        env = self.environment()
        runner = self._runner_factory(stack, self.compose_path(stack), env)
        services = await runner.ps()
        probes = probes_for_stack(interpolate_compose(self.build(stack), env), host=self._settings.probe_host)
        results = await probe_all(self._http, probes, timeout=self._settings.probe_timeout_s)
        return StackStatus(stack=stack.name, services=services, probes=results)

    async def events(self, name: str, *, limit: int = 100) -> list[DeploymentEvent]:
        stack = get_stack(name)
        return await self._events.list_for_stack(stack.name, limit=limit)


def _probe_summary(result: ProbeResult) -> dict[str, object]:
    return {
        "service": result.probe.service,
        "url": result.probe.url,
        "ok": result.ok,
        "status_code": result.status_code,
        "error": result.error,
    }


# --- Module Notes -----------------------------------------------------------
# Each lifecycle step commits its own event so a crash mid-`up` still leaves
# UP_STARTED in the log.
