"""
tests.test_deployment_service

Lifecycle orchestration with a fake compose runner, mock probes and a temp event log.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest
from sqlalchemy import update

from tezedge_stacks.compose.loader import load_compose
from tezedge_stacks.db.models import DeploymentEvent, DeploymentEventType
from tezedge_stacks.runtime.compose_cli import ComposeCommandError, ServiceState
from tezedge_stacks.services.deployment_service import DeploymentService
from tezedge_stacks.stacks.options import StackOptions
from tezedge_stacks.stacks.registry import UnknownStackError, get_stack
from tezedge_stacks.validation.report import StackValidationError


def _service(session, settings, http, runner_factory, **kw) -> DeploymentService:
    return DeploymentService(session=session, settings=settings, http=http, runner_factory=runner_factory, **kw)


async def _event_types(svc: DeploymentService, name: str) -> list[str]:
    return [e.event_type for e in await svc.events(name)]


@pytest.mark.asyncio
async def test_render_writes_repo_layout(session, settings, make_http, runner_factory) -> None:
    async with make_http() as http:
        svc = _service(session, settings, http, runner_factory)
        path = await svc.render("sandbox", actor="alice")

    assert path == Path(settings.output_dir) / "docker" / "docker-compose.sandbox.yml"
    assert load_compose(path, interpolate=False).to_compose() == get_stack("sandbox").build().to_compose()
    [event] = await svc.events("sandbox")
    assert event.event_type == DeploymentEventType.rendered
    assert event.actor == "alice"
    assert event.details == {"path": str(path)}


@pytest.mark.asyncio
async def test_render_to_explicit_dir(session, settings, make_http, runner_factory, tmp_path) -> None:
    async with make_http() as http:
        path = await _service(session, settings, http, runner_factory).render(
            "debug", actor="alice", output_dir=tmp_path / "elsewhere"
        )
    assert path == tmp_path / "elsewhere" / "docker-compose.debug.yml"
    assert path.is_file()


@pytest.mark.asyncio
async def test_validate_records_summary(session, settings, make_http, runner_factory) -> None:
    async with make_http() as http:
        svc = _service(session, settings, http, runner_factory)
        report = await svc.validate("debug", actor="alice", env_overrides={"TEZOS_NETWORK": "ghostnet"})

    # The debugger config bind mount is not rendered alongside the stack.
    assert report.ok
    assert report.codes() == {"missing-bind-source"}
    [event] = await svc.events("debug")
    assert event.event_type == DeploymentEventType.validated
    assert event.details["ok"] is True
    assert event.details["codes"] == ["missing-bind-source"]


@pytest.mark.asyncio
async def test_up_ready(session, settings, make_http, runner_factory, fake_runner) -> None:
    async with make_http() as http:
        svc = _service(session, settings, http, runner_factory)
        outcome = await svc.up("debug", actor="op", env_overrides={"TEZOS_NETWORK": "ghostnet"})

    assert outcome.ready
    assert [p.probe.service for p in outcome.probes] == ["tezedge-node", "tezedge-debugger", "monitoring"]
    assert all(p.probe.url.startswith("http://node.test:") for p in outcome.probes)
    assert fake_runner.calls == [("up", {"wait": False})]
    assert fake_runner.compose_file == Path(outcome.compose_file)
    assert fake_runner.env["TEZOS_NETWORK"] == "ghostnet"
    assert Path(outcome.compose_file).is_file()
    assert await _event_types(svc, "debug") == ["UP_READY", "UP_STARTED"]


@pytest.mark.asyncio
async def test_up_degraded_when_probes_fail(session, settings, make_http, runner_factory) -> None:
    async with make_http({3030: 503}) as http:
        svc = _service(session, settings, http, runner_factory)
        outcome = await svc.up("sandbox", actor="op")

    assert not outcome.ready
    assert [(p.probe.url, p.ok) for p in outcome.probes] == [
        ("http://node.test:3030", False),
        ("http://node.test:18732", True),
    ]
    events = await svc.events("sandbox")
    degraded = next(e for e in events if e.event_type == DeploymentEventType.up_degraded)
    assert degraded.details["probes"][0]["status_code"] == 503


@pytest.mark.asyncio
async def test_up_without_wait_gives_no_verdict(session, settings, make_http, runner_factory) -> None:
    async with make_http(default=500) as http:
        svc = _service(session, settings, http, runner_factory)
        outcome = await svc.up("sandbox", actor="op", wait=False)

    # Every endpoint would fail, but nothing was checked so no verdict is given.
    assert outcome.ready is None
    assert outcome.probes == []
    assert Path(outcome.compose_file).is_file()
    assert await _event_types(svc, "sandbox") == ["UP_STARTED"]


@pytest.mark.asyncio
async def test_up_rejected_on_validation_errors(session, settings, make_http, runner_factory, fake_runner) -> None:
    colliding = StackOptions(explorer_alt_port=4444)
    async with make_http() as http:
        svc = _service(session, settings, http, runner_factory, options=colliding)
        with pytest.raises(StackValidationError) as exc:
            await svc.up("debug", actor="op")

    assert "port-collision" in exc.value.report.codes()
    assert fake_runner.calls == []
    assert not (Path(settings.output_dir) / "docker-compose.debug.yml").exists()
    [event] = await svc.events("debug")
    assert event.event_type == DeploymentEventType.up_rejected
    assert event.details["errors"][0]["code"] == "port-collision"


@pytest.mark.asyncio
async def test_up_compose_failure(session, settings, make_http, runner_factory, fake_runner) -> None:
    fake_runner.fail_up = True
    async with make_http() as http:
        svc = _service(session, settings, http, runner_factory)
        with pytest.raises(ComposeCommandError):
            await svc.up("sandbox", actor="op")

    assert await _event_types(svc, "sandbox") == ["UP_FAILED", "UP_STARTED"]
    failed = next(e for e in await svc.events("sandbox") if e.event_type == DeploymentEventType.up_failed)
    assert failed.details["returncode"] == 1
    assert "pull access denied" in failed.details["error"]


@pytest.mark.asyncio
async def test_down(session, settings, make_http, runner_factory, fake_runner) -> None:
    async with make_http() as http:
        svc = _service(session, settings, http, runner_factory)
        await svc.down("debug", actor="op", remove_volumes=True)

    assert fake_runner.calls == [("down", {"volumes": True})]
    assert fake_runner.compose_file == Path(settings.output_dir) / "docker-compose.debug.yml"
    [event] = await svc.events("debug")
    assert event.event_type == DeploymentEventType.down
    assert event.details == {"volumes_removed": True}


@pytest.mark.asyncio
async def test_down_failure_is_recorded(session, settings, make_http, runner_factory, fake_runner) -> None:
    fake_runner.fail_down = True
    async with make_http() as http:
        svc = _service(session, settings, http, runner_factory)
        with pytest.raises(ComposeCommandError):
            await svc.down("debug", actor="op")
    [event] = await svc.events("debug")
    assert event.event_type == DeploymentEventType.down_failed


@pytest.mark.asyncio
async def test_status(session, settings, make_http, runner_factory, fake_runner) -> None:
    async with make_http() as http:
        svc = _service(session, settings, http, runner_factory)
        status = await svc.status("debug")
        assert status.ready
        assert len(status.probes) == 3

        fake_runner.services = [*fake_runner.services, ServiceState("monitoring", "m-1", "exited")]
        assert not (await svc.status("debug")).ready

        fake_runner.services = []
        assert not (await svc.status("debug")).ready

    # Status is read-only.
    assert await svc.events("debug") == []


@pytest.mark.asyncio
async def test_events_limit_and_scope(session, settings, make_http, runner_factory) -> None:
    async with make_http() as http:
        svc = _service(session, settings, http, runner_factory)
        for _ in range(3):
            await svc.render("sandbox", actor="op")
        await svc.render("debug", actor="op")

    assert len(await svc.events("sandbox", limit=2)) == 2
    assert len(await svc.events("sandbox")) == 3
    assert {e.stack for e in await svc.events("debug")} == {"debug"}


@pytest.mark.asyncio
async def test_unknown_stack(session, settings, make_http, runner_factory) -> None:
    async with make_http() as http:
        svc = _service(session, settings, http, runner_factory)
        with pytest.raises(UnknownStackError):
            await svc.up("nope", actor="op")
        with pytest.raises(UnknownStackError):
            await svc.events("nope")


@pytest.mark.asyncio
async def test_events_are_listed_newest_first(session, settings, make_http, runner_factory) -> None:
    async with make_http() as http:
        svc = _service(session, settings, http, runner_factory)
        await svc.render("sandbox", actor="op")
        await svc.validate("sandbox", actor="op")
        await svc.up("sandbox", actor="op")

    assert await _event_types(svc, "sandbox") == ["UP_READY", "UP_STARTED", "VALIDATED", "RENDERED"]


@pytest.mark.asyncio
async def test_events_with_equal_timestamps_keep_insertion_order(
    session, settings, make_http, runner_factory
) -> None:
    async with make_http() as http:
        svc = _service(session, settings, http, runner_factory)
        await svc.render("sandbox", actor="op")
        await svc.validate("sandbox", actor="op")
        await svc.down("sandbox", actor="op")

    await session.execute(update(DeploymentEvent).values(created_at=datetime(2026, 1, 1)))
    await session.commit()

    events = await svc.events("sandbox")
    assert [e.event_type for e in events] == ["DOWN", "VALIDATED", "RENDERED"]
    assert [e.seq for e in events] == sorted((e.seq for e in events), reverse=True)
