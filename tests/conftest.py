"""
tests.conftest

Shared fixtures: isolated settings (temp SQLite event log, temp output dir), a fake
`docker compose` runner, and a mock HTTP transport for endpoint probes.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Mapping
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from tezedge_stacks.db.init_db import init_db
from tezedge_stacks.db.session import create_engine, create_sessionmaker
from tezedge_stacks.runtime.compose_cli import ComposeCommandError, ServiceState
from tezedge_stacks.settings import Settings
from tezedge_stacks.stacks.registry import StackDefinition

REPO_ROOT = Path(__file__).resolve().parents[1]


class FakeRunner:
    """Stands in for `ComposeRunner`; records calls instead of spawning docker."""

    def __init__(self, *, fail_up: bool = False, fail_down: bool = False) -> None:
        self.fail_up = fail_up
        self.fail_down = fail_down
        self.calls: list[tuple[str, dict]] = []
        self.compose_file: Path | None = None
        self.env: Mapping[str, str] | None = None
        self.services = [
            ServiceState(service="tezedge-node", container="tezedge-debug-tezedge-node-1", state="running")
        ]

    async def up(self, *, wait: bool = False, services=()) -> None:
        self.calls.append(("up", {"wait": wait}))
        if self.fail_up:
            raise ComposeCommandError(["docker", "compose", "up"], 1, "pull access denied")

    async def down(self, *, volumes: bool = False) -> None:
        self.calls.append(("down", {"volumes": volumes}))
        if self.fail_down:
            raise ComposeCommandError(["docker", "compose", "down"], 1, "no such project")

    async def ps(self) -> list[ServiceState]:
        self.calls.append(("ps", {}))
        return list(self.services)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'events.db'}",
        output_dir=str(tmp_path / "deploy"),
        env_file=None,
        probe_host="node.test",
        probe_interval_s=0.01,
        startup_deadline_s=0.0,
    )


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def runner_factory(fake_runner: FakeRunner) -> Callable[[StackDefinition, Path, Mapping[str, str]], FakeRunner]:
    def factory(stack: StackDefinition, path: Path, env: Mapping[str, str]) -> FakeRunner:
        fake_runner.compose_file = path
        fake_runner.env = env
        return fake_runner

    return factory


def status_transport(status_by_port: Mapping[int, int] | None = None, default: int = 200) -> httpx.MockTransport:
    status_by_port = status_by_port or {}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_by_port.get(request.url.port, default), text="ok")

    return httpx.MockTransport(handler)


@pytest.fixture
def make_http() -> Callable[..., httpx.AsyncClient]:
    def _make(status_by_port: Mapping[int, int] | None = None, default: int = 200) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=status_transport(status_by_port, default))

    return _make


@pytest_asyncio.fixture
async def session(settings: Settings) -> AsyncIterator:
    engine = create_engine(settings)
    await init_db(engine)
    async with create_sessionmaker(engine)() as s:
        yield s
    await engine.dispose()
