"""
tests.test_compose_cli

`docker compose` invocation building and output parsing. Only tiny POSIX
commands are actually spawned; docker itself is never required.
"""

from __future__ import annotations

import json

import pytest

from tezedge_stacks.runtime.compose_cli import (
    CommandResult,
    ComposeCommandError,
    ComposeRunner,
    ServiceState,
    parse_ps_output,
    subprocess_executor,
)


class RecordingExecutor:
    def __init__(self, *, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.calls: list[dict] = []

    async def __call__(self, args, *, env, timeout):
        self.calls.append({"args": list(args), "env": env, "timeout": timeout})
        return CommandResult(args=tuple(args), returncode=self.returncode, stdout=self.stdout, stderr=self.stderr)


def _runner(executor, **kw) -> ComposeRunner:
    return ComposeRunner(
        compose_file="deploy/docker-compose.debug.yml",
        project="tezedge-debug",
        env={"TEZOS_NETWORK": "ghostnet"},
        timeout=30,
        executor=executor,
        **kw,
    )


@pytest.mark.asyncio
async def test_up_and_down_arguments() -> None:
    ex = RecordingExecutor()
    runner = _runner(ex)

    await runner.up(wait=True)
    await runner.down(volumes=True)
    await runner.down()

    prefix = ["docker", "compose", "-f", "deploy/docker-compose.debug.yml", "-p", "tezedge-debug"]
    assert [c["args"] for c in ex.calls] == [
        [*prefix, "up", "-d", "--wait"],
        [*prefix, "down", "--volumes"],
        [*prefix, "down"],
    ]
    assert ex.calls[0]["env"] == {"TEZOS_NETWORK": "ghostnet"}
    assert ex.calls[0]["timeout"] == 30


@pytest.mark.asyncio
async def test_up_specific_services_with_custom_binary() -> None:
    ex = RecordingExecutor()
    await _runner(ex, docker_binary="/usr/local/bin/docker").up(services=["tezedge-node"])
    assert ex.calls[0]["args"][0] == "/usr/local/bin/docker"
    assert ex.calls[0]["args"][-3:] == ["up", "-d", "tezedge-node"]


@pytest.mark.asyncio
async def test_nonzero_exit_raises_with_stderr() -> None:
    ex = RecordingExecutor(returncode=18, stderr="manifest unknown\n")
    with pytest.raises(ComposeCommandError) as exc:
        await _runner(ex).pull()
    assert exc.value.returncode == 18
    assert exc.value.command[-1] == "pull"
    assert "manifest unknown" in str(exc.value)


@pytest.mark.asyncio
async def test_config_returns_stdout() -> None:
    ex = RecordingExecutor(stdout="services: {}\n")
    assert await _runner(ex).config() == "services: {}\n"


@pytest.mark.asyncio
async def test_ps_parses_json_lines() -> None:
    rows = [
        {"Service": "tezedge-node", "Name": "tezedge-debug-tezedge-node-1", "State": "running", "Health": "", "Status": "Up 3 minutes"},
        {"Service": "monitoring", "Name": "tezedge-debug-monitoring-1", "State": "exited", "Status": "Exited (1)"},
    ]
    ex = RecordingExecutor(stdout="\n".join(json.dumps(r) for r in rows) + "\n")
    states = await _runner(ex).ps()

    assert ex.calls[0]["args"][-4:] == ["ps", "--all", "--format", "json"]
    assert states == [
        ServiceState("tezedge-node", "tezedge-debug-tezedge-node-1", "running", None, "Up 3 minutes"),
        ServiceState("monitoring", "tezedge-debug-monitoring-1", "exited", None, "Exited (1)"),
    ]
    assert [s.running for s in states] == [True, False]


def test_parse_ps_output_array_and_empty() -> None:
    text = json.dumps([{"Service": "explorer", "Name": "e-1", "State": "Running", "Health": "healthy"}])
    assert parse_ps_output(text) == [ServiceState("explorer", "e-1", "running", "healthy", None)]
    assert parse_ps_output("  \n") == []


@pytest.mark.asyncio
async def test_subprocess_executor_captures_output() -> None:
    result = await subprocess_executor(["echo", "hello"], env=None, timeout=10)
    assert result.returncode == 0
    assert result.stdout.strip() == "hello"


@pytest.mark.asyncio
async def test_subprocess_executor_missing_binary() -> None:
    with pytest.raises(ComposeCommandError, match="executable not found") as exc:
        await subprocess_executor(["definitely-not-docker-xyz", "compose"], env=None, timeout=10)
    assert exc.value.returncode is None


@pytest.mark.asyncio
async def test_subprocess_executor_timeout() -> None:
    with pytest.raises(ComposeCommandError, match="timed out"):
        await subprocess_executor(["sleep", "5"], env=None, timeout=0.1)
