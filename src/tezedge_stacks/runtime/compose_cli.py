"""
tezedge_stacks.runtime.compose_cli

Async wrapper around the `docker compose` command line.

Responsibilities:
- Build `docker compose -f FILE -p PROJECT ...` invocations.
- Run them with a timeout and pass the interpolation environment through.
- Parse `ps` JSON output into typed service states.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tezedge_stacks.observability.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CommandResult:
    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str


class ComposeCommandError(RuntimeError):
    def __init__(self, args: Sequence[str], returncode: int | None, stderr: str) -> None:
        code = "no exit code" if returncode is None else f"exit code {returncode}"
        super().__init__(f"`{' '.join(args)}` failed ({code}): {stderr.strip()}")
        self.command = tuple(args)
        self.returncode = returncode
        self.stderr = stderr


Executor = Callable[..., Awaitable[CommandResult]]


async def subprocess_executor(
    args: Sequence[str], *, env: Mapping[str, str] | None, timeout: float
) -> CommandResult:
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=dict(env) if env is not None else None,
        )
    except FileNotFoundError as e:
        raise ComposeCommandError(args, None, f"executable not found: {e.filename}") from e

    try:
        out, err = await asyncio.wait_for(proc.communicate(), timeout)
    except TimeoutError:
        proc.kill()
        await proc.wait()
        raise ComposeCommandError(args, None, f"timed out after {timeout:g}s") from None

    return CommandResult(
        args=tuple(args),
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=out.decode("utf-8", errors="replace"),
        stderr=err.decode("utf-8", errors="replace"),
    )


@dataclass(frozen=True, slots=True)
class ServiceState:
    service: str
    container: str
    state: str
    health: str | None = None
    status: str | None = None

    @property
    def running(self) -> bool:
        return self.state == "running"

    @classmethod
    def from_ps(cls, row: Mapping[str, Any]) -> ServiceState:
        return cls(
            service=str(row.get("Service", "")),
            container=str(row.get("Name", "")),
            state=str(row.get("State", "")).lower(),
            health=row.get("Health") or None,
            status=row.get("Status") or None,
        )


def parse_ps_output(stdout: str) -> list[ServiceState]:
    """Accepts both the JSON array (compose < 2.21) and JSON-lines formats."""

    text = stdout.strip()
    if not text:
        return []
    if text.startswith("["):
        rows = json.loads(text)
    else:
        rows = [json.loads(line) for line in text.splitlines() if line.strip()]
    return [ServiceState.from_ps(r) for r in rows]


class ComposeRunner:
    def __init__(
        self,
        *,
        compose_file: str | Path,
        project: str,
        docker_binary: str = "docker",
        env: Mapping[str, str] | None = None,
        timeout: float = 600.0,
        executor: Executor | None = None,
    ) -> None:
        self._compose_file = Path(compose_file)
        self._project = project
        self._docker = docker_binary
        self._env = env
        self._timeout = timeout
        self._executor = executor or subprocess_executor

    @property
    def project(self) -> str:
        return self._project

    def command(self, *args: str) -> list[str]:
        return [self._docker, "compose", "-f", str(self._compose_file), "-p", self._project, *args]

    async def _run(self, *args: str) -> CommandResult:
        argv = self.command(*args)
        log.info("compose_command", argv=argv)
        result = await self._executor(argv, env=self._env, timeout=self._timeout)
        if result.returncode != 0:
            log.warning("compose_command_failed", argv=argv, returncode=result.returncode)
            raise ComposeCommandError(argv, result.returncode, result.stderr)
        return result

    async def config(self) -> str:
        return (await self._run("config")).stdout

    async def pull(self) -> None:
        await self._run("pull")

    async def up(self, *, wait: bool = False, services: Sequence[str] = ()) -> None:
        args = ["up", "-d"]
        if wait:
            args.append("--wait")
        await self._run(*args, *services)

    async def down(self, *, volumes: bool = False) -> None:
        args = ["down"]
        if volumes:
            args.append("--volumes")
        await self._run(*args)

    async def ps(self) -> list[ServiceState]:
        result = await self._run("ps", "--all", "--format", "json")
        return parse_ps_output(result.stdout)


# --- Module Notes -----------------------------------------------------------
# `docker compose` reads interpolation variables from its own environment, so the
# resolved environment is passed to the subprocess rather than pre-substituted.
