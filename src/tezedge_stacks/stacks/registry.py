"""
tezedge_stacks.stacks.registry

Named catalog of the shipped stacks.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from tezedge_stacks.compose.models import ComposeFile
from tezedge_stacks.stacks.debug import build_debug_stack
from tezedge_stacks.stacks.options import StackOptions
from tezedge_stacks.stacks.sandbox import build_sandbox_stack


class UnknownStackError(KeyError):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"unknown stack {self.name!r} (known: {', '.join(STACKS)})"


@dataclass(frozen=True, slots=True)
class StackDefinition:
    name: str
    description: str
    compose_file: str  # path of the published descriptor, relative to the repo root
    builder: Callable[[StackOptions | None], ComposeFile]

    def build(self, options: StackOptions | None = None) -> ComposeFile:
        return self.builder(options)


STACKS: dict[str, StackDefinition] = {
    "sandbox": StackDefinition(
        name="sandbox",
        description="Sandbox launcher (RPC/P2P/WebSocket + control port) with explorer UI",
        compose_file="docker/docker-compose.sandbox.yml",
        builder=build_sandbox_stack,
    ),
    "debug": StackDefinition(
        name="debug",
        description="Production-mode node with debugger, monitoring and explorer sidecars",
        compose_file="docker-compose.debug.yml",
        builder=build_debug_stack,
    ),
}


def list_stacks() -> list[StackDefinition]:
    return list(STACKS.values())


def get_stack(name: str) -> StackDefinition:
    try:
        return STACKS[name]
    except KeyError:
        raise UnknownStackError(name) from None
