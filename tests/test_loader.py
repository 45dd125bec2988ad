"""
tests.test_loader

Reading, rendering and environment resolution for compose files.
"""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest
import yaml

from tezedge_stacks.compose.loader import (
    ComposeLoadError,
    dump_compose,
    interpolate_compose,
    load_compose,
    resolve_environment,
    write_compose,
)
from tezedge_stacks.stacks.debug import build_debug_stack
from tezedge_stacks.stacks.registry import list_stacks

REPO_ROOT = Path(__file__).resolve().parents[1]


@pytest.mark.parametrize("stack", list_stacks(), ids=lambda s: s.name)
def test_published_descriptors_match_builders(stack) -> None:
    published = load_compose(REPO_ROOT / stack.compose_file, interpolate=False)
    assert published.to_compose() == stack.build().to_compose()


def test_load_interpolates_with_given_env() -> None:
    compose = load_compose(REPO_ROOT / "docker-compose.debug.yml", env={"TEZOS_NETWORK": "ghostnet"})
    command = compose.services["tezedge-node"].command
    assert command[:2] == ["--network", "ghostnet"]
    assert "--tezos-context-storage=irmin" in command


def test_load_from_yaml_text() -> None:
    compose = load_compose("services:\n  a:\n    image: x:1\n    command: ${CMD:-run}\n", env={})
    assert compose.services["a"].command == ["run"]


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("- just\n- a list\n", "top-level document must be a mapping"),
        ("version: '3'\n", "no services defined"),
        ("services: [oops\n", "invalid YAML"),
        ("services:\n  a:\n    image: ${IMG?image required}\n", "image required"),
        ("services:\n  a:\n    ports: ['x:y']\n", "invalid port mapping"),
    ],
)
def test_load_errors(text: str, message: str) -> None:
    with pytest.raises(ComposeLoadError, match=message):
        load_compose(text, env={})


def test_missing_file_is_a_load_error(tmp_path: Path) -> None:
    with pytest.raises(ComposeLoadError, match="cannot read file"):
        load_compose(tmp_path / "absent.yml")


def test_dump_is_loadable_and_ordered() -> None:
    text = dump_compose(build_debug_stack())
    data = yaml.safe_load(text)
    assert list(data) == ["version", "services", "volumes"]
    assert list(data["services"]) == ["tezedge-debugger", "tezedge-node", "explorer", "monitoring"]
    assert "${TEZOS_NETWORK-mainnet}" in text


def test_write_compose_is_atomic_and_creates_parents(tmp_path: Path) -> None:
    target = tmp_path / "out" / "docker" / "stack.yml"
    written = write_compose(build_debug_stack(), target)
    assert written == target
    assert load_compose(target, interpolate=False).to_compose() == build_debug_stack().to_compose()
    assert [p.name for p in target.parent.iterdir()] == ["stack.yml"]


@pytest.mark.parametrize("umask, expected", [(0o022, 0o644), (0o077, 0o600), (0o002, 0o664)])
def test_write_compose_honours_umask(tmp_path: Path, umask: int, expected: int) -> None:
    previous = os.umask(umask)
    try:
        target = write_compose(build_debug_stack(), tmp_path / "stack.yml")
    finally:
        os.umask(previous)
    assert stat.S_IMODE(target.stat().st_mode) == expected


def test_interpolate_compose_resolves_explorer_hosts() -> None:
    resolved = interpolate_compose(build_debug_stack(), {"NODE_HOSTNAME_OR_IP": "10.0.0.5"})
    api = resolved.services["explorer"].environment["API"]
    assert "http://10.0.0.5:18732" in api
    assert "${" not in api


def test_resolve_environment_precedence(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("TEZOS_NETWORK=ghostnet\nFROM_FILE=1\nSHARED=file\n", encoding="utf-8")

    env = resolve_environment(
        env_file=env_file,
        base={"SHARED": "shell", "TEZOS_NETWORK": "mainnet"},
        overrides={"TEZOS_NETWORK": "hangzhounet"},
    )
    assert env["FROM_FILE"] == "1"
    assert env["SHARED"] == "shell"
    assert env["TEZOS_NETWORK"] == "hangzhounet"


def test_resolve_environment_ignores_missing_env_file(tmp_path: Path) -> None:
    assert resolve_environment(env_file=tmp_path / "nope.env", base={"A": "1"}) == {"A": "1"}
