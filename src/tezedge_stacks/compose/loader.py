"""
tezedge_stacks.compose.loader

YAML I/O for compose files.

Responsibilities:
- Parse compose YAML (text or path) into `ComposeFile`, optionally interpolating variables.
- Render `ComposeFile` back to YAML.
- Build the interpolation environment the way `docker compose` does (.env < shell < overrides).
- Write rendered files atomically.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values
from pydantic import ValidationError

from tezedge_stacks.compose.interpolation import InterpolationError, interpolate_tree
from tezedge_stacks.compose.models import ComposeFile
from tezedge_stacks.observability.logging import get_logger

log = get_logger(__name__)


class ComposeLoadError(ValueError):
    def __init__(self, origin: str, message: str) -> None:
        super().__init__(f"{origin}: {message}")
        self.origin = origin


def read_compose_data(source: str | Path) -> tuple[dict[str, Any], str]:
    """
    Returns the raw (uninterpolated) mapping and a printable origin. `source` is a
    path when it is a `Path` or a single-line `.yml`/`.yaml` name; otherwise YAML text.
    """

    if isinstance(source, str) and "\n" not in source and source.endswith((".yml", ".yaml")):
        source = Path(source)
    if isinstance(source, Path):
        path = Path(source)
        origin = str(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ComposeLoadError(origin, f"cannot read file: {e}") from e
    else:
        origin = "<string>"
        text = str(source)

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ComposeLoadError(origin, f"invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ComposeLoadError(origin, "top-level document must be a mapping")
    if not isinstance(data.get("services"), dict) or not data["services"]:
        raise ComposeLoadError(origin, "no services defined")
    return data, origin


def parse_compose(data: Mapping[str, Any], *, origin: str = "<data>") -> ComposeFile:
    try:
        return ComposeFile.model_validate(data)
    except (ValidationError, ValueError) as e:
        raise ComposeLoadError(origin, str(e)) from e


def load_compose(
    source: str | Path,
    *,
    env: Mapping[str, str] | None = None,
    interpolate: bool = True,
) -> ComposeFile:
    data, origin = read_compose_data(source)
    if interpolate:
        try:
            result = interpolate_tree(data, env if env is not None else os.environ)
        except InterpolationError as e:
            raise ComposeLoadError(origin, str(e)) from e
        if result.missing:
            # Compose substitutes an empty string here; warn like it does.
            log.warning("compose_variables_unset", origin=origin, variables=result.missing_names)
        data = result.value
    return parse_compose(data, origin=origin)


def interpolate_compose(compose: ComposeFile, env: Mapping[str, str]) -> ComposeFile:
    """Resolves every `${...}` in an already-parsed descriptor."""

    try:
        result = interpolate_tree(compose.to_compose(), env)
    except InterpolationError as e:
        raise ComposeLoadError("<descriptor>", str(e)) from e
    return parse_compose(result.value, origin="<descriptor>")


def dump_compose(compose: ComposeFile) -> str:
    return yaml.safe_dump(
        compose.to_compose(),
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=4096,
    )


def write_compose(compose: ComposeFile, path: str | Path) -> Path:
    """Writes the rendered file via temp file + rename so readers never see a partial file."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(dump_compose(compose))
        # mkstemp creates 0600; give the file the mode a plain open() would.
        os.chmod(tmp_name, 0o666 & ~_current_umask())
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    log.info("compose_written", path=str(target), services=list(compose.services))
    return target


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def resolve_environment(
    *,
    env_file: str | Path | None = None,
    overrides: Mapping[str, str] | None = None,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """
    Interpolation environment in increasing precedence: dotenv file, shell
    environment (`base`, default `os.environ`), explicit overrides.
    """

    env: dict[str, str] = {}
    if env_file is not None and Path(env_file).is_file():
        env.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    env.update(os.environ if base is None else base)
    if overrides:
        env.update(overrides)
    return env


# --- Module Notes -----------------------------------------------------------
# `read_compose_data` is also used by validation, which needs the raw document to
# report interpolation problems per service instead of failing the whole load.
