"""
tezedge_stacks.validation.validator

Validation entrypoint.

Responsibilities:
- Interpolate a descriptor service by service, turning unresolved variables and
  interpolation failures into findings.
- Parse the interpolated descriptor and run every check in `CHECKS`.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from tezedge_stacks.compose.interpolation import InterpolationError, interpolate_tree
from tezedge_stacks.compose.loader import ComposeLoadError, parse_compose, read_compose_data
from tezedge_stacks.compose.models import ComposeFile
from tezedge_stacks.observability.logging import get_logger
from tezedge_stacks.validation.checks import CHECKS, CheckContext
from tezedge_stacks.validation.report import Finding, ValidationReport

log = get_logger(__name__)

_FAILED = object()


def _service_of(path: str) -> str | None:
    parts = path.split(".", 2)
    if len(parts) >= 2 and parts[0] == "services":
        return parts[1].split("[", 1)[0]
    return None


def _interpolate_document(
    data: Mapping[str, Any], env: Mapping[str, str], findings: list[Finding]
) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for section, value in data.items():
        if section == "services" and isinstance(value, Mapping):
            services = {
                name: _interpolate_part(svc, env, f"services.{name}", findings)
                for name, svc in value.items()
            }
            # A service that failed to interpolate is left out of the parsed document.
            out[section] = {name: svc for name, svc in services.items() if svc is not _FAILED}
        else:
            resolved = _interpolate_part(value, env, str(section), findings)
            out[section] = value if resolved is _FAILED else resolved
    return out


def _interpolate_part(value: Any, env: Mapping[str, str], path: str, findings: list[Finding]) -> Any:
    try:
        result = interpolate_tree(value, env, path=path)
    except InterpolationError as e:
        findings.append(
            Finding(
                code="interpolation-error",
                severity="error",
                service=_service_of(e.path or path),
                message=str(e),
            )
        )
        return _FAILED
    seen: set[tuple[str, str | None]] = set()
    for missing in result.missing:
        service = _service_of(missing.path)
        if (missing.name, service) in seen:
            continue
        seen.add((missing.name, service))
        findings.append(
            Finding(
                code="unresolved-variable",
                severity="error",
                service=service,
                message=f"variable {missing.name} is not set and has no default ({missing.path})",
            )
        )
    return result.value


def validate_data(
    data: Mapping[str, Any],
    env: Mapping[str, str],
    *,
    base_dir: Path | None = None,
    stack: str | None = None,
) -> ValidationReport:
    report = ValidationReport(stack=stack)
    resolved = _interpolate_document(data, env, report.findings)

    try:
        compose = parse_compose(resolved, origin=stack or "<descriptor>")
    except ComposeLoadError as e:
        report.findings.append(Finding(code="invalid-descriptor", severity="error", message=str(e)))
        return report

    ctx = CheckContext(base_dir=base_dir)
    for check in CHECKS:
        report.findings.extend(check(compose, ctx))

    log.info("stack_validated", **report.summary())
    return report


def validate_compose(
    compose: ComposeFile,
    env: Mapping[str, str],
    *,
    base_dir: Path | None = None,
    stack: str | None = None,
) -> ValidationReport:
    return validate_data(compose.to_compose(), env, base_dir=base_dir, stack=stack)


def validate_file(path: str | Path, env: Mapping[str, str]) -> ValidationReport:
    try:
        data, origin = read_compose_data(Path(path))
    except ComposeLoadError as e:
        return ValidationReport(
            stack=str(path),
            findings=[Finding(code="invalid-descriptor", severity="error", message=str(e))],
        )
    return validate_data(data, env, base_dir=Path(path).resolve().parent, stack=origin)


# --- Module Notes -----------------------------------------------------------
# Interpolating per service keeps one bad `${VAR?}` from hiding every other finding:
# the failing service is dropped and the rest are still parsed and checked.
