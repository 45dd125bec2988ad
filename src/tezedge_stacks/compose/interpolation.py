"""
tezedge_stacks.compose.interpolation

Compose-style variable substitution.

Responsibilities:
- Resolve `$VAR`, `${VAR}` and the `-`, `:-`, `?`, `:?`, `+`, `:+` operator forms.
- Treat `$$` as a literal dollar sign.
- Report unset variables without defaults instead of silently dropping them.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

_PATTERN = re.compile(
    r"""
    \$(?:
        (?P<escaped>\$)
      | (?P<named>[_a-zA-Z][_a-zA-Z0-9]*)
      | \{(?P<braced>[^}]*)\}
      | (?P<invalid>)
    )
    """,
    re.VERBOSE,
)
_BRACED = re.compile(r"^(?P<name>[_a-zA-Z][_a-zA-Z0-9]*)(?:(?P<op>:?[-?+])(?P<arg>.*))?$", re.DOTALL)


class InterpolationError(ValueError):
    def __init__(self, message: str, *, variable: str | None = None, path: str = "") -> None:
        super().__init__(f"{path}: {message}" if path else message)
        self.variable = variable
        self.path = path


@dataclass(frozen=True, slots=True)
class VariableRef:
    name: str
    operator: str | None = None
    argument: str | None = None

    @property
    def has_default(self) -> bool:
        return self.operator in ("-", ":-")

    @property
    def required(self) -> bool:
        return self.operator in ("?", ":?")


@dataclass(frozen=True, slots=True)
class MissingVariable:
    name: str
    path: str


@dataclass(slots=True)
class InterpolationResult:
    value: Any
    missing: list[MissingVariable] = field(default_factory=list)

    @property
    def missing_names(self) -> list[str]:
        return sorted({m.name for m in self.missing})


def _parse(match: re.Match[str]) -> VariableRef | None:
    if match.group("escaped") is not None:
        return None
    if match.group("named") is not None:
        return VariableRef(name=match.group("named"))
    braced = match.group("braced")
    if braced is not None:
        m = _BRACED.match(braced)
        if m is None:
            raise InterpolationError(f"invalid interpolation format: '${{{braced}}}'")
        return VariableRef(name=m.group("name"), operator=m.group("op"), argument=m.group("arg"))
    # `$` followed by something that is neither a name, a brace nor another `$`.
    tail = match.string[match.start() : match.start() + 8]
    raise InterpolationError(f"invalid interpolation format near '{tail}'")


def find_variables(text: str) -> list[VariableRef]:
    """Lists variable references in `text` without resolving them."""
    refs: list[VariableRef] = []
    for match in _PATTERN.finditer(text):
        ref = _parse(match)
        if ref is not None:
            refs.append(ref)
    return refs


def _resolve(ref: VariableRef, env: Mapping[str, str], missing: list[str]) -> str:
    value = env.get(ref.name)
    op = ref.operator
    arg = ref.argument or ""

    if op is None:
        if value is None:
            missing.append(ref.name)
            return ""
        return value
    if op == "-":
        return arg if value is None else value
    if op == ":-":
        return value if value else arg
    if op == "?":
        if value is None:
            raise InterpolationError(f"required variable {ref.name} is missing a value: {arg}", variable=ref.name)
        return value
    if op == ":?":
        if not value:
            raise InterpolationError(f"required variable {ref.name} is missing a value: {arg}", variable=ref.name)
        return value
    if op == "+":
        return "" if value is None else arg
    # ":+"
    return arg if value else ""


def interpolate(text: str, env: Mapping[str, str], *, missing: list[str] | None = None) -> str:
    """
    Substitutes variables in a single string. Names of unset variables that had no
    default are appended to `missing` (when given).
    """

    sink: list[str] = [] if missing is None else missing

    def _sub(match: re.Match[str]) -> str:
        ref = _parse(match)
        if ref is None:
            return "$"
        return _resolve(ref, env, sink)

    return _PATTERN.sub(_sub, text)


def interpolate_tree(obj: Any, env: Mapping[str, str], *, path: str = "") -> InterpolationResult:
    """
    Applies `interpolate` to every string value of a nested dict/list structure.
    Mapping keys are left untouched, as compose does.
    """

    result = InterpolationResult(value=None)
    result.value = _walk(obj, env, path, result.missing)
    return result


def _walk(obj: Any, env: Mapping[str, str], path: str, missing: list[MissingVariable]) -> Any:
    if isinstance(obj, str):
        names: list[str] = []
        try:
            value = interpolate(obj, env, missing=names)
        except InterpolationError as e:
            raise InterpolationError(str(e), variable=e.variable, path=path) from e
        missing.extend(MissingVariable(name=n, path=path) for n in names)
        return value
    if isinstance(obj, Mapping):
        return {k: _walk(v, env, f"{path}.{k}" if path else str(k), missing) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_walk(v, env, f"{path}[{i}]", missing) for i, v in enumerate(obj)]
    return obj


# --- Module Notes -----------------------------------------------------------
# Nested references inside operator arguments (`${A:-${B}}`) are not expanded: the
# argument ends at the first closing brace. None of the shipped descriptors nest.
