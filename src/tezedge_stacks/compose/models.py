"""
tezedge_stacks.compose.models

Typed model of a compose file, limited to the keys the shipped stacks use.

Responsibilities:
- Parse compose short syntax (ports, volumes, `KEY=VALUE` environment lists).
- Render back to plain data that `docker compose` accepts, keeping key order.
- Derive the host sockets each service occupies (published ports and, for
  host-network services, the ports their command-line flags bind).
"""

from __future__ import annotations

import re
import shlex
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator

Protocol = Literal["tcp", "udp"]

WILDCARD_IPS = frozenset({"", "0.0.0.0", "::"})

_PORT_FLAG = re.compile(r"^--[a-z0-9-]*port$")
_ADDRESS_FLAG = re.compile(r"^--[a-z0-9-]*address$")


class PortMapping(BaseModel):
    model_config = ConfigDict(frozen=True)

    host_ip: str | None = None
    host_port: int | None = None
    container_port: int
    protocol: Protocol = "tcp"

    @classmethod
    def parse(cls, spec: str | int | Mapping[str, Any]) -> PortMapping:
        """
        Accepts `[host_ip:][host_port:]container_port[/protocol]`, a bare int, or the
        compose long syntax (`target`, `published`, `protocol`, `host_ip`).
        """

        if isinstance(spec, Mapping):
            published = spec.get("published")
            return cls(
                host_ip=spec.get("host_ip"),
                host_port=int(published) if published not in (None, "") else None,
                container_port=int(spec["target"]),
                protocol=spec.get("protocol", "tcp"),
            )
        if isinstance(spec, int):
            return cls(container_port=spec)

        text = str(spec).strip()
        protocol = "tcp"
        if "/" in text:
            text, protocol = text.rsplit("/", 1)
        parts = text.split(":")
        if len(parts) > 3 or any("-" in p for p in parts[-2:]):
            raise ValueError(f"unsupported port mapping: {spec!r}")
        try:
            if len(parts) == 1:
                return cls(container_port=int(parts[0]), protocol=protocol)
            if len(parts) == 2:
                return cls(host_port=int(parts[0]), container_port=int(parts[1]), protocol=protocol)
            return cls(
                host_ip=parts[0] or None,
                host_port=int(parts[1]) if parts[1] else None,
                container_port=int(parts[2]),
                protocol=protocol,
            )
        except ValueError as e:
            raise ValueError(f"invalid port mapping: {spec!r}") from e

    def to_short(self) -> str:
        text = str(self.container_port)
        if self.host_port is not None:
            text = f"{self.host_port}:{text}"
        if self.host_ip:
            text = f"{self.host_ip}:{text}" if self.host_port is not None else f"{self.host_ip}::{text}"
        if self.protocol != "tcp":
            text = f"{text}/{self.protocol}"
        return text


class VolumeMount(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str | None = None
    target: str
    mode: Literal["ro", "rw"] | None = None

    @property
    def read_only(self) -> bool:
        return self.mode == "ro"

    @property
    def kind(self) -> Literal["named", "bind", "anonymous"]:
        if not self.source:
            return "anonymous"
        if self.source.startswith(("/", ".", "~")):
            return "bind"
        return "named"

    @classmethod
    def parse(cls, spec: str | Mapping[str, Any]) -> VolumeMount:
        if isinstance(spec, Mapping):
            return cls(
                source=spec.get("source"),
                target=spec["target"],
                mode="ro" if spec.get("read_only") else None,
            )
        parts = str(spec).split(":")
        if len(parts) == 1:
            return cls(target=parts[0])
        if len(parts) == 2:
            return cls(source=parts[0], target=parts[1])
        if len(parts) == 3:
            mode = parts[2]
            if mode not in ("ro", "rw"):
                raise ValueError(f"unsupported volume mode {mode!r} in {spec!r}")
            return cls(source=parts[0], target=parts[1], mode=mode)
        raise ValueError(f"invalid volume mount: {spec!r}")

    def to_short(self) -> str:
        text = f"{self.source}:{self.target}" if self.source else self.target
        if self.mode is not None:
            text = f"{text}:{self.mode}"
        return text


class LoggingConfig(BaseModel):
    driver: str
    options: dict[str, str] = Field(default_factory=dict)

    def to_compose(self) -> dict[str, Any]:
        out: dict[str, Any] = {"driver": self.driver}
        if self.options:
            out["options"] = dict(self.options)
        return out


@dataclass(frozen=True, slots=True)
class HostBinding:
    service: str
    host_ip: str
    port: int
    protocol: str
    source: str  # "ports" or the command-line flag that declared it

    def overlaps(self, other: HostBinding) -> bool:
        if self.port != other.port or self.protocol != other.protocol:
            return False
        return self.host_ip in WILDCARD_IPS or other.host_ip in WILDCARD_IPS or self.host_ip == other.host_ip


class Service(BaseModel):
    model_config = ConfigDict(extra="allow")

    image: str | None = None
    command: list[str] = Field(default_factory=list)
    environment: dict[str, str | None] = Field(default_factory=dict)
    ports: list[PortMapping] = Field(default_factory=list)
    volumes: list[VolumeMount] = Field(default_factory=list)
    networks: list[str] = Field(default_factory=list)
    network_mode: str | None = None
    pid: str | None = None
    privileged: bool | None = None
    tty: bool | None = None
    logging: LoggingConfig | None = None

    _key_order: list[str] = PrivateAttr(default_factory=list)

    @model_validator(mode="wrap")
    @classmethod
    def _remember_key_order(cls, data: Any, handler):
        model = handler(data)
        if isinstance(data, Mapping):
            model._key_order = [str(k) for k in data.keys()]
        return model

    @field_validator("command", mode="before")
    @classmethod
    def _split_command(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return shlex.split(v)
        return [str(x) for x in v]

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_environment(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, Mapping):
            return {str(k): (None if val is None else _scalar_str(val)) for k, val in v.items()}
        env: dict[str, str | None] = {}
        for item in v:
            key, sep, value = str(item).partition("=")
            env[key] = value if sep else None
        return env

    @field_validator("ports", mode="before")
    @classmethod
    def _parse_ports(cls, v: Any) -> Any:
        if v is None:
            return []
        return [p if isinstance(p, PortMapping) else PortMapping.parse(p) for p in v]

    @field_validator("volumes", mode="before")
    @classmethod
    def _parse_volumes(cls, v: Any) -> Any:
        if v is None:
            return []
        return [m if isinstance(m, VolumeMount) else VolumeMount.parse(m) for m in v]

    @field_validator("networks", mode="before")
    @classmethod
    def _network_names(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, Mapping):
            return [str(k) for k in v.keys()]
        return v

    @property
    def uses_host_network(self) -> bool:
        return self.network_mode == "host"

    def command_ports(self) -> list[tuple[str, str, int]]:
        """
        Ports the process binds according to its command-line flags, as
        `(flag, host_ip, port)` tuples. Only `--*-port` and `--*-address` flags count.
        """

        found: list[tuple[str, str, int]] = []
        args = self.command
        for i, token in enumerate(args):
            if not token.startswith("--"):
                continue
            flag, sep, value = token.partition("=")
            if not sep:
                if i + 1 >= len(args) or args[i + 1].startswith("--"):
                    continue
                value = args[i + 1]
            if _PORT_FLAG.match(flag) and value.isdigit():
                found.append((flag, "0.0.0.0", int(value)))
            elif _ADDRESS_FLAG.match(flag):
                host, _, port = value.rpartition(":")
                if port.isdigit():
                    found.append((flag, host or "0.0.0.0", int(port)))
        return found

    def host_bindings(self, name: str) -> list[HostBinding]:
        bindings = [
            HostBinding(
                service=name,
                host_ip=p.host_ip or "0.0.0.0",
                port=p.host_port,
                protocol=p.protocol,
                source="ports",
            )
            for p in self.ports
            if p.host_port is not None
        ]
        if self.uses_host_network:
            bindings.extend(
                HostBinding(service=name, host_ip=ip, port=port, protocol="tcp", source=flag)
                for flag, ip, port in self.command_ports()
            )
        return bindings

    def to_compose(self) -> dict[str, Any]:
        rendered: dict[str, Any] = {}
        if self.image is not None:
            rendered["image"] = self.image
        if self.privileged is not None:
            rendered["privileged"] = self.privileged
        if self.pid is not None:
            rendered["pid"] = self.pid
        if self.network_mode is not None:
            rendered["network_mode"] = self.network_mode
        if self.command:
            rendered["command"] = list(self.command)
        if self.environment:
            rendered["environment"] = [k if v is None else f"{k}={v}" for k, v in self.environment.items()]
        if self.volumes:
            rendered["volumes"] = [m.to_short() for m in self.volumes]
        if self.ports:
            rendered["ports"] = [p.to_short() for p in self.ports]
        if self.networks:
            rendered["networks"] = list(self.networks)
        if self.tty is not None:
            rendered["tty"] = self.tty
        if self.logging is not None:
            rendered["logging"] = self.logging.to_compose()
        rendered.update(self.model_extra or {})

        # Keep the author's key order when the service came from a mapping.
        ordered = {k: rendered[k] for k in self._key_order if k in rendered}
        ordered.update({k: v for k, v in rendered.items() if k not in ordered})
        return ordered


class VolumeDecl(BaseModel):
    model_config = ConfigDict(extra="allow")

    external: bool | None = None

    def to_compose(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.external is not None:
            out["external"] = self.external
        out.update(self.model_extra or {})
        return out


class ComposeFile(BaseModel):
    version: str | None = None
    services: dict[str, Service]
    volumes: dict[str, VolumeDecl] = Field(default_factory=dict)
    networks: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @field_validator("version", mode="before")
    @classmethod
    def _version_str(cls, v: Any) -> Any:
        return None if v is None else str(v)

    @field_validator("volumes", "networks", mode="before")
    @classmethod
    def _null_entries(cls, v: Any) -> Any:
        if v is None:
            return {}
        return {k: ({} if decl is None else decl) for k, decl in v.items()}

    def host_bindings(self) -> list[HostBinding]:
        bindings: list[HostBinding] = []
        for name, svc in self.services.items():
            bindings.extend(svc.host_bindings(name))
        return bindings

    def to_compose(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.version is not None:
            out["version"] = self.version
        out["services"] = {name: svc.to_compose() for name, svc in self.services.items()}
        if self.volumes:
            out["volumes"] = {name: decl.to_compose() for name, decl in self.volumes.items()}
        if self.networks:
            out["networks"] = {name: dict(decl) for name, decl in self.networks.items()}
        return out


def _scalar_str(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# --- Module Notes -----------------------------------------------------------
# Unknown service keys are kept in `model_extra` and rendered verbatim, so loading
# and re-rendering a descriptor never drops settings this model does not type.
