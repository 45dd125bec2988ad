"""
tezedge_stacks.auth.models

Auth domain models.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

# Roles understood by the API. `admin` bypasses role checks.
ROLE_ADMIN = "admin"
ROLE_OPERATOR = "stack_operator"
ROLE_VIEWER = "stack_viewer"


@dataclass(frozen=True, slots=True)
class Principal:
    subject: str
    roles: frozenset[str]

    @property
    def is_admin(self) -> bool:
        return ROLE_ADMIN in self.roles

    def has_roles(self, required: frozenset[str]) -> bool:
        # Operators may do everything viewers can.
        granted = self.roles | ({ROLE_VIEWER} if ROLE_OPERATOR in self.roles else set())
        return self.is_admin or required.issubset(granted)

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> Principal:
        subject = str(claims.get("sub", ""))
        roles = claims.get("roles", [])
        if not subject:
            raise ValueError("token has no subject")
        if not isinstance(roles, list):
            raise ValueError("token roles must be a list")
        return cls(subject=subject, roles=frozenset(str(r) for r in roles))
