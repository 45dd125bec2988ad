"""
tezedge_stacks.auth.deps

FastAPI dependency functions for authentication and authorization.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from tezedge_stacks.api.deps import settings_dep
from tezedge_stacks.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate
from tezedge_stacks.auth.models import Principal
from tezedge_stacks.settings import Settings

_bearer = HTTPBearer(auto_error=False)


def get_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(settings_dep),
) -> Principal:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    try:
        claims = decode_and_validate(cfg=JwtConfig.from_settings(settings), token=creds.credentials)
        return Principal.from_claims(claims)
    except (JwtValidationError, ValueError) as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}") from e


def require_roles(*required: str):
    required_set = frozenset(required)

    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        if not principal.has_roles(required_set):
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Insufficient role")
        return principal

    return _dep


# --- Module Notes -----------------------------------------------------------
# Read-only stack endpoints (list/compose/validate) are public; status and the event
# log need `stack_viewer`; up/down need `stack_operator`.
