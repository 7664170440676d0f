from __future__ import annotations

from fastapi import Depends, HTTPException

from app.api.deps.request_identity import get_request_identity_with_db
from app.models.user_roles import MANAGEMENT_ROLES, ROLE_ADMIN
from app.models.users import USER_STATUS_ACTIVE
from app.schemas.request_identity import RequestIdentity


def require_identity(
    identity: RequestIdentity = Depends(get_request_identity_with_db),
) -> RequestIdentity:
    if not identity.email and not identity.subject:
        raise HTTPException(status_code=401, detail="Authentication required.")
    return identity


def require_known_user(
    identity: RequestIdentity = Depends(require_identity),
) -> RequestIdentity:
    """Writes are attributed to a local user, so the caller must map to one."""
    if identity.user_id is None:
        raise HTTPException(
            status_code=401,
            detail="Authenticated user is not registered in this system.",
        )
    return identity


def require_roles(*roles: str):
    allowed = frozenset(roles)

    def _dependency(
        identity: RequestIdentity = Depends(require_known_user),
    ) -> RequestIdentity:
        if identity.user_status != USER_STATUS_ACTIVE:
            raise HTTPException(status_code=403, detail="User account is inactive.")
        if identity.role not in allowed:
            raise HTTPException(
                status_code=403,
                detail=f"Role '{identity.role}' is not allowed to perform this action.",
            )
        return identity

    return _dependency


require_management = require_roles(*MANAGEMENT_ROLES)
require_admin = require_roles(ROLE_ADMIN)
