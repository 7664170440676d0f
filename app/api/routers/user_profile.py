from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps.role_access import require_known_user
from app.crud.users import get_user, touch_last_login
from app.db.session import get_db
from app.models.user_roles import MANAGEMENT_ROLES
from app.schemas.request_identity import RequestIdentity
from app.schemas.users import MeOut

router = APIRouter(prefix="/me", tags=["user-profile"])


@router.get("", response_model=MeOut)
def get_me(
    identity: RequestIdentity = Depends(require_known_user),
    db: Session = Depends(get_db),
):
    # role is re-read on every call
    user = get_user(db, identity.user_id)
    touch_last_login(db, user)
    return MeOut(
        user_id=user.id,
        email=user.email,
        role=identity.role,
        status=user.status,
        can_manage=user.is_active and identity.role in MANAGEMENT_ROLES,
    )
