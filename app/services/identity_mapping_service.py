from __future__ import annotations

from sqlalchemy.orm import Session

from app.crud.user_roles import get_role_name
from app.crud.users import get_user_by_email
from app.schemas.request_identity import RequestIdentity


def attach_internal_user_context(
    db: Session,
    *,
    identity: RequestIdentity,
) -> RequestIdentity:
    """
    Maps a trusted identity to the local staff profile by email.
    An unknown email is returned unchanged; callers decide whether that is allowed.
    """
    email = (identity.email or "").strip().lower()
    if not email:
        return identity

    user = get_user_by_email(db, email)
    if not user:
        return identity

    return identity.model_copy(
        update={
            "user_id": int(user.id),
            "user_status": user.status,
            "role": get_role_name(db, user.id),
        }
    )
