from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.user_roles import ROLE_VIEWER, UserRole


class DuplicateError(Exception):
    """Raised when unique constraint is violated (uq_user_roles_user)."""


def get_role_name(db: Session, user_id: int) -> str:
    """A user without a role row is treated as a viewer."""
    stmt = select(UserRole.role).where(UserRole.user_id == user_id)
    role = db.execute(stmt).scalar_one_or_none()
    return role or ROLE_VIEWER


def role_names_by_user(db: Session, user_ids: Iterable[int]) -> dict[int, str]:
    ids = list(set(user_ids))
    if not ids:
        return {}
    stmt = select(UserRole.user_id, UserRole.role).where(UserRole.user_id.in_(ids))
    return {user_id: role for user_id, role in db.execute(stmt).all()}


def set_role(db: Session, user_id: int, role: str) -> UserRole:
    """Last write wins; one role row per user."""
    obj = db.execute(
        select(UserRole).where(UserRole.user_id == user_id)
    ).scalar_one_or_none()
    if obj is None:
        obj = UserRole(user_id=user_id, role=role)
        db.add(obj)
    else:
        obj.role = role

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateError("Role mapping already exists for this user.") from e
    db.refresh(obj)
    return obj
