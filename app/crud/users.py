from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.users import User


class DuplicateError(Exception):
    """Raised when a unique constraint is violated (e.g., email unique)."""


def create_user(db: Session, *, email: str, name: str | None = None) -> User:
    obj = User(email=email.strip().lower(), name=name)
    db.add(obj)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateError("User already exists (unique constraint hit).") from e
    db.refresh(obj)
    return obj


def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    stmt = select(User).where(func.lower(User.email) == email.strip().lower())
    return db.execute(stmt).scalar_one_or_none()


def list_users(
    db: Session,
    skip: int = 0,
    limit: int = 50,
    status: str | None = None,
) -> list[User]:
    stmt = select(User).offset(skip).limit(limit).order_by(User.id.desc())
    if status is not None:
        stmt = stmt.where(User.status == status)
    return list(db.execute(stmt).scalars().all())


def count_users(db: Session, status: str | None = None) -> int:
    stmt = select(func.count()).select_from(User)
    if status is not None:
        stmt = stmt.where(User.status == status)
    return int(db.execute(stmt).scalar_one())


def update_status(db: Session, user_id: int, status: str) -> User | None:
    obj = db.get(User, user_id)
    if not obj:
        return None
    obj.status = status
    db.commit()
    db.refresh(obj)
    return obj


def touch_last_login(db: Session, user: User, when: datetime | None = None) -> User:
    user.last_login = when or datetime.utcnow()
    db.commit()
    db.refresh(user)
    return user
