from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.distributors import Distributor


class DuplicateError(Exception):
    """Raised when unique constraint is violated (studio_id + qw_company_id)."""


def create_distributor(
    db: Session,
    *,
    studio_id: str,
    studio_name: str,
    qw_company_id: str,
    qw_company_name: str,
    encoded_token: str | None,
    user_id: int,
    updated_by: str | None = None,
) -> Distributor:
    obj = Distributor(
        studio_id=studio_id,
        studio_name=studio_name,
        qw_company_id=qw_company_id,
        qw_company_name=qw_company_name,
        qw_pat_encrypted=encoded_token,
        user_id=user_id,
        updated_by=updated_by,
    )
    db.add(obj)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateError(
            "Distributor already exists (studio_id + qw_company_id must be unique)."
        ) from e
    db.refresh(obj)
    return obj


def get_distributor(db: Session, distributor_id: int) -> Distributor | None:
    return db.get(Distributor, distributor_id)


def list_distributors(db: Session, q: str | None = None) -> list[Distributor]:
    stmt = select(Distributor).order_by(Distributor.studio_name.asc(), Distributor.id.asc())
    if q:
        like = f"%{q}%"
        stmt = stmt.where(
            or_(
                Distributor.studio_name.ilike(like),
                Distributor.qw_company_name.ilike(like),
                Distributor.studio_id.ilike(like),
            )
        )
    return list(db.execute(stmt).scalars().all())


def find_by_keys(
    db: Session,
    keys: Iterable[tuple[str, str]],
) -> dict[tuple[str, str], Distributor]:
    """Looks up distributors for several (studio_id, qw_company_id) pairs in one OR query."""
    unique_keys = sorted(set(keys))
    if not unique_keys:
        return {}
    clauses = [
        and_(Distributor.studio_id == studio_id, Distributor.qw_company_id == company_id)
        for studio_id, company_id in unique_keys
    ]
    stmt = select(Distributor).where(or_(*clauses))
    return {
        (row.studio_id, row.qw_company_id): row
        for row in db.execute(stmt).scalars().all()
    }


def update_credential(
    db: Session,
    distributor_id: int,
    encoded_token: str | None,
    updated_by: str | None,
) -> Distributor | None:
    obj = db.get(Distributor, distributor_id)
    if not obj:
        return None
    obj.qw_pat_encrypted = encoded_token
    obj.updated_by = updated_by
    db.commit()
    db.refresh(obj)
    return obj
