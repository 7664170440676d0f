from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from app.models.orders import Order
from app.schemas.orders import OrderRow


def bulk_create_orders(db: Session, rows: Sequence[OrderRow], user_id: int) -> int:
    """
    Inserts all rows in a single transaction. Any failure rolls back the
    whole batch so an upload is never partially committed.
    """
    objs = [Order(user_id=user_id, **row.model_dump()) for row in rows]
    try:
        db.add_all(objs)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return len(objs)


def _filtered_stmt(
    stmt,
    *,
    user_id: int | None = None,
    content_id: str | None = None,
    q: str | None = None,
):
    if user_id is not None:
        stmt = stmt.where(Order.user_id == user_id)
    if content_id:
        stmt = stmt.where(Order.content_id == content_id)
    if q:
        like = f"%{q}%"
        stmt = stmt.where(
            or_(
                Order.content_title.ilike(like),
                Order.theatre_name.ilike(like),
                Order.order_id.ilike(like),
            )
        )
    return stmt


def list_orders(
    db: Session,
    skip: int = 0,
    limit: int = 50,
    user_id: int | None = None,
    content_id: str | None = None,
    q: str | None = None,
) -> list[Order]:
    stmt = select(Order).offset(skip).limit(limit).order_by(Order.id.desc())
    stmt = _filtered_stmt(stmt, user_id=user_id, content_id=content_id, q=q)
    return list(db.execute(stmt).scalars().all())


def count_orders(
    db: Session,
    user_id: int | None = None,
    content_id: str | None = None,
    q: str | None = None,
) -> int:
    stmt = select(func.count()).select_from(Order)
    stmt = _filtered_stmt(stmt, user_id=user_id, content_id=content_id, q=q)
    return int(db.execute(stmt).scalar_one())


def iter_all_orders(db: Session, page_size: int = 1000, user_id: int | None = None) -> list[Order]:
    """Reads the full order set page by page (bulk reads are always paginated)."""
    rows: list[Order] = []
    last_id = 0
    while True:
        stmt = select(Order).where(Order.id > last_id).order_by(Order.id.asc()).limit(page_size)
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        page = list(db.execute(stmt).scalars().all())
        if not page:
            break
        rows.extend(page)
        last_id = page[-1].id
        if len(page) < page_size:
            break
    return rows


def list_orders_for_content(
    db: Session,
    content_id: str,
    package_uuid: str | None = None,
) -> list[Order]:
    stmt = select(Order).where(Order.content_id == content_id).order_by(Order.id.asc())
    if package_uuid:
        stmt = stmt.where(Order.package_uuid == package_uuid)
    return list(db.execute(stmt).scalars().all())


def list_booked_content_ids(db: Session) -> list[str]:
    stmt = (
        select(Order.content_id)
        .where(Order.content_id.is_not(None))
        .where(Order.booking_ref.is_not(None))
        .where(Order.booking_ref != "")
        .distinct()
        .order_by(Order.content_id)
    )
    return [row for row in db.execute(stmt).scalars().all() if row]


def set_booking_reference(
    db: Session,
    order_id: int,
    booking_ref: str,
    booked_at: datetime,
) -> bool:
    """
    Stamps a booking reference on a still-pending order and commits.
    Returns False when the order already carries a reference.
    """
    stmt = (
        update(Order)
        .where(Order.id == order_id)
        .where(or_(Order.booking_ref.is_(None), Order.booking_ref == ""))
        .values(booking_ref=booking_ref, booking_created_at=booked_at)
        .execution_options(synchronize_session="fetch")
    )
    result = db.execute(stmt)
    db.commit()
    return bool(result.rowcount)


def list_studio_company_pairs(db: Session) -> list[tuple[str, str, str, str]]:
    """Distinct (studio_id, studio_name, qw_company_id, qw_company_name) seen in orders."""
    stmt = (
        select(
            Order.studio_id,
            Order.studio_name,
            Order.qw_company_id,
            Order.qw_company_name,
        )
        .where(Order.studio_id.is_not(None))
        .where(Order.studio_name.is_not(None))
        .where(Order.qw_company_id.is_not(None))
        .where(Order.qw_company_name.is_not(None))
        .distinct()
        .order_by(Order.studio_id, Order.qw_company_id)
    )
    return [tuple(row) for row in db.execute(stmt).all()]


def summarize_contents(db: Session, q: str | None = None) -> list[dict]:
    """Distinct (content_id, package_uuid) pairs with title, film id and booking count."""
    stmt = (
        select(
            Order.content_id,
            Order.package_uuid,
            func.max(Order.content_title).label("content_title"),
            func.max(Order.film_id).label("film_id"),
            func.count(Order.id).label("booking_count"),
        )
        .where(Order.content_id.is_not(None))
        .group_by(Order.content_id, Order.package_uuid)
        .order_by(Order.content_id, Order.package_uuid)
    )
    if q:
        like = f"%{q}%"
        stmt = stmt.having(
            or_(
                func.max(Order.content_title).ilike(like),
                Order.content_id.ilike(like),
                func.max(Order.film_id).ilike(like),
            )
        )
    return [dict(row._mapping) for row in db.execute(stmt).all()]
