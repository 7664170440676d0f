"""
Seed a demo admin and a handful of demo orders.

Tables seeded:
  - users / user_roles (demo@example.com as admin)
  - orders (three rows across two content ids, one already booked)
  - cpl_management (one CPL list for CONTENT-001)

Re-running is safe: rows are matched on email / order_id / mapping key.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.crud.cpl_mapping import get_mapping, join_cpl_list
from app.crud.user_roles import set_role
from app.db.session import SessionLocal
from app.models.cpl_mapping import ContentCplMapping
from app.models.orders import Order
from app.models.user_roles import ROLE_ADMIN
from app.models.users import User

DEMO_EMAIL = "demo@example.com"

DEMO_ORDERS: list[dict[str, Any]] = [
    {
        "order_id": "DEMO-ORD-001",
        "operation": "insert",
        "content_id": "CONTENT-001",
        "content_title": "Top Gun: Maverick",
        "package_uuid": "PKG-UUID-001",
        "film_id": "FILM-001",
        "theatre_id": "THR-001",
        "theatre_name": "AMC Empire 25",
        "theatre_city": "New York",
        "theatre_state": "NY",
        "theatre_country": "US",
        "playdate_begin": date(2024, 2, 1),
        "playdate_end": date(2024, 2, 14),
        "booker_name": "John Smith",
        "booker_email": "john.smith@amc.com",
        "studio_id": "STUDIO-PAR",
        "studio_name": "Paramount Pictures",
        "qw_company_id": "QW-001",
        "qw_company_name": "Qube Wire",
        "delivery_method": "Digital",
    },
    {
        "order_id": "DEMO-ORD-002",
        "operation": "update",
        "content_id": "CONTENT-001",
        "content_title": "Top Gun: Maverick",
        "package_uuid": "PKG-UUID-001",
        "film_id": "FILM-001",
        "theatre_id": "THR-002",
        "theatre_name": "Regal Union Square",
        "theatre_city": "New York",
        "theatre_state": "NY",
        "theatre_country": "US",
        "playdate_begin": date(2024, 2, 1),
        "playdate_end": date(2024, 2, 14),
        "booker_name": "Sarah Johnson",
        "booker_email": "sarah.j@regal.com",
        "studio_id": "STUDIO-PAR",
        "studio_name": "Paramount Pictures",
        "qw_company_id": "QW-001",
        "qw_company_name": "Qube Wire",
        "delivery_method": "Digital",
        "booking_ref": "QW-BOOK-001",
        "booking_created_at": datetime(2024, 1, 16, 9, 30),
    },
    {
        "order_id": "DEMO-ORD-003",
        "operation": "insert",
        "content_id": "CONTENT-002",
        "content_title": "Avatar: The Way of Water",
        "package_uuid": "PKG-UUID-002",
        "film_id": "FILM-002",
        "theatre_id": "THR-003",
        "theatre_name": "Cinemark Century City",
        "theatre_city": "Los Angeles",
        "theatre_state": "CA",
        "theatre_country": "US",
        "playdate_begin": date(2024, 2, 10),
        "playdate_end": date(2024, 2, 24),
        "booker_name": "Mike Davis",
        "booker_email": "mike.davis@cinemark.com",
        "studio_id": "STUDIO-20C",
        "studio_name": "20th Century Studios",
        "qw_company_id": "QW-001",
        "qw_company_name": "Qube Wire",
        "delivery_method": "Hard Drive",
    },
]


def _ensure_admin(db: Session) -> User:
    user = db.execute(select(User).where(User.email == DEMO_EMAIL)).scalar_one_or_none()
    if user is None:
        user = User(email=DEMO_EMAIL, name="Demo Admin")
        db.add(user)
        db.commit()
        db.refresh(user)
    set_role(db, user.id, ROLE_ADMIN)
    return user


def _ensure_orders(db: Session, user_id: int) -> int:
    existing = set(
        db.execute(
            select(Order.order_id).where(Order.order_id.in_([o["order_id"] for o in DEMO_ORDERS]))
        ).scalars().all()
    )
    new_objects = [Order(user_id=user_id, **data) for data in DEMO_ORDERS if data["order_id"] not in existing]
    if new_objects:
        db.add_all(new_objects)
        db.commit()
    return len(new_objects)


def _ensure_cpl_mapping(db: Session, user_id: int) -> None:
    if get_mapping(db, user_id=user_id, content_id="CONTENT-001", package_uuid="PKG-UUID-001"):
        return
    db.add(
        ContentCplMapping(
            user_id=user_id,
            content_id="CONTENT-001",
            package_uuid="PKG-UUID-001",
            content_title="Top Gun: Maverick",
            film_id="FILM-001",
            cpl_list=join_cpl_list(["urn:uuid:cpl-demo-0001", "urn:uuid:cpl-demo-0002"]),
        )
    )
    db.commit()


def main() -> None:
    db = SessionLocal()
    try:
        user = _ensure_admin(db)
        created = _ensure_orders(db, user.id)
        _ensure_cpl_mapping(db, user.id)
        print(f"Seeded demo data: admin={user.email} new_orders={created}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
