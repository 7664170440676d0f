from __future__ import annotations

import os
import sys
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import importlib

fastapi_app = importlib.import_module("app.main").app
from app.api.deps.booking_services import get_booking_client_factory
from app.core.config import settings
from app.db.base import Base
from app.db.session import get_db
from app.models.distributors import Distributor
from app.models.orders import Order
from app.models.user_roles import UserRole
from app.models.users import User
from app.services.booking_api_client import BookingApiError
from app.services.distributor_resolver import encode_credential

# Ensure all models are registered with SQLAlchemy metadata
import app.models  # noqa: F401


class FakeBookingApi:
    """In-memory stand-in for the booking API, keyed by access token."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.create_failures: dict[str, str] = {}
        self.status_failures: dict[str, str] = {}
        self.statuses: dict[str, list[dict]] = {}
        self.empty_response_tokens: set[str] = set()
        self.response_limits: dict[str, int] = {}

    def factory(self, token: str) -> "FakeBookingClient":
        return FakeBookingClient(self, token)


class FakeBookingClient:
    def __init__(self, api: FakeBookingApi, token: str) -> None:
        self.api = api
        self.token = token

    def create_bookings(self, client_reference_id, deliveries):
        self.api.calls.append(("create", self.token, client_reference_id, deliveries))
        if not self.token:
            raise BookingApiError("Personal Access Token (PAT) not configured for this distributor.")
        if self.token in self.api.create_failures:
            raise BookingApiError(self.api.create_failures[self.token], status_code=500)
        if self.token in self.api.empty_response_tokens:
            return {"dcpDeliveries": []}
        created = [
            {**item, "dcpDeliveryId": f"DLV-{self.token}-{idx}", "status": "pending"}
            for idx, item in enumerate(deliveries, start=1)
        ]
        if self.token in self.api.response_limits:
            created = created[: self.api.response_limits[self.token]]
        return {"dcpDeliveries": created}

    def get_delivery_statuses(self, content_id, package_uuid=None):
        self.api.calls.append(("status", self.token, content_id))
        if self.token in self.api.status_failures:
            raise BookingApiError(self.api.status_failures[self.token], status_code=401)
        return list(self.api.statuses.get(content_id, []))

    def test_connection(self):
        self.api.calls.append(("health", self.token))
        if not self.token:
            return {"success": False, "message": "Personal Access Token (PAT) not configured for this distributor."}
        return {"success": True, "message": "Connection successful"}


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def db_session(engine):
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def booking_api():
    return FakeBookingApi()


@pytest.fixture(scope="function")
def client(engine, booking_api, monkeypatch):
    monkeypatch.setattr(settings, "AUTH_MODE", "legacy_header")
    monkeypatch.setattr(settings, "STATUS_POLL_ENABLED", False)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    fastapi_app.dependency_overrides[get_booking_client_factory] = lambda: booking_api.factory
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    def _make(email: str, role: str | None = None, status: str = "active") -> User:
        user = User(email=email, name=email.split("@")[0], status=status)
        db_session.add(user)
        db_session.commit()
        if role is not None:
            db_session.add(UserRole(user_id=user.id, role=role))
            db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_order(db_session):
    def _make(user: User, **fields) -> Order:
        data = {
            "content_id": "C1",
            "content_title": "Demo Feature",
            "package_uuid": "PKG-1",
            "theatre_id": "THR-1",
            "theatre_name": "Plaza 8",
            "playdate_begin": date(2024, 2, 1),
            "playdate_end": date(2024, 2, 14),
        }
        data.update(fields)
        order = Order(user_id=user.id, **data)
        db_session.add(order)
        db_session.commit()
        db_session.refresh(order)
        return order

    return _make


@pytest.fixture
def make_distributor(db_session):
    def _make(user: User, studio_id: str, qw_company_id: str, token: str | None = None, **fields) -> Distributor:
        obj = Distributor(
            studio_id=studio_id,
            studio_name=fields.pop("studio_name", f"Studio {studio_id}"),
            qw_company_id=qw_company_id,
            qw_company_name=fields.pop("qw_company_name", f"Company {qw_company_id}"),
            qw_pat_encrypted=encode_credential(token),
            user_id=user.id,
            **fields,
        )
        db_session.add(obj)
        db_session.commit()
        db_session.refresh(obj)
        return obj

    return _make
