from __future__ import annotations

from fastapi import Request

from app.services.booking_api_client import build_booking_client
from app.services.delivery_status_service import ClientFactory, DeliveryStatusMonitor


def get_booking_client_factory() -> ClientFactory:
    return build_booking_client


def get_status_monitor(request: Request) -> DeliveryStatusMonitor | None:
    return getattr(request.app.state, "status_monitor", None)
