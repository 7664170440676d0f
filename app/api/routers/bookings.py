from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.api.deps.booking_services import get_booking_client_factory, get_status_monitor
from app.api.deps.role_access import require_identity, require_management
from app.db.session import get_db
from app.schemas.bookings import (
    BookingDashboard,
    DeliveryDetails,
    StatusBatchItem,
    StatusBatchRequest,
    SubmitReport,
)
from app.schemas.request_identity import RequestIdentity
from app.services.booking_overview_service import (
    build_booking_dashboard,
    build_delivery_details,
)
from app.services.booking_submit_service import submit_content_bookings
from app.services.delivery_status_service import (
    ClientFactory,
    DeliveryStatusMonitor,
    poll_content_statuses,
)

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("", response_model=BookingDashboard)
def list_bookings_api(
    q: str | None = Query(None, max_length=255),
    include_status: bool = Query(False),
    _identity: RequestIdentity = Depends(require_identity),
    client_factory: ClientFactory = Depends(get_booking_client_factory),
    monitor: DeliveryStatusMonitor | None = Depends(get_status_monitor),
    db: Session = Depends(get_db),
):
    return build_booking_dashboard(
        db,
        q=q,
        include_status=include_status,
        client_factory=client_factory,
        monitor=monitor,
    )


@router.post("/statuses", response_model=list[StatusBatchItem])
def poll_statuses_api(
    payload: StatusBatchRequest,
    _identity: RequestIdentity = Depends(require_identity),
    client_factory: ClientFactory = Depends(get_booking_client_factory),
    db: Session = Depends(get_db),
):
    results = poll_content_statuses(db, payload.content_ids, client_factory)
    return [
        StatusBatchItem(
            content_id=content_id,
            status_source=result.status_source,
            records=result.records,
            errors=result.errors,
        )
        for content_id, result in sorted(results.items())
    ]


@router.get("/{content_id}/deliveries", response_model=DeliveryDetails)
def get_deliveries_api(
    content_id: str,
    package_uuid: str | None = Query(None),
    _identity: RequestIdentity = Depends(require_identity),
    client_factory: ClientFactory = Depends(get_booking_client_factory),
    db: Session = Depends(get_db),
):
    details = build_delivery_details(
        db,
        content_id=content_id,
        package_uuid=package_uuid,
        client_factory=client_factory,
    )
    if details is None:
        raise HTTPException(status_code=404, detail=f"No orders found for content '{content_id}'")
    return details


@router.post("/{content_id}/submit", response_model=SubmitReport)
def submit_bookings_api(
    content_id: str,
    _identity: RequestIdentity = Depends(require_management),
    client_factory: ClientFactory = Depends(get_booking_client_factory),
    db: Session = Depends(get_db),
):
    return submit_content_bookings(db, content_id=content_id, client_factory=client_factory)
