from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps.booking_services import get_booking_client_factory
from app.api.deps.role_access import require_management
from app.crud.distributors import get_distributor
from app.db.session import get_db
from app.schemas.bookings import ConnectionTestRequest, ConnectionTestResult
from app.schemas.request_identity import RequestIdentity
from app.services.delivery_status_service import ClientFactory
from app.services.distributor_resolver import CredentialDecodeError, decode_credential

router = APIRouter(prefix="/booking-api", tags=["booking-api"])


@router.post("/test-connection", response_model=ConnectionTestResult)
def test_connection_api(
    payload: ConnectionTestRequest,
    _identity: RequestIdentity = Depends(require_management),
    client_factory: ClientFactory = Depends(get_booking_client_factory),
    db: Session = Depends(get_db),
):
    token = (payload.access_token or "").strip() or None
    if token is None and payload.distributor_id is not None:
        distributor = get_distributor(db, payload.distributor_id)
        if not distributor:
            raise HTTPException(status_code=404, detail="Distributor not found")
        try:
            token = decode_credential(distributor.qw_pat_encrypted)
        except CredentialDecodeError as e:
            return ConnectionTestResult(success=False, message=str(e))
    return ConnectionTestResult(**client_factory(token or "").test_connection())
