from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.deps.role_access import require_management
from app.crud.distributors import DuplicateError, create_distributor, update_credential
from app.db.session import get_db
from app.schemas.distributors import (
    DistributorCreate,
    DistributorCredentialUpdate,
    DistributorOut,
    DistributorPage,
    DistributorPromote,
)
from app.schemas.request_identity import RequestIdentity
from app.services.distributor_directory_service import (
    distributor_directory,
    find_order_candidate,
)
from app.services.distributor_resolver import encode_credential

router = APIRouter(prefix="/distributors", tags=["distributors"])


@router.get("", response_model=DistributorPage)
def list_distributors_api(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    q: str | None = Query(None, max_length=255),
    sort_by: str = Query("studio_name", pattern="^(studio_id|studio_name|qw_company_name)$"),
    order: str = Query("asc", pattern="^(asc|desc)$"),
    _identity: RequestIdentity = Depends(require_management),
    db: Session = Depends(get_db),
):
    items = distributor_directory(db, q=q, sort_by=sort_by, descending=order == "desc")
    return {"items": items[skip : skip + limit], "total": len(items), "skip": skip, "limit": limit}


@router.post("", response_model=DistributorOut, status_code=status.HTTP_201_CREATED)
def create_distributor_api(
    payload: DistributorCreate,
    identity: RequestIdentity = Depends(require_management),
    db: Session = Depends(get_db),
):
    try:
        return create_distributor(
            db,
            studio_id=payload.studio_id.strip(),
            studio_name=payload.studio_name.strip(),
            qw_company_id=payload.qw_company_id.strip(),
            qw_company_name=payload.qw_company_name.strip(),
            encoded_token=encode_credential(payload.access_token),
            user_id=identity.user_id,
            updated_by=identity.email,
        )
    except DuplicateError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/promote", response_model=DistributorOut, status_code=status.HTTP_201_CREATED)
def promote_distributor_api(
    payload: DistributorPromote,
    identity: RequestIdentity = Depends(require_management),
    db: Session = Depends(get_db),
):
    candidate = find_order_candidate(db, payload.studio_id.strip(), payload.qw_company_id.strip())
    if candidate is None:
        raise HTTPException(status_code=404, detail="Studio / company pair not found in orders")
    try:
        return create_distributor(
            db,
            studio_id=candidate.studio_id,
            studio_name=candidate.studio_name,
            qw_company_id=candidate.qw_company_id,
            qw_company_name=candidate.qw_company_name,
            encoded_token=encode_credential(payload.access_token),
            user_id=identity.user_id,
            updated_by=identity.email,
        )
    except DuplicateError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.patch("/{distributor_id}/credential", response_model=DistributorOut)
def update_credential_api(
    distributor_id: int,
    payload: DistributorCredentialUpdate,
    identity: RequestIdentity = Depends(require_management),
    db: Session = Depends(get_db),
):
    obj = update_credential(
        db,
        distributor_id,
        encode_credential(payload.access_token),
        updated_by=identity.email,
    )
    if not obj:
        raise HTTPException(status_code=404, detail="Distributor not found")
    return obj
