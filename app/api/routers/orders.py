from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.api.deps.role_access import require_identity, require_known_user
from app.crud.orders import count_orders, iter_all_orders, list_orders
from app.db.session import get_db
from app.schemas.orders import OrderPage, OrderUploadResult
from app.schemas.request_identity import RequestIdentity
from app.services.order_export_service import build_orders_workbook, export_filename
from app.services.order_ingestion_service import OrderUploadError, check_upload_size, ingest_orders

router = APIRouter(prefix="/orders", tags=["orders"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.post("/upload", response_model=OrderUploadResult, status_code=201)
async def upload_orders_api(
    request: Request,
    filename: str = Query(..., min_length=1, max_length=255),
    identity: RequestIdentity = Depends(require_known_user),
    db: Session = Depends(get_db),
):
    try:
        declared_length = request.headers.get("content-length")
        if declared_length and declared_length.isdigit():
            check_upload_size(int(declared_length))
        payload = await request.body()
        return await run_in_threadpool(
            ingest_orders,
            db,
            payload=payload,
            filename=filename,
            user_id=identity.user_id,
        )
    except OrderUploadError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("", response_model=OrderPage)
def list_orders_api(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    content_id: str | None = Query(None),
    q: str | None = Query(None, max_length=255),
    mine: bool = Query(False),
    identity: RequestIdentity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    user_id = identity.user_id if mine else None
    if mine and user_id is None:
        raise HTTPException(status_code=401, detail="Authenticated user is not registered in this system.")
    items = list_orders(db, skip=skip, limit=limit, user_id=user_id, content_id=content_id, q=q)
    total = count_orders(db, user_id=user_id, content_id=content_id, q=q)
    return {"items": items, "total": total, "skip": skip, "limit": limit}


@router.get("/export.xlsx")
def export_orders_api(
    mine: bool = Query(False),
    identity: RequestIdentity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    user_id = identity.user_id if mine else None
    if mine and user_id is None:
        raise HTTPException(status_code=401, detail="Authenticated user is not registered in this system.")
    output = build_orders_workbook(iter_all_orders(db, user_id=user_id))
    headers = {"Content-Disposition": f'attachment; filename="{export_filename()}"'}
    return StreamingResponse(output, headers=headers, media_type=XLSX_MEDIA_TYPE)
