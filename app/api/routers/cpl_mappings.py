from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.api.deps.role_access import require_identity, require_management
from app.crud.cpl_mapping import (
    DuplicateError,
    list_mappings,
    split_cpl_list,
    upsert_mapping,
)
from app.crud.orders import summarize_contents
from app.db.session import get_db
from app.models.cpl_mapping import ContentCplMapping
from app.schemas.cpl_mapping import ContentCplRow, CplMappingOut, CplMappingUpsert
from app.schemas.request_identity import RequestIdentity

router = APIRouter(prefix="/cpl-mappings", tags=["cpl-mappings"])


def _to_out(obj: ContentCplMapping) -> CplMappingOut:
    return CplMappingOut(
        id=obj.id,
        content_id=obj.content_id,
        package_uuid=obj.package_uuid,
        content_title=obj.content_title,
        film_id=obj.film_id,
        cpl_ids=split_cpl_list(obj.cpl_list),
        updated_at=obj.updated_at,
    )


@router.get("", response_model=list[CplMappingOut])
def list_cpl_mappings_api(
    content_id: str | None = Query(None),
    identity: RequestIdentity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    if identity.user_id is None:
        return []
    return [_to_out(obj) for obj in list_mappings(db, user_id=identity.user_id, content_id=content_id)]


@router.put("", response_model=CplMappingOut)
def upsert_cpl_mapping_api(
    payload: CplMappingUpsert,
    identity: RequestIdentity = Depends(require_management),
    db: Session = Depends(get_db),
):
    try:
        return _to_out(upsert_mapping(db, identity.user_id, payload))
    except DuplicateError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/contents", response_model=list[ContentCplRow])
def list_contents_api(
    q: str | None = Query(None, max_length=255),
    identity: RequestIdentity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    mappings = {}
    if identity.user_id is not None:
        mappings = {
            (m.content_id, m.package_uuid): m
            for m in list_mappings(db, user_id=identity.user_id)
        }
    rows = []
    for item in summarize_contents(db, q=q):
        mapping = mappings.get((item["content_id"], item["package_uuid"]))
        rows.append(
            ContentCplRow(
                **item,
                cpl_ids=split_cpl_list(mapping.cpl_list) if mapping else [],
                updated_at=mapping.updated_at if mapping else None,
            )
        )
    return rows
