from __future__ import annotations

from sqlalchemy.orm import Session

from app.crud.distributors import list_distributors
from app.crud.orders import list_studio_company_pairs
from app.schemas.distributors import DistributorOut

SORT_FIELDS = ("studio_id", "studio_name", "qw_company_name")


def list_order_candidates(db: Session) -> list[DistributorOut]:
    """
    (studio, company) pairs observed in orders with all four identity fields
    present that have no stored distributor yet.
    """
    stored = {(d.studio_id, d.qw_company_id) for d in list_distributors(db)}
    candidates: dict[tuple[str, str], DistributorOut] = {}
    for studio_id, studio_name, company_id, company_name in list_studio_company_pairs(db):
        key = (studio_id, company_id)
        if key in stored or key in candidates:
            continue
        candidates[key] = DistributorOut(
            studio_id=studio_id,
            studio_name=studio_name,
            qw_company_id=company_id,
            qw_company_name=company_name,
            is_from_orders=True,
        )
    return list(candidates.values())


def find_order_candidate(db: Session, studio_id: str, qw_company_id: str) -> DistributorOut | None:
    for studio, studio_name, company, company_name in list_studio_company_pairs(db):
        if studio == studio_id and company == qw_company_id:
            return DistributorOut(
                studio_id=studio,
                studio_name=studio_name,
                qw_company_id=company,
                qw_company_name=company_name,
                is_from_orders=True,
            )
    return None


def _matches(item: DistributorOut, q: str) -> bool:
    needle = q.strip().lower()
    return any(
        needle in (value or "").lower()
        for value in (item.studio_id, item.studio_name, item.qw_company_id, item.qw_company_name)
    )


def distributor_directory(
    db: Session,
    *,
    q: str | None = None,
    sort_by: str = "studio_name",
    descending: bool = False,
) -> list[DistributorOut]:
    items = [DistributorOut.model_validate(d) for d in list_distributors(db)]
    items.extend(list_order_candidates(db))
    if q:
        items = [item for item in items if _matches(item, q)]
    field = sort_by if sort_by in SORT_FIELDS else "studio_name"
    items.sort(key=lambda item: ((getattr(item, field) or "").lower(), item.qw_company_id), reverse=descending)
    return items
