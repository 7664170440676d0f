from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.cpl_mapping import ContentCplMapping
from app.schemas.cpl_mapping import CplMappingUpsert, normalize_cpl_ids


class DuplicateError(Exception):
    """Raised when unique constraint is violated (user + content + package)."""


def split_cpl_list(text: str | None) -> list[str]:
    return normalize_cpl_ids(text)


def join_cpl_list(cpl_ids: Sequence[str]) -> str | None:
    normalized = normalize_cpl_ids(list(cpl_ids))
    return ", ".join(normalized) if normalized else None


def get_mapping(
    db: Session,
    *,
    user_id: int,
    content_id: str,
    package_uuid: str,
) -> ContentCplMapping | None:
    stmt = (
        select(ContentCplMapping)
        .where(ContentCplMapping.user_id == user_id)
        .where(ContentCplMapping.content_id == content_id)
        .where(ContentCplMapping.package_uuid == package_uuid)
    )
    return db.execute(stmt).scalar_one_or_none()


def upsert_mapping(db: Session, user_id: int, data: CplMappingUpsert) -> ContentCplMapping:
    """Last write wins; (user, content, package) is the upsert key."""
    obj = get_mapping(
        db,
        user_id=user_id,
        content_id=data.content_id,
        package_uuid=data.package_uuid,
    )
    if obj is None:
        obj = ContentCplMapping(
            user_id=user_id,
            content_id=data.content_id,
            package_uuid=data.package_uuid,
        )
        db.add(obj)

    if data.content_title is not None:
        obj.content_title = data.content_title
    if data.film_id is not None:
        obj.film_id = data.film_id
    obj.cpl_list = join_cpl_list(data.cpl_ids)

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateError("Mapping already exists (user + content + package must be unique).") from e
    db.refresh(obj)
    return obj


def list_mappings(
    db: Session,
    user_id: int | None = None,
    content_id: str | None = None,
) -> list[ContentCplMapping]:
    stmt = select(ContentCplMapping).order_by(
        ContentCplMapping.content_id,
        ContentCplMapping.package_uuid,
        ContentCplMapping.id,
    )
    if user_id is not None:
        stmt = stmt.where(ContentCplMapping.user_id == user_id)
    if content_id:
        stmt = stmt.where(ContentCplMapping.content_id == content_id)
    return list(db.execute(stmt).scalars().all())


def merged_cpl_ids_by_content(
    db: Session,
    content_ids: Sequence[str] | None = None,
) -> dict[str, list[str]]:
    """
    All CPL identifiers mapped for each content id, across packages and users,
    de-duplicated in a stable (content, package, row id) order.
    """
    stmt = select(ContentCplMapping).order_by(
        ContentCplMapping.content_id,
        ContentCplMapping.package_uuid,
        ContentCplMapping.id,
    )
    if content_ids is not None:
        if not content_ids:
            return {}
        stmt = stmt.where(ContentCplMapping.content_id.in_(list(content_ids)))

    merged: dict[str, list[str]] = {}
    for row in db.execute(stmt).scalars().all():
        current = merged.setdefault(row.content_id, [])
        for cpl_id in split_cpl_list(row.cpl_list):
            if cpl_id not in current:
                current.append(cpl_id)
    return merged
