from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.deps.role_access import require_admin, require_management
from app.crud.user_roles import get_role_name, role_names_by_user, set_role
from app.crud.users import (
    DuplicateError,
    count_users,
    create_user,
    get_user,
    list_users,
    update_status,
)
from app.db.session import get_db
from app.models.user_roles import ROLE_VIEWER
from app.models.users import User
from app.schemas.request_identity import RequestIdentity
from app.schemas.users import (
    UserCreate,
    UserOut,
    UserPage,
    UserRoleUpdate,
    UserStatusUpdate,
)

router = APIRouter(prefix="/users", tags=["users"])


def _to_out(user: User, role: str) -> UserOut:
    out = UserOut.model_validate(user)
    out.role = role
    return out


@router.get("", response_model=UserPage)
def list_users_api(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    status_filter: str | None = Query(None, alias="status", pattern="^(active|inactive)$"),
    _identity: RequestIdentity = Depends(require_management),
    db: Session = Depends(get_db),
):
    users = list_users(db, skip=skip, limit=limit, status=status_filter)
    roles = role_names_by_user(db, [u.id for u in users])
    return {
        "items": [_to_out(u, roles.get(u.id, ROLE_VIEWER)) for u in users],
        "total": count_users(db, status=status_filter),
        "skip": skip,
        "limit": limit,
    }


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user_api(
    payload: UserCreate,
    _identity: RequestIdentity = Depends(require_management),
    db: Session = Depends(get_db),
):
    try:
        user = create_user(db, email=payload.email, name=payload.name)
    except DuplicateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if payload.role != ROLE_VIEWER:
        set_role(db, user.id, payload.role)
    return _to_out(user, payload.role)


@router.patch("/{user_id}/role", response_model=UserOut)
def update_user_role_api(
    user_id: int,
    payload: UserRoleUpdate,
    _identity: RequestIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    set_role(db, user_id, payload.role)
    return _to_out(user, payload.role)


@router.patch("/{user_id}/status", response_model=UserOut)
def update_user_status_api(
    user_id: int,
    payload: UserStatusUpdate,
    _identity: RequestIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = update_status(db, user_id, payload.status)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return _to_out(user, get_role_name(db, user_id))
