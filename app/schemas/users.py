from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

RoleName = Literal["admin", "client_service", "viewer"]
UserStatus = Literal["active", "inactive"]


class UserCreate(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(default=None, max_length=150)
    role: RoleName = "viewer"


class UserRoleUpdate(BaseModel):
    role: RoleName


class UserStatusUpdate(BaseModel):
    status: UserStatus


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: Optional[str] = None
    status: str
    last_login: Optional[datetime] = None
    created_at: datetime
    role: RoleName = "viewer"


class UserPage(BaseModel):
    items: list[UserOut]
    total: int
    skip: int
    limit: int


class MeOut(BaseModel):
    user_id: int
    email: str
    role: RoleName
    status: str
    can_manage: bool
