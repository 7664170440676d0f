from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .base import BaseSchema


class DistributorCreate(BaseModel):
    studio_id: str = Field(min_length=1, max_length=255)
    studio_name: str = Field(min_length=1, max_length=255)
    qw_company_id: str = Field(min_length=1, max_length=255)
    qw_company_name: str = Field(min_length=1, max_length=255)
    # Plain personal access token; encoded before it reaches the store.
    access_token: Optional[str] = Field(default=None, max_length=4096)


class DistributorPromote(BaseModel):
    studio_id: str = Field(min_length=1, max_length=255)
    qw_company_id: str = Field(min_length=1, max_length=255)
    access_token: Optional[str] = Field(default=None, max_length=4096)


class DistributorCredentialUpdate(BaseModel):
    # Empty or missing clears the stored credential.
    access_token: Optional[str] = Field(default=None, max_length=4096)


class DistributorOut(BaseSchema):
    id: Optional[int] = None
    studio_id: str
    studio_name: str
    qw_company_id: str
    qw_company_name: str
    has_credential: bool = False
    is_from_orders: bool = False
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DistributorPage(BaseModel):
    items: list[DistributorOut]
    total: int
    skip: int
    limit: int
