from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .base import BaseSchema


def normalize_cpl_ids(values) -> list[str]:
    """
    Accepts a comma-separated string or a list of strings and returns the
    trimmed, de-duplicated identifiers in their original order.
    """
    if values is None:
        return []
    if isinstance(values, str):
        values = values.split(",")
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        token = str(value or "").strip()
        if token and token not in seen:
            seen.add(token)
            result.append(token)
    return result


class CplMappingUpsert(BaseModel):
    content_id: str = Field(min_length=1, max_length=255)
    package_uuid: str = Field(min_length=1, max_length=255)
    content_title: Optional[str] = Field(default=None, max_length=255)
    film_id: Optional[str] = Field(default=None, max_length=255)
    cpl_ids: list[str] = Field(default_factory=list)

    @field_validator("cpl_ids", mode="before")
    @classmethod
    def split_cpl_ids(cls, value):
        return normalize_cpl_ids(value)


class CplMappingOut(BaseSchema):
    id: int
    content_id: str
    package_uuid: str
    content_title: Optional[str] = None
    film_id: Optional[str] = None
    cpl_ids: list[str] = Field(default_factory=list)
    updated_at: Optional[datetime] = None


class ContentCplRow(BaseModel):
    content_id: str
    package_uuid: Optional[str] = None
    content_title: Optional[str] = None
    film_id: Optional[str] = None
    booking_count: int = 0
    cpl_ids: list[str] = Field(default_factory=list)
    updated_at: Optional[datetime] = None
