from datetime import date, datetime
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

from .base import BaseSchema

ORDER_OPERATIONS = ("insert", "update", "cancel")

_Text = Optional[str]


def _text_field(max_length: int = 255):
    return Field(default=None, max_length=max_length)


class OrderRow(BaseModel):
    """
    One validated CSV data row. Unknown columns are dropped; blank cells
    become None so optional fields stay optional.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    order_id: _Text = _text_field()
    operation: _Text = _text_field(20)

    content_id: _Text = _text_field()
    content_title: _Text = _text_field()
    package_uuid: _Text = _text_field()
    film_id: _Text = _text_field()
    media_type: _Text = _text_field()

    theatre_id: _Text = _text_field()
    tmc_theatre_id: _Text = _text_field()
    theatre_name: _Text = _text_field()
    chain_name: _Text = _text_field()
    theatre_address1: _Text = _text_field()
    theatre_city: _Text = _text_field()
    theatre_state: _Text = _text_field()
    theatre_postal_code: _Text = _text_field()
    theatre_country: _Text = _text_field()

    qw_theatre_id: _Text = _text_field()
    qw_theatre_name: _Text = _text_field()
    qw_theatre_city: _Text = _text_field()
    qw_theatre_state: _Text = _text_field()
    qw_theatre_country: _Text = _text_field()
    qw_identifier: _Text = _text_field()

    playdate_begin: Optional[date] = None
    playdate_end: Optional[date] = None
    screening_time: _Text = _text_field()
    screening_screen_no: _Text = _text_field()

    booker_name: _Text = _text_field()
    booker_phone: _Text = _text_field()
    booker_email: Optional[EmailStr] = None

    studio_id: _Text = _text_field()
    studio_name: _Text = _text_field()
    qw_company_id: _Text = _text_field()
    qw_company_name: _Text = _text_field()
    partner_name: _Text = _text_field()

    delivery_method: _Text = _text_field()
    return_method: _Text = _text_field()
    ship_hold_type: _Text = _text_field()
    do_not_ship: _Text = _text_field()
    hold_key_flag: _Text = _text_field()
    is_no_key: _Text = _text_field()
    cancel_flag: _Text = _text_field()
    tmc_media_order_id: _Text = _text_field()
    tracking_id: _Text = _text_field()
    wiretap_serial_number: _Text = _text_field()
    note: _Text = _text_field(2000)

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("operation")
    @classmethod
    def validate_operation(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.lower()
        if normalized not in ORDER_OPERATIONS:
            raise ValueError("operation must be one of insert, update, cancel")
        return normalized

    @model_validator(mode="after")
    def validate_play_window(self):
        if (
            self.playdate_begin is not None
            and self.playdate_end is not None
            and self.playdate_end < self.playdate_begin
        ):
            raise ValueError("playdate_end must not be before playdate_begin")
        return self


class OrderOut(BaseSchema):
    id: int
    user_id: int
    order_id: Optional[str] = None
    operation: Optional[str] = None
    content_id: Optional[str] = None
    content_title: Optional[str] = None
    package_uuid: Optional[str] = None
    film_id: Optional[str] = None
    theatre_id: Optional[str] = None
    qw_theatre_id: Optional[str] = None
    theatre_name: Optional[str] = None
    theatre_city: Optional[str] = None
    theatre_state: Optional[str] = None
    theatre_country: Optional[str] = None
    playdate_begin: Optional[date] = None
    playdate_end: Optional[date] = None
    booker_name: Optional[str] = None
    booker_phone: Optional[str] = None
    booker_email: Optional[str] = None
    studio_id: Optional[str] = None
    studio_name: Optional[str] = None
    qw_company_id: Optional[str] = None
    qw_company_name: Optional[str] = None
    delivery_method: Optional[str] = None
    booking_ref: Optional[str] = None
    booking_created_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class OrderPage(BaseModel):
    items: list[OrderOut]
    total: int
    skip: int
    limit: int


class OrderUploadResult(BaseModel):
    filename: str
    inserted: int
    operations: dict[str, int] = Field(default_factory=dict)
