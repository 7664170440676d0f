from datetime import date, datetime
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

DisplayStatus = Literal[
    "pending", "shipped", "downloading", "delivered", "downloaded", "cancelled"
]
StatusSource = Literal["external", "local"]


class DeliveryStatusRecord(BaseModel):
    """One delivery-status entry as returned by the booking API."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    delivery_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("dcpDeliveryId", "booking_id", "delivery_id"),
    )
    theatre_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("theatreId", "theatre_id"),
    )
    theatre_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("theatreName", "theatre_name"),
    )
    status: str = "pending"
    progress: Optional[float] = None
    delivery_type: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("deliveryType", "delivery_type"),
    )
    delivery_details: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("deliveryDetails", "delivery_details"),
    )


class BookingSummary(BaseModel):
    content_id: str
    content_title: Optional[str] = None
    package_uuids: list[str] = Field(default_factory=list)
    cpl_ids: list[str] = Field(default_factory=list)
    has_cpl: bool = False
    booking_count: int = 0
    pending_bookings: int = 0
    shipped: int = 0
    downloading: int = 0
    completed: int = 0
    cancelled: int = 0
    completion_rate: int = 0
    updated_on: Optional[datetime] = None
    status_source: StatusSource = "local"
    status_snapshot: list[DeliveryStatusRecord] = Field(default_factory=list)


class BookingTotals(BaseModel):
    total_bookings: int = 0
    total_pending: int = 0
    total_completed: int = 0
    success_rate: int = 0


class BookingDashboard(BaseModel):
    items: list[BookingSummary]
    totals: BookingTotals
    warnings: list[str] = Field(default_factory=list)


class SkippedOrder(BaseModel):
    order_id: int
    order_ref: Optional[str] = None
    theatre_name: Optional[str] = None
    reason: str


class SubmitReport(BaseModel):
    content_id: str
    outcome: Literal["submitted", "partial", "failed", "noop"]
    created_count: int = 0
    failed_distributors: list[str] = Field(default_factory=list)
    skipped_orders: list[SkippedOrder] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    message: str = ""


class DeliveryRow(BaseModel):
    id: int
    order_ref: Optional[str] = None
    theatre_id: Optional[str] = None
    theatre_name: Optional[str] = None
    location: str = ""
    delivery_type: str
    playdate_begin: Optional[date] = None
    playdate_end: Optional[date] = None
    booking_ref: Optional[str] = None
    booking_created_at: Optional[datetime] = None
    status: DisplayStatus
    progress: Optional[float] = None


class DeliveryDetails(BaseModel):
    content_id: str
    content_title: Optional[str] = None
    film_id: Optional[str] = None
    package_uuid: Optional[str] = None
    status_source: StatusSource = "local"
    warning: Optional[str] = None
    deliveries: list[DeliveryRow] = Field(default_factory=list)


class StatusBatchRequest(BaseModel):
    content_ids: list[str] = Field(min_length=1, max_length=200)


class StatusBatchItem(BaseModel):
    content_id: str
    status_source: StatusSource
    records: list[DeliveryStatusRecord] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class ConnectionTestRequest(BaseModel):
    access_token: Optional[str] = Field(default=None, max_length=4096)
    distributor_id: Optional[int] = Field(default=None, ge=1)


class ConnectionTestResult(BaseModel):
    success: bool
    message: str
