from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import TimestampMixin


class Order(TimestampMixin, Base):
    """
    One theatrical delivery instruction as received from the booking feed.

    Content fields are written once on upload. The only later mutation is
    setting booking_ref / booking_created_at after a successful submission.
    """

    __tablename__ = "orders"

    __table_args__ = (
        Index("ix_orders_content_package", "content_id", "package_uuid"),
        Index("ix_orders_studio_company", "studio_id", "qw_company_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    order_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    operation: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Content
    content_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    content_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    package_uuid: Mapped[str | None] = mapped_column(String(255), nullable=True)
    film_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    media_type: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Theatre (feed side)
    theatre_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tmc_theatre_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    theatre_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    chain_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    theatre_address1: Mapped[str | None] = mapped_column(String(255), nullable=True)
    theatre_city: Mapped[str | None] = mapped_column(String(255), nullable=True)
    theatre_state: Mapped[str | None] = mapped_column(String(255), nullable=True)
    theatre_postal_code: Mapped[str | None] = mapped_column(String(255), nullable=True)
    theatre_country: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Theatre (wire company side)
    qw_theatre_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    qw_theatre_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    qw_theatre_city: Mapped[str | None] = mapped_column(String(255), nullable=True)
    qw_theatre_state: Mapped[str | None] = mapped_column(String(255), nullable=True)
    qw_theatre_country: Mapped[str | None] = mapped_column(String(255), nullable=True)
    qw_identifier: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Play window
    playdate_begin: Mapped[date | None] = mapped_column(Date, nullable=True)
    playdate_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    screening_time: Mapped[str | None] = mapped_column(String(255), nullable=True)
    screening_screen_no: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Booker
    booker_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    booker_phone: Mapped[str | None] = mapped_column(String(255), nullable=True)
    booker_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Distributor identity
    studio_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    studio_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    qw_company_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    qw_company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    partner_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Delivery handling
    delivery_method: Mapped[str | None] = mapped_column(String(255), nullable=True)
    return_method: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ship_hold_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    do_not_ship: Mapped[str | None] = mapped_column(String(255), nullable=True)
    hold_key_flag: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_no_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cancel_flag: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tmc_media_order_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tracking_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    wiretap_serial_number: Mapped[str | None] = mapped_column(String(255), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Set once a booking is accepted by the wire company.
    booking_ref: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    booking_created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    @property
    def is_pending(self) -> bool:
        return not (self.booking_ref or "").strip()

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, content='{self.content_id}', theatre='{self.theatre_id}')>"
