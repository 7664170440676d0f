from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import TimestampMixin


class ContentCplMapping(TimestampMixin, Base):
    """Per-user list of CPL identifiers for a (content, package) pair."""

    __tablename__ = "cpl_management"

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "content_id",
            "package_uuid",
            name="uq_cpl_management_user_content_package",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    content_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    package_uuid: Mapped[str] = mapped_column(String(255), nullable=False)
    content_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    film_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Comma-joined at rest; callers go through app.crud.cpl_mapping helpers.
    cpl_list: Mapped[str | None] = mapped_column(Text, nullable=True)
