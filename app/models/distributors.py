from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import TimestampMixin


class Distributor(TimestampMixin, Base):
    """
    A studio / wire-company pairing allowed to submit bookings.
    qw_pat_encrypted holds the base64-encoded personal access token.
    """

    __tablename__ = "distributors"

    __table_args__ = (
        UniqueConstraint("studio_id", "qw_company_id", name="uq_distributors_studio_company"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    studio_id: Mapped[str] = mapped_column(String(255), nullable=False)
    studio_name: Mapped[str] = mapped_column(String(255), nullable=False)
    qw_company_id: Mapped[str] = mapped_column(String(255), nullable=False)
    qw_company_name: Mapped[str] = mapped_column(String(255), nullable=False)

    qw_pat_encrypted: Mapped[str | None] = mapped_column(Text, nullable=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    updated_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    @property
    def has_credential(self) -> bool:
        return bool((self.qw_pat_encrypted or "").strip())

    def __repr__(self) -> str:
        return f"<Distributor(studio='{self.studio_id}', company='{self.qw_company_id}')>"
