from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base

ROLE_ADMIN = "admin"
ROLE_CLIENT_SERVICE = "client_service"
ROLE_VIEWER = "viewer"

VALID_ROLES = (ROLE_ADMIN, ROLE_CLIENT_SERVICE, ROLE_VIEWER)

# Roles allowed to see distributor and user management.
MANAGEMENT_ROLES = (ROLE_ADMIN, ROLE_CLIENT_SERVICE)


class UserRole(Base):
    __tablename__ = "user_roles"

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_user_roles_user"),
        CheckConstraint(
            "role IN ('admin', 'client_service', 'viewer')",
            name="ck_user_roles_role",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    role: Mapped[str] = mapped_column(String(32), nullable=False, default=ROLE_VIEWER)
