"""create reelwire core tables

Revision ID: 3e5a7c9d1b20
Revises:
Create Date: 2026-10-19 09:12:44.271903

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3e5a7c9d1b20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Free-text feed columns on orders, all String(255) NULL.
_ORDER_TEXT_COLUMNS = [
    "order_id",
    "content_id",
    "content_title",
    "package_uuid",
    "film_id",
    "media_type",
    "theatre_id",
    "tmc_theatre_id",
    "theatre_name",
    "chain_name",
    "theatre_address1",
    "theatre_city",
    "theatre_state",
    "theatre_postal_code",
    "theatre_country",
    "qw_theatre_id",
    "qw_theatre_name",
    "qw_theatre_city",
    "qw_theatre_state",
    "qw_theatre_country",
    "qw_identifier",
    "screening_time",
    "screening_screen_no",
    "booker_name",
    "booker_phone",
    "booker_email",
    "studio_id",
    "studio_name",
    "qw_company_id",
    "qw_company_name",
    "partner_name",
    "delivery_method",
    "return_method",
    "ship_hold_type",
    "do_not_ship",
    "hold_key_flag",
    "is_no_key",
    "cancel_flag",
    "tmc_media_order_id",
    "tracking_id",
    "wiretap_serial_number",
    "booking_ref",
]


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=150), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("last_login", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("status IN ('active', 'inactive')", name="ck_users_status"),
    )

    op.create_table(
        "user_roles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="viewer"),
        sa.UniqueConstraint("user_id", name="uq_user_roles_user"),
        sa.CheckConstraint(
            "role IN ('admin', 'client_service', 'viewer')",
            name="ck_user_roles_role",
        ),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("operation", sa.String(length=20), nullable=True),
        *[sa.Column(name, sa.String(length=255), nullable=True) for name in _ORDER_TEXT_COLUMNS],
        sa.Column("playdate_begin", sa.Date(), nullable=True),
        sa.Column("playdate_end", sa.Date(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("booking_created_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_orders_user_id", "orders", ["user_id"])
    op.create_index("ix_orders_content_id", "orders", ["content_id"])
    op.create_index("ix_orders_booking_ref", "orders", ["booking_ref"])
    op.create_index("ix_orders_content_package", "orders", ["content_id", "package_uuid"])
    op.create_index("ix_orders_studio_company", "orders", ["studio_id", "qw_company_id"])

    op.create_table(
        "cpl_management",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content_id", sa.String(length=255), nullable=False),
        sa.Column("package_uuid", sa.String(length=255), nullable=False),
        sa.Column("content_title", sa.String(length=255), nullable=True),
        sa.Column("film_id", sa.String(length=255), nullable=True),
        sa.Column("cpl_list", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "user_id",
            "content_id",
            "package_uuid",
            name="uq_cpl_management_user_content_package",
        ),
    )
    op.create_index("ix_cpl_management_content_id", "cpl_management", ["content_id"])

    op.create_table(
        "distributors",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("studio_id", sa.String(length=255), nullable=False),
        sa.Column("studio_name", sa.String(length=255), nullable=False),
        sa.Column("qw_company_id", sa.String(length=255), nullable=False),
        sa.Column("qw_company_name", sa.String(length=255), nullable=False),
        sa.Column("qw_pat_encrypted", sa.Text(), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("updated_by", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("studio_id", "qw_company_id", name="uq_distributors_studio_company"),
    )


def downgrade() -> None:
    op.drop_table("distributors")
    op.drop_index("ix_cpl_management_content_id", table_name="cpl_management")
    op.drop_table("cpl_management")
    op.drop_index("ix_orders_studio_company", table_name="orders")
    op.drop_index("ix_orders_content_package", table_name="orders")
    op.drop_index("ix_orders_booking_ref", table_name="orders")
    op.drop_index("ix_orders_content_id", table_name="orders")
    op.drop_index("ix_orders_user_id", table_name="orders")
    op.drop_table("orders")
    op.drop_table("user_roles")
    op.drop_table("users")
