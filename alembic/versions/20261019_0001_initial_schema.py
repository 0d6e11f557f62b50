"""Initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:30:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


module_kind_enum = sa.Enum("sale", "rental", "service", name="module_kind_enum", native_enum=False)
booking_status_enum = sa.Enum("pending", "confirmed", "cancelled", name="booking_status_enum", native_enum=False)
order_status_enum = sa.Enum(
    "pending_verification",
    "paid",
    "cancelled",
    "completed",
    name="order_status_enum",
    native_enum=False,
)
payment_method_enum = sa.Enum("orange_money", "wave", name="payment_method_enum", native_enum=False)


def _id_col() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False)


def _created_col() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def _updated_col() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    op.create_table(
        "bookable_items",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("merchant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("module_kind", module_kind_enum, nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("metadata", postgresql.JSONB(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_bookable_items_merchant_id", "bookable_items", ["merchant_id"], unique=False)
    op.create_index("ix_bookable_items_module_kind", "bookable_items", ["module_kind"], unique=False)

    op.create_table(
        "staff_members",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("merchant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("avatar_url", sa.String(length=1024), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_staff_members_merchant_id", "staff_members", ["merchant_id"], unique=False)

    op.create_table(
        "rooms",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("merchant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_rooms_merchant_id", "rooms", ["merchant_id"], unique=False)

    op.create_table(
        "orders",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("merchant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("item_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("customer_phone", sa.String(length=64), nullable=False),
        sa.Column("customer_id_number", sa.String(length=128), nullable=True),
        sa.Column("notes", sa.String(length=1024), nullable=True),
        sa.Column("total", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", order_status_enum, nullable=False),
        sa.Column("payment_method", payment_method_enum, nullable=False),
        sa.Column("transaction_reference", sa.String(length=128), nullable=False),
        sa.Column("booking_details", postgresql.JSONB(), nullable=False),
        sa.Column("canceled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.String(length=512), nullable=True),
        sa.ForeignKeyConstraint(
            ["item_id"],
            ["bookable_items.id"],
            name="fk_orders_item_id_bookable_items",
            ondelete="RESTRICT",
        ),
    )
    op.create_index("ix_orders_merchant_id", "orders", ["merchant_id"], unique=False)
    op.create_index("ix_orders_item_id", "orders", ["item_id"], unique=False)
    op.create_index("ix_orders_status", "orders", ["status"], unique=False)

    op.create_table(
        "booking_windows",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("item_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("order_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("module_kind", module_kind_enum, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("start_minute", sa.Integer(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("buffer_time_before", sa.Integer(), nullable=False),
        sa.Column("buffer_time_after", sa.Integer(), nullable=False),
        sa.Column("staff_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("room_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("status", booking_status_enum, nullable=False),
        sa.CheckConstraint("end_date >= start_date", name="ck_booking_windows_date_order"),
        sa.ForeignKeyConstraint(
            ["item_id"],
            ["bookable_items.id"],
            name="fk_booking_windows_item_id_bookable_items",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["order_id"],
            ["orders.id"],
            name="fk_booking_windows_order_id_orders",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["staff_id"],
            ["staff_members.id"],
            name="fk_booking_windows_staff_id_staff_members",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(["room_id"], ["rooms.id"], name="fk_booking_windows_room_id_rooms", ondelete="SET NULL"),
        sa.UniqueConstraint("order_id", name="uq_booking_windows_order_id"),
    )
    op.create_index("ix_booking_windows_item_id", "booking_windows", ["item_id"], unique=False)
    op.create_index("ix_booking_windows_start_date", "booking_windows", ["start_date"], unique=False)
    op.create_index("ix_booking_windows_end_date", "booking_windows", ["end_date"], unique=False)
    op.create_index("ix_booking_windows_staff_id", "booking_windows", ["staff_id"], unique=False)
    op.create_index("ix_booking_windows_room_id", "booking_windows", ["room_id"], unique=False)
    op.create_index("ix_booking_windows_status", "booking_windows", ["status"], unique=False)

    op.create_table(
        "rental_calendar_days",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("item_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("booked_date", sa.Date(), nullable=False),
        sa.Column("window_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["item_id"],
            ["bookable_items.id"],
            name="fk_rental_calendar_days_item_id_bookable_items",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["window_id"],
            ["booking_windows.id"],
            name="fk_rental_calendar_days_window_id_booking_windows",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("item_id", "booked_date", name="uq_rental_calendar_days_item_id_booked_date"),
    )
    op.create_index("ix_rental_calendar_days_window_id", "rental_calendar_days", ["window_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_rental_calendar_days_window_id", table_name="rental_calendar_days")
    op.drop_table("rental_calendar_days")

    op.drop_index("ix_booking_windows_status", table_name="booking_windows")
    op.drop_index("ix_booking_windows_room_id", table_name="booking_windows")
    op.drop_index("ix_booking_windows_staff_id", table_name="booking_windows")
    op.drop_index("ix_booking_windows_end_date", table_name="booking_windows")
    op.drop_index("ix_booking_windows_start_date", table_name="booking_windows")
    op.drop_index("ix_booking_windows_item_id", table_name="booking_windows")
    op.drop_table("booking_windows")

    op.drop_index("ix_orders_status", table_name="orders")
    op.drop_index("ix_orders_item_id", table_name="orders")
    op.drop_index("ix_orders_merchant_id", table_name="orders")
    op.drop_table("orders")

    op.drop_index("ix_rooms_merchant_id", table_name="rooms")
    op.drop_table("rooms")

    op.drop_index("ix_staff_members_merchant_id", table_name="staff_members")
    op.drop_table("staff_members")

    op.drop_index("ix_bookable_items_module_kind", table_name="bookable_items")
    op.drop_index("ix_bookable_items_merchant_id", table_name="bookable_items")
    op.drop_table("bookable_items")
