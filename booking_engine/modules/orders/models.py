"""Order ORM models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Numeric, String
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booking_engine.core.database import Base, BaseModelMixin
from booking_engine.core.enums import OrderStatusEnum, PaymentMethodEnum

if TYPE_CHECKING:
    from booking_engine.modules.calendar.models import BookingWindow


class Order(BaseModelMixin, Base):
    """Customer order placed through a rental or service checkout."""

    __tablename__ = "orders"

    merchant_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), nullable=False, index=True)
    item_id: Mapped[UUID] = mapped_column(
        ForeignKey("bookable_items.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(64), nullable=False)
    customer_id_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[OrderStatusEnum] = mapped_column(
        SAEnum(OrderStatusEnum, name="order_status_enum", native_enum=False),
        default=OrderStatusEnum.PENDING_VERIFICATION,
        nullable=False,
        index=True,
    )
    payment_method: Mapped[PaymentMethodEnum] = mapped_column(
        SAEnum(PaymentMethodEnum, name="payment_method_enum", native_enum=False),
        nullable=False,
    )
    transaction_reference: Mapped[str] = mapped_column(String(128), nullable=False)
    booking_details: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)

    canceled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(String(512), nullable=True)

    window: Mapped[BookingWindow | None] = relationship(back_populates="order", uselist=False)
