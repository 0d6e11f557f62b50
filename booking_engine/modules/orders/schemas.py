"""Order schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from booking_engine.core.enums import OrderStatusEnum, PaymentMethodEnum


class OrderCancelRequest(BaseModel):
    """Cancel order request."""

    reason: str | None = Field(default=None, max_length=512)


class OrderRead(BaseModel):
    """Order response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    merchant_id: UUID
    item_id: UUID
    customer_name: str
    customer_phone: str
    total: Decimal
    status: OrderStatusEnum
    payment_method: PaymentMethodEnum
    transaction_reference: str
    booking_details: dict
    canceled_at: datetime | None
    cancellation_reason: str | None
    created_at: datetime
    updated_at: datetime
