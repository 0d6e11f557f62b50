"""Order repository layer."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.enums import OrderStatusEnum, PaymentMethodEnum
from booking_engine.modules.orders.models import Order


class OrdersRepository:
    """DB operations for orders."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_order(
        self,
        *,
        merchant_id: UUID,
        item_id: UUID,
        customer_name: str,
        customer_phone: str,
        customer_id_number: str | None,
        notes: str | None,
        total: Decimal,
        payment_method: PaymentMethodEnum,
        transaction_reference: str,
        booking_details: dict,
    ) -> Order:
        order = Order(
            merchant_id=merchant_id,
            item_id=item_id,
            customer_name=customer_name,
            customer_phone=customer_phone,
            customer_id_number=customer_id_number,
            notes=notes,
            total=total,
            status=OrderStatusEnum.PENDING_VERIFICATION,
            payment_method=payment_method,
            transaction_reference=transaction_reference,
            booking_details=booking_details,
        )
        self.session.add(order)
        await self.session.flush()
        return order

    async def get_order_by_id(self, order_id: UUID) -> Order | None:
        stmt = select(Order).where(Order.id == order_id)
        return await self.session.scalar(stmt)

    async def list_item_orders(
        self,
        item_id: UUID,
        limit: int,
        offset: int,
    ) -> tuple[list[Order], int]:
        base_stmt: Select[tuple[Order]] = select(Order).where(Order.item_id == item_id)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(Order.created_at.desc()).limit(limit).offset(offset)
        items = list((await self.session.scalars(stmt)).all())
        return items, total

    async def save(self, order: Order) -> Order:
        await self.session.flush()
        return order
