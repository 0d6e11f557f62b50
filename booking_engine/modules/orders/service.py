"""Order business logic layer."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.database import get_db_session
from booking_engine.core.enums import OrderStatusEnum
from booking_engine.modules.calendar.repository import CalendarRepository
from booking_engine.modules.orders.models import Order
from booking_engine.modules.orders.repository import OrdersRepository
from booking_engine.modules.orders.schemas import OrderCancelRequest
from booking_engine.shared.exceptions import ConflictException, NotFoundException
from booking_engine.shared.utils import utc_now

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = (OrderStatusEnum.PENDING_VERIFICATION, OrderStatusEnum.PAID)


class OrdersService:
    """Order lookup and cancellation with calendar release."""

    def __init__(
        self,
        orders_repository: OrdersRepository,
        calendar_repository: CalendarRepository,
    ) -> None:
        self.orders_repository = orders_repository
        self.calendar_repository = calendar_repository

    async def get_order(self, order_id: UUID) -> Order:
        order = await self.orders_repository.get_order_by_id(order_id)
        if order is None:
            raise NotFoundException("Order not found")
        return order

    async def cancel_order(self, order_id: UUID, payload: OrderCancelRequest) -> Order:
        """Cancel an unfulfilled order and release its booking window."""
        order = await self.get_order(order_id)
        if order.status not in CANCELLABLE_STATUSES:
            raise ConflictException(f"Order in status {order.status} cannot be cancelled")

        order.status = OrderStatusEnum.CANCELLED
        order.canceled_at = utc_now()
        order.cancellation_reason = payload.reason
        await self.orders_repository.save(order)

        window = await self.calendar_repository.get_window_by_order_id(order.id)
        if window is not None:
            await self.calendar_repository.release_window(window)
            logger.info("Released booking window %s of order %s", window.id, order.id)
        else:
            logger.warning("Order %s has no booking window to release", order.id)
        return order

    async def list_item_orders(
        self,
        item_id: UUID,
        limit: int,
        offset: int,
    ) -> tuple[list[Order], int]:
        """List orders of a listing, newest first."""
        return await self.orders_repository.list_item_orders(item_id, limit, offset)


async def get_orders_service(session: AsyncSession = Depends(get_db_session)) -> OrdersService:
    """Dependency provider for orders service."""
    return OrdersService(
        orders_repository=OrdersRepository(session),
        calendar_repository=CalendarRepository(session),
    )
