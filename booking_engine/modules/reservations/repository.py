"""Transactional storage access used by the reservation committer."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.modules.calendar.models import BookingWindow
from booking_engine.modules.calendar.repository import CalendarRepository
from booking_engine.modules.calendar.schemas import BookingWindowRead
from booking_engine.modules.catalog.models import BookableItem
from booking_engine.modules.orders.models import Order
from booking_engine.modules.orders.repository import OrdersRepository


class ReservationRepository:
    """Order and booking window writes sharing one session transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.orders = OrdersRepository(session)
        self.calendar = CalendarRepository(session)

    async def lock_item(self, item_id: UUID) -> None:
        """Row lock on the listing; concurrent commits for it queue here."""
        stmt = select(BookableItem.id).where(BookableItem.id == item_id).with_for_update()
        await self.session.execute(stmt)

    async def list_active_windows(self, item_id: UUID, start: date, end: date) -> list[BookingWindowRead]:
        windows = await self.calendar.list_windows(item_id, start, end)
        return [BookingWindowRead.model_validate(window) for window in windows]

    async def create_order(self, **values) -> Order:
        return await self.orders.create_order(**values)

    async def create_window(self, **values) -> BookingWindow:
        return await self.calendar.create_window(**values)

    async def block_rental_days(self, window: BookingWindow, days: Iterable[date]) -> None:
        await self.calendar.block_rental_days(window, days)

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
