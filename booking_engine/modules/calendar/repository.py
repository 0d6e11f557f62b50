"""Calendar repository layer."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.enums import ACTIVE_BOOKING_STATUSES, BookingStatusEnum, ModuleKindEnum
from booking_engine.modules.calendar.models import BookingWindow, RentalCalendarDay


class CalendarRepository:
    """DB operations over booking windows and rental calendar cells."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_windows(
        self,
        item_id: UUID,
        start: date,
        end: date,
        staff_id: UUID | None = None,
    ) -> list[BookingWindow]:
        stmt = select(BookingWindow).where(
            BookingWindow.item_id == item_id,
            BookingWindow.status.in_(ACTIVE_BOOKING_STATUSES),
            BookingWindow.start_date <= end,
            BookingWindow.end_date >= start,
        )
        if staff_id is not None:
            stmt = stmt.where(BookingWindow.staff_id == staff_id)
        stmt = stmt.order_by(
            BookingWindow.start_date.asc(),
            BookingWindow.start_minute.asc().nulls_first(),
            BookingWindow.id.asc(),
        )
        return list((await self.session.scalars(stmt)).all())

    async def list_booked_dates(self, item_id: UUID, start: date, end: date) -> list[date]:
        stmt = (
            select(RentalCalendarDay.booked_date)
            .where(
                RentalCalendarDay.item_id == item_id,
                RentalCalendarDay.booked_date >= start,
                RentalCalendarDay.booked_date <= end,
            )
            .order_by(RentalCalendarDay.booked_date.asc())
        )
        return list((await self.session.scalars(stmt)).all())

    async def create_window(
        self,
        *,
        item_id: UUID,
        order_id: UUID,
        module_kind: ModuleKindEnum,
        start_date: date,
        end_date: date,
        start_minute: int | None = None,
        duration_minutes: int | None = None,
        buffer_time_before: int = 0,
        buffer_time_after: int = 0,
        staff_id: UUID | None = None,
        room_id: UUID | None = None,
    ) -> BookingWindow:
        window = BookingWindow(
            item_id=item_id,
            order_id=order_id,
            module_kind=module_kind,
            start_date=start_date,
            end_date=end_date,
            start_minute=start_minute,
            duration_minutes=duration_minutes,
            buffer_time_before=buffer_time_before,
            buffer_time_after=buffer_time_after,
            staff_id=staff_id,
            room_id=room_id,
            status=BookingStatusEnum.PENDING,
        )
        self.session.add(window)
        await self.session.flush()
        return window

    async def block_rental_days(self, window: BookingWindow, days: Iterable[date]) -> None:
        """Insert one calendar cell per day; the unique constraint rejects a double booking."""
        self.session.add_all(
            RentalCalendarDay(item_id=window.item_id, booked_date=day, window_id=window.id)
            for day in days
        )
        await self.session.flush()

    async def get_window_by_order_id(self, order_id: UUID) -> BookingWindow | None:
        stmt = select(BookingWindow).where(BookingWindow.order_id == order_id)
        return await self.session.scalar(stmt)

    async def release_window(self, window: BookingWindow) -> BookingWindow:
        window.status = BookingStatusEnum.CANCELLED
        await self.session.execute(
            delete(RentalCalendarDay).where(RentalCalendarDay.window_id == window.id),
        )
        await self.session.flush()
        return window
