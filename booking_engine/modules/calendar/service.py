"""Calendar index: read access to committed booking windows."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from booking_engine.core.config import get_settings
from booking_engine.modules.calendar.repository import CalendarRepository
from booking_engine.modules.calendar.schemas import BookingWindowRead, DateRange
from booking_engine.shared.exceptions import BusinessRuleException, transport_errors

settings = get_settings()


class CalendarIndex:
    """Answers which windows exist for an item within a date range.

    Every call goes to storage; callers validating a proposal must never
    reuse an earlier result.
    """

    def __init__(self, repository: CalendarRepository) -> None:
        self.repository = repository

    def _check_range(self, date_range: DateRange) -> None:
        if date_range.days > settings.calendar_max_range_days:
            raise BusinessRuleException(
                f"Calendar range cannot exceed {settings.calendar_max_range_days} days",
            )

    async def list_windows(
        self,
        item_id: UUID,
        date_range: DateRange,
        staff_id: UUID | None = None,
    ) -> list[BookingWindowRead]:
        """Active windows intersecting the range, ordered by start."""
        self._check_range(date_range)
        with transport_errors():
            windows = await self.repository.list_windows(
                item_id,
                date_range.start,
                date_range.end,
                staff_id=staff_id,
            )
        return [BookingWindowRead.model_validate(window) for window in windows]

    async def list_booked_dates(self, item_id: UUID, date_range: DateRange) -> set[date]:
        """Blocked rental calendar cells within the range."""
        self._check_range(date_range)
        with transport_errors():
            booked = await self.repository.list_booked_dates(item_id, date_range.start, date_range.end)
        return set(booked)
