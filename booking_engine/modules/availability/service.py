"""Availability business logic layer."""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID
from zoneinfo import ZoneInfo

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.config import get_settings
from booking_engine.core.database import get_db_session
from booking_engine.core.enums import ModuleKindEnum
from booking_engine.modules.availability import calculator
from booking_engine.modules.availability.schemas import (
    RentalAvailabilityCheck,
    RentalBookedDates,
    ServiceAvailability,
)
from booking_engine.modules.calendar.repository import CalendarRepository
from booking_engine.modules.calendar.schemas import DateRange
from booking_engine.modules.calendar.service import CalendarIndex
from booking_engine.modules.catalog.repository import CatalogRepository
from booking_engine.modules.catalog.schemas import (
    OperatingPeriod,
    RentalMetadata,
    ServiceMetadata,
    module_metadata,
)
from booking_engine.modules.catalog.service import CatalogService
from booking_engine.shared.exceptions import BusinessRuleException
from booking_engine.shared.utils import month_bounds, utc_now

settings = get_settings()
logger = logging.getLogger(__name__)


def default_operating_periods() -> list[OperatingPeriod]:
    """Merchant opening hours used when a service has no weekday template."""
    return [OperatingPeriod(start=settings.default_open_time, end=settings.default_close_time)]


def merchant_now_minutes() -> tuple[date, int]:
    """Current merchant-local date and minute of day."""
    now = utc_now().astimezone(ZoneInfo(settings.merchant_timezone))
    return now.date(), now.hour * 60 + now.minute


class AvailabilityService:
    """Renders selectable dates and slots from the calendar index."""

    def __init__(self, calendar: CalendarIndex, catalog: CatalogService) -> None:
        self.calendar = calendar
        self.catalog = catalog

    async def get_rental_booked_dates(self, item_id: UUID, month: date) -> RentalBookedDates:
        """Booked days of a rental within the month containing ``month``."""
        item = await self.catalog.get_bookable_item(item_id, ModuleKindEnum.RENTAL)
        metadata = module_metadata(item, RentalMetadata)

        first_day, last_day = month_bounds(month)
        windows = await self.calendar.list_windows(item_id, DateRange(start=first_day, end=last_day))
        booked = calculator.rental_booked_dates(
            windows,
            first_day,
            last_day,
            metadata.allow_same_day_turnover,
        )
        return RentalBookedDates(
            item_id=item_id,
            month=first_day.strftime("%Y-%m"),
            booked_dates=sorted(booked),
        )

    async def check_rental_availability(
        self,
        item_id: UUID,
        start_date: date,
        end_date: date,
    ) -> RentalAvailabilityCheck:
        """Whether a rental range is free right now."""
        if end_date < start_date:
            raise BusinessRuleException("Rental end date must not be before start date")
        item = await self.catalog.get_bookable_item(item_id, ModuleKindEnum.RENTAL)
        metadata = module_metadata(item, RentalMetadata)

        windows = await self.calendar.list_windows(item_id, DateRange(start=start_date, end=end_date))
        conflicts = calculator.rental_conflicts(
            windows,
            start_date,
            end_date,
            metadata.allow_same_day_turnover,
        )
        return RentalAvailabilityCheck(available=not conflicts, conflicting_dates=conflicts)

    async def get_service_availability(
        self,
        item_id: UUID,
        day: date,
        staff_id: UUID | None = None,
    ) -> ServiceAvailability:
        """Slots of a service on one day, optionally for one staff member."""
        item = await self.catalog.get_bookable_item(item_id, ModuleKindEnum.SERVICE)
        metadata = module_metadata(item, ServiceMetadata)

        today, now_minute = merchant_now_minutes()
        if day < today:
            logger.debug("Service availability requested for past date %s", day)
            return ServiceAvailability(
                item_id=item_id,
                appointment_date=day,
                staff_id=staff_id,
                slots=[],
            )

        # Unfiltered by staff: room capacity counts every appointment of the day.
        windows = await self.calendar.list_windows(item_id, DateRange(start=day, end=day))
        room_capacity = await self.catalog.get_room_capacity(metadata.room_id)
        slots = calculator.service_slots(
            day,
            metadata,
            windows,
            default_operating_periods(),
            staff_id=staff_id,
            room_capacity=room_capacity,
            not_before_minute=now_minute if day == today else None,
        )
        return ServiceAvailability(
            item_id=item_id,
            appointment_date=day,
            staff_id=staff_id,
            slots=slots,
        )


async def get_availability_service(
    session: AsyncSession = Depends(get_db_session),
) -> AvailabilityService:
    """Dependency provider for availability service."""
    return AvailabilityService(
        calendar=CalendarIndex(CalendarRepository(session)),
        catalog=CatalogService(CatalogRepository(session)),
    )
