"""Availability API router."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from booking_engine.modules.availability.schemas import (
    RentalAvailabilityCheck,
    RentalBookedDates,
    ServiceAvailability,
)
from booking_engine.modules.availability.service import (
    AvailabilityService,
    get_availability_service,
)
from booking_engine.shared.exceptions import BusinessRuleException
from booking_engine.shared.utils import parse_month

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("/items/{item_id}/rental", response_model=RentalBookedDates)
async def get_rental_booked_dates(
    item_id: UUID,
    month: str = Query(pattern=r"^\d{4}-\d{2}$"),
    service: AvailabilityService = Depends(get_availability_service),
) -> RentalBookedDates:
    """Booked days of a rental for calendar rendering."""
    try:
        first_day = parse_month(month)
    except ValueError as exc:
        raise BusinessRuleException(str(exc)) from exc
    return await service.get_rental_booked_dates(item_id, first_day)


@router.get("/items/{item_id}/rental/check", response_model=RentalAvailabilityCheck)
async def check_rental_range(
    item_id: UUID,
    start_date: date,
    end_date: date,
    service: AvailabilityService = Depends(get_availability_service),
) -> RentalAvailabilityCheck:
    """Check a rental range before the customer fills the form."""
    return await service.check_rental_availability(item_id, start_date, end_date)


@router.get("/items/{item_id}/service", response_model=ServiceAvailability)
async def get_service_slots(
    item_id: UUID,
    day: date = Query(alias="date"),
    staff_id: UUID | None = Query(default=None),
    service: AvailabilityService = Depends(get_availability_service),
) -> ServiceAvailability:
    """Appointment slots of a service for one date."""
    return await service.get_service_availability(item_id, day, staff_id)
