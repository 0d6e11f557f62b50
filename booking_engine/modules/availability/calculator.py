"""Pure availability rules for rentals and services.

Nothing here performs I/O. Callers fetch booking windows through the
calendar index and pass them in, so the same functions serve calendar
rendering and the authoritative pre-commit check.

Rental policy: ranges are inclusive and touching endpoints conflict, so
``[Jan 10, Jan 12]`` blocks a new rental starting on Jan 12. A listing can
opt into same-day turnover, in which case the last day of a rental is
released for the next check-in.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from booking_engine.core.enums import RentalUnitEnum
from booking_engine.modules.availability.schemas import RentalQuote, ServiceSlot
from booking_engine.modules.calendar.schemas import BookingWindowRead
from booking_engine.modules.catalog.schemas import (
    WEEKDAYS,
    OperatingPeriod,
    RentalMetadata,
    ServiceMetadata,
)
from booking_engine.shared.utils import clock_to_minutes, iter_dates, minutes_to_clock

_DAYS_PER_UNIT = {
    RentalUnitEnum.WEEK: 7,
    RentalUnitEnum.MONTH: 30,
}


# Rentals


def occupied_dates(start: date, end: date, allow_same_day_turnover: bool = False) -> list[date]:
    """Calendar days a rental range blocks."""
    if allow_same_day_turnover and end > start:
        end -= timedelta(days=1)
    return list(iter_dates(start, end))


def rental_booked_dates(
    windows: Iterable[BookingWindowRead],
    range_start: date,
    range_end: date,
    allow_same_day_turnover: bool = False,
) -> set[date]:
    """Union of the days occupied by ``windows``, clipped to the range."""
    booked: set[date] = set()
    for window in windows:
        for day in occupied_dates(window.start_date, window.end_date, allow_same_day_turnover):
            if range_start <= day <= range_end:
                booked.add(day)
    return booked


def is_date_selectable(day: date, booked: set[date], today: date) -> bool:
    """A rental day can be picked when it is not in the past and not booked."""
    return day >= today and day not in booked


def rental_conflicts(
    windows: Iterable[BookingWindowRead],
    start: date,
    end: date,
    allow_same_day_turnover: bool = False,
) -> list[date]:
    """Sorted days of the proposed range already taken by ``windows``."""
    wanted = set(occupied_dates(start, end, allow_same_day_turnover))
    taken = rental_booked_dates(windows, start, end, allow_same_day_turnover)
    return sorted(wanted & taken)


def rental_units(start: date, end: date, unit: RentalUnitEnum) -> int:
    """Number of billable units covered by an inclusive date range."""
    days = (end - start).days + 1
    if unit == RentalUnitEnum.HOUR:
        return days * 24
    if unit == RentalUnitEnum.DAY:
        return days
    return math.ceil(days / _DAYS_PER_UNIT[unit])


def rental_quote(price: Decimal, metadata: RentalMetadata, start: date, end: date) -> RentalQuote:
    units = rental_units(start, end, metadata.rental_unit)
    rental_cost = price * units
    return RentalQuote(
        units=units,
        rental_cost=rental_cost,
        deposit_amount=metadata.deposit_amount,
        total=rental_cost + metadata.deposit_amount,
    )


# Services


def intervals_overlap(first: tuple[int, int], second: tuple[int, int]) -> bool:
    """Half-open interval intersection."""
    return first[0] < second[1] and second[0] < first[1]


def occupied_interval(start_minute: int, metadata: ServiceMetadata) -> tuple[int, int]:
    return (
        start_minute - metadata.buffer_time_before,
        start_minute + metadata.duration_minutes + metadata.buffer_time_after,
    )


def operating_periods(
    day: date,
    metadata: ServiceMetadata,
    default_periods: Sequence[OperatingPeriod],
) -> list[OperatingPeriod]:
    """Opening periods for the weekday of ``day``.

    A weekday missing from the template falls back to the merchant defaults;
    a weekday present with no periods is closed.
    """
    weekday = WEEKDAYS[day.weekday()]
    if weekday in metadata.availability:
        return list(metadata.availability[weekday])
    return list(default_periods)


def generate_slot_times(
    day: date,
    metadata: ServiceMetadata,
    default_periods: Sequence[OperatingPeriod],
) -> list[int]:
    """Candidate slot starts, in minutes, in chronological order."""
    starts: set[int] = set()
    step = metadata.slot_step_minutes
    for period in operating_periods(day, metadata, default_periods):
        current = clock_to_minutes(period.start)
        period_end = clock_to_minutes(period.end)
        while current + metadata.duration_minutes <= period_end:
            starts.add(current)
            current += step
    return sorted(starts)


def service_slot_conflicts(
    windows: Iterable[BookingWindowRead],
    start_minute: int,
    metadata: ServiceMetadata,
    staff_id: UUID | None = None,
    room_capacity: int | None = None,
) -> list[BookingWindowRead]:
    """Windows that prevent booking a slot starting at ``start_minute``.

    With a staff member requested, any overlapping window of that person
    blocks, and so do unassigned windows once they reach
    ``max_bookings_per_slot``. Without a staff member the slot stays open
    while fewer than ``max_bookings_per_slot`` windows overlap. A listing
    bound to a room is additionally limited by the room capacity.
    """
    wanted = occupied_interval(start_minute, metadata)
    overlapping = [
        window
        for window in windows
        if window.start_minute is not None and intervals_overlap(wanted, window.occupied_minutes)
    ]

    if staff_id is not None:
        same_staff = [window for window in overlapping if window.staff_id == staff_id]
        if same_staff:
            return same_staff
        # Unassigned windows count against every staff member.
        unassigned = [window for window in overlapping if window.staff_id is None]
        if len(unassigned) >= metadata.max_bookings_per_slot:
            return unassigned
    elif len(overlapping) >= metadata.max_bookings_per_slot:
        return overlapping

    if metadata.room_id is not None and room_capacity is not None:
        same_room = [window for window in overlapping if window.room_id == metadata.room_id]
        if len(same_room) >= room_capacity:
            return same_room
    return []


def service_slots(
    day: date,
    metadata: ServiceMetadata,
    windows: Sequence[BookingWindowRead],
    default_periods: Sequence[OperatingPeriod],
    *,
    staff_id: UUID | None = None,
    room_capacity: int | None = None,
    not_before_minute: int | None = None,
) -> list[ServiceSlot]:
    """Chronological ``{time, available}`` slots for one date.

    ``not_before_minute`` marks slots starting at or before that minute as
    unavailable; it is set when ``day`` is the merchant's today.
    """
    day_windows = [window for window in windows if window.start_date == day]
    slots = []
    for start_minute in generate_slot_times(day, metadata, default_periods):
        if not_before_minute is not None and start_minute <= not_before_minute:
            available = False
        else:
            available = not service_slot_conflicts(
                day_windows,
                start_minute,
                metadata,
                staff_id=staff_id,
                room_capacity=room_capacity,
            )
        slots.append(ServiceSlot(time=minutes_to_clock(start_minute), available=available))
    return slots
