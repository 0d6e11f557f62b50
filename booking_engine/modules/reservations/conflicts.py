"""Authoritative pre-commit availability re-check."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from booking_engine.modules.availability import calculator
from booking_engine.modules.calendar.schemas import BookingWindowRead, DateRange
from booking_engine.modules.calendar.service import CalendarIndex
from booking_engine.modules.catalog.schemas import (
    BookableItemRead,
    RentalMetadata,
    ServiceMetadata,
)
from booking_engine.modules.reservations.schemas import (
    BookingProposal,
    ConflictCheck,
    RentalSelection,
    ServiceSelection,
)
from booking_engine.shared.exceptions import (
    BookingValidationException,
    StaleAvailabilityException,
    transport_errors,
)
from booking_engine.shared.utils import clock_to_minutes

logger = logging.getLogger(__name__)


def proposal_range(proposal: BookingProposal) -> DateRange:
    """Date range touched by the proposed window."""
    selection = proposal.selection
    if isinstance(selection, RentalSelection):
        return DateRange(start=selection.start_date, end=selection.end_date)
    return DateRange(start=selection.appointment_date, end=selection.appointment_date)


def evaluate_conflicts(
    proposal: BookingProposal,
    item: BookableItemRead,
    windows: Sequence[BookingWindowRead],
    room_capacity: int | None = None,
) -> ConflictCheck:
    """Intersect the proposed window with existing ones."""
    selection = proposal.selection
    metadata = item.metadata

    if isinstance(selection, RentalSelection) and isinstance(metadata, RentalMetadata):
        conflicting_dates = calculator.rental_conflicts(
            windows,
            selection.start_date,
            selection.end_date,
            metadata.allow_same_day_turnover,
        )
        taken = set(conflicting_dates)
        conflicting_ids = [
            window.id
            for window in windows
            if taken.intersection(
                calculator.occupied_dates(
                    window.start_date,
                    window.end_date,
                    metadata.allow_same_day_turnover,
                ),
            )
        ]
        return ConflictCheck(
            available=not conflicting_dates,
            conflicting_dates=conflicting_dates,
            conflicting_window_ids=conflicting_ids,
        )

    if isinstance(selection, ServiceSelection) and isinstance(metadata, ServiceMetadata):
        blocking = calculator.service_slot_conflicts(
            [window for window in windows if window.start_date == selection.appointment_date],
            clock_to_minutes(selection.time_slot),
            metadata,
            staff_id=selection.staff_id,
            room_capacity=room_capacity,
        )
        return ConflictCheck(
            available=not blocking,
            conflicting_dates=[selection.appointment_date] if blocking else [],
            conflicting_window_ids=[window.id for window in blocking],
        )

    raise BookingValidationException("Listing cannot be booked", ["item_id"])


def unavailable_message(proposal: BookingProposal) -> str:
    if isinstance(proposal.selection, RentalSelection):
        return "These dates are no longer available"
    return "This time slot is no longer available"


class ConflictDetector:
    """Re-validates a proposal against a fresh calendar snapshot.

    The earlier availability shown to the customer is advisory only; this
    check runs on every submission.
    """

    def __init__(self, calendar: CalendarIndex) -> None:
        self.calendar = calendar

    async def check(
        self,
        proposal: BookingProposal,
        item: BookableItemRead,
        room_capacity: int | None = None,
    ) -> ConflictCheck:
        with transport_errors():
            windows = await self.calendar.list_windows(proposal.item_id, proposal_range(proposal))
        return evaluate_conflicts(proposal, item, windows, room_capacity)

    async def ensure_available(
        self,
        proposal: BookingProposal,
        item: BookableItemRead,
        room_capacity: int | None = None,
    ) -> ConflictCheck:
        """Raise ``StaleAvailabilityException`` when the window is taken."""
        result = await self.check(proposal, item, room_capacity)
        if not result.available:
            logger.info(
                "Stale availability for item %s: conflicting dates %s",
                proposal.item_id,
                result.conflicting_dates,
            )
            selection = proposal.selection
            raise StaleAvailabilityException(
                unavailable_message(proposal),
                excluded_dates=result.conflicting_dates,
                excluded_slot=selection.time_slot if isinstance(selection, ServiceSelection) else None,
            )
        return result
