"""Local proposal checks that run before any storage access."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from booking_engine.modules.availability import calculator
from booking_engine.modules.catalog.schemas import (
    BookableItemRead,
    OperatingPeriod,
    RentalMetadata,
    ServiceMetadata,
)
from booking_engine.modules.reservations.schemas import (
    BookingProposal,
    CustomerDetails,
    RentalSelection,
    ServiceSelection,
)
from booking_engine.shared.exceptions import BookingValidationException
from booking_engine.shared.utils import clock_to_minutes


def missing_customer_fields(
    customer: CustomerDetails,
    require_id_verification: bool = False,
) -> list[str]:
    """Names of required customer fields left blank."""
    missing = []
    if not customer.name.strip():
        missing.append("name")
    if not customer.phone.strip():
        missing.append("phone")
    if require_id_verification and not (customer.id_number or "").strip():
        missing.append("id_number")
    return missing


def missing_payment_fields(proposal: BookingProposal) -> list[str]:
    missing = []
    if proposal.payment_method is None:
        missing.append("payment_method")
    if not (proposal.payment_reference or "").strip():
        missing.append("payment_reference")
    return missing


def validate_contact_details(proposal: BookingProposal) -> None:
    """Customer and payment checks that need no listing and no storage access."""
    missing = missing_customer_fields(proposal.customer) + missing_payment_fields(proposal)
    if missing:
        raise BookingValidationException(
            f"Missing required fields: {', '.join(missing)}",
            missing,
        )


def validate_rental_selection(
    selection: RentalSelection,
    metadata: RentalMetadata,
    today: date,
) -> None:
    if selection.end_date < selection.start_date:
        raise BookingValidationException("Rental end date must not be before start date", ["end_date"])
    if selection.start_date < today:
        raise BookingValidationException("Rental cannot start in the past", ["start_date"])

    units = calculator.rental_units(selection.start_date, selection.end_date, metadata.rental_unit)
    if metadata.min_period is not None and units < metadata.min_period:
        raise BookingValidationException(
            f"Minimum rental period is {metadata.min_period} {metadata.rental_unit}(s)",
            ["end_date"],
        )
    if metadata.max_period is not None and units > metadata.max_period:
        raise BookingValidationException(
            f"Maximum rental period is {metadata.max_period} {metadata.rental_unit}(s)",
            ["end_date"],
        )


def validate_service_selection(
    selection: ServiceSelection,
    metadata: ServiceMetadata,
    today: date,
    now_minute: int,
    default_periods: Sequence[OperatingPeriod],
) -> int:
    """Check the slot is offered and return its start minute."""
    if selection.appointment_date < today:
        raise BookingValidationException("Appointment date is in the past", ["appointment_date"])
    try:
        start_minute = clock_to_minutes(selection.time_slot)
    except ValueError as exc:
        raise BookingValidationException(
            f"Invalid time slot {selection.time_slot!r}",
            ["time_slot"],
        ) from exc
    offered = calculator.generate_slot_times(selection.appointment_date, metadata, default_periods)
    if start_minute not in offered:
        raise BookingValidationException("Time slot is not offered on this date", ["time_slot"])
    if selection.appointment_date == today and start_minute <= now_minute:
        raise BookingValidationException("Time slot has already started", ["time_slot"])

    if selection.staff_id is not None:
        if not metadata.allow_specialist_selection:
            raise BookingValidationException("This service does not allow choosing staff", ["staff_id"])
        if metadata.assigned_staff_ids and selection.staff_id not in metadata.assigned_staff_ids:
            raise BookingValidationException("Staff member is not assigned to this service", ["staff_id"])
    return start_minute


def validate_proposal(
    proposal: BookingProposal,
    item: BookableItemRead,
    *,
    today: date,
    now_minute: int,
    default_periods: Sequence[OperatingPeriod],
) -> None:
    """Raise ``BookingValidationException`` when the proposal cannot be sent."""
    metadata = item.metadata
    if item.module_kind != proposal.module_kind:
        raise BookingValidationException(
            f"Listing is a {item.module_kind} listing, not {proposal.module_kind}",
            ["selection"],
        )

    require_id = isinstance(metadata, RentalMetadata) and metadata.require_id_verification
    missing = missing_customer_fields(proposal.customer, require_id) + missing_payment_fields(proposal)
    if missing:
        raise BookingValidationException(
            f"Missing required fields: {', '.join(missing)}",
            missing,
        )

    selection = proposal.selection
    if isinstance(selection, RentalSelection) and isinstance(metadata, RentalMetadata):
        validate_rental_selection(selection, metadata, today)
    elif isinstance(selection, ServiceSelection) and isinstance(metadata, ServiceMetadata):
        validate_service_selection(selection, metadata, today, now_minute, default_periods)
    else:
        raise BookingValidationException("Listing cannot be booked", ["item_id"])
