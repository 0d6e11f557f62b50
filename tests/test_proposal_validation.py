from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from reservation_fakes import FakeStore, rental_proposal, service_proposal

from booking_engine.core.enums import ModuleKindEnum
from booking_engine.modules.catalog.schemas import OperatingPeriod
from booking_engine.modules.catalog.service import to_item_read
from booking_engine.modules.reservations.schemas import CustomerDetails
from booking_engine.modules.reservations.validation import (
    missing_customer_fields,
    missing_payment_fields,
    validate_contact_details,
    validate_proposal,
)
from booking_engine.shared.exceptions import BookingValidationException

TODAY = date(2027, 1, 11)
OPENING_HOURS = [OperatingPeriod(start="09:00", end="17:00")]


def _validate(proposal, listing, now_minute: int = 10 * 60 + 30) -> None:
    validate_proposal(
        proposal,
        to_item_read(listing),
        today=TODAY,
        now_minute=now_minute,
        default_periods=OPENING_HOURS,
    )


def _service_listing(store: FakeStore, **metadata):
    return store.add_listing(
        ModuleKindEnum.SERVICE,
        {"duration_minutes": 60, "slot_interval_minutes": 60, **metadata},
        price=Decimal("40"),
    )


def test_blank_customer_fields_are_reported_in_order() -> None:
    details = CustomerDetails(name=" ", phone="", id_number=None)

    assert missing_customer_fields(details) == ["name", "phone"]
    assert missing_customer_fields(details, require_id_verification=True) == ["name", "phone", "id_number"]


def test_payment_fields_need_method_and_reference() -> None:
    proposal = rental_proposal(uuid4(), TODAY, TODAY, payment_method=None, payment_reference="  ")

    assert missing_payment_fields(proposal) == ["payment_method", "payment_reference"]


def test_contact_details_are_checked_without_a_listing() -> None:
    proposal = rental_proposal(uuid4(), TODAY, TODAY, customer=CustomerDetails(name="Aminata", phone=""))

    with pytest.raises(BookingValidationException) as exc:
        validate_contact_details(proposal)
    validate_contact_details(rental_proposal(uuid4(), TODAY, TODAY))

    assert exc.value.fields == ("phone",)


def test_complete_rental_proposal_passes() -> None:
    store = FakeStore()
    listing = store.add_listing(ModuleKindEnum.RENTAL, {"rental_unit": "day", "max_period": 7})

    _validate(rental_proposal(listing.id, TODAY, date(2027, 1, 17)), listing)


def test_rental_longer_than_maximum_period_is_rejected() -> None:
    store = FakeStore()
    listing = store.add_listing(ModuleKindEnum.RENTAL, {"rental_unit": "day", "max_period": 7})

    with pytest.raises(BookingValidationException) as exc:
        _validate(rental_proposal(listing.id, TODAY, date(2027, 1, 18)), listing)

    assert exc.value.fields == ("end_date",)


def test_reversed_rental_range_is_rejected() -> None:
    store = FakeStore()
    listing = store.add_listing(ModuleKindEnum.RENTAL, {"rental_unit": "day"})

    with pytest.raises(BookingValidationException) as exc:
        _validate(rental_proposal(listing.id, date(2027, 1, 14), date(2027, 1, 12)), listing)

    assert exc.value.fields == ("end_date",)


def test_missing_fields_are_reported_before_dates_are_checked() -> None:
    store = FakeStore()
    listing = store.add_listing(ModuleKindEnum.RENTAL, {"rental_unit": "day"})
    proposal = rental_proposal(
        listing.id,
        date(2027, 1, 2),
        date(2027, 1, 1),
        customer=CustomerDetails(name="Aminata", phone=""),
    )

    with pytest.raises(BookingValidationException) as exc:
        _validate(proposal, listing)

    assert exc.value.fields == ("phone",)


def test_started_slot_today_is_rejected() -> None:
    store = FakeStore()
    listing = _service_listing(store)

    with pytest.raises(BookingValidationException) as exc:
        _validate(service_proposal(listing.id, TODAY, "10:00"), listing)
    _validate(service_proposal(listing.id, TODAY, "11:00"), listing)

    assert exc.value.fields == ("time_slot",)


def test_slot_on_a_closed_weekday_is_not_offered() -> None:
    store = FakeStore()
    listing = _service_listing(
        store,
        availability={"monday": [{"start": "10:00", "end": "12:00"}], "sunday": []},
    )
    sunday = date(2027, 1, 17)

    with pytest.raises(BookingValidationException):
        _validate(service_proposal(listing.id, sunday, "10:00"), listing)
    with pytest.raises(BookingValidationException):
        _validate(service_proposal(listing.id, date(2027, 1, 18), "14:00"), listing)
    _validate(service_proposal(listing.id, date(2027, 1, 18), "11:00"), listing)


def test_unassigned_staff_member_is_rejected() -> None:
    store = FakeStore()
    assigned = uuid4()
    listing = _service_listing(
        store,
        allow_specialist_selection=True,
        assigned_staff_ids=[str(assigned)],
    )
    tomorrow = date(2027, 1, 12)

    _validate(service_proposal(listing.id, tomorrow, "10:00", staff_id=assigned), listing)
    with pytest.raises(BookingValidationException) as exc:
        _validate(service_proposal(listing.id, tomorrow, "10:00", staff_id=uuid4()), listing)

    assert exc.value.fields == ("staff_id",)


def test_malformed_slot_text_is_rejected() -> None:
    store = FakeStore()
    listing = _service_listing(store)

    with pytest.raises(BookingValidationException) as exc:
        _validate(service_proposal(listing.id, date(2027, 1, 12), "ten"), listing)

    assert exc.value.fields == ("time_slot",)
