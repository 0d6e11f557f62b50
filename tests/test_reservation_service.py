from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from prometheus_client import REGISTRY
from reservation_fakes import (
    FakeCalendarRepository,
    FakeCatalogRepository,
    FakeReservationRepository,
    FakeStore,
    build_reservation_service,
    customer,
    rental_proposal,
    seed_rental_window,
    seed_service_window,
    service_proposal,
)
from sqlalchemy.exc import DataError, OperationalError

from booking_engine.core.enums import ModuleKindEnum, ReservationStateEnum
from booking_engine.modules.calendar.service import CalendarIndex
from booking_engine.modules.catalog.service import CatalogService
from booking_engine.modules.reservations.conflicts import ConflictDetector
from booking_engine.modules.reservations.schemas import CustomerDetails

JAN_10 = date(2027, 1, 10)
JAN_12 = date(2027, 1, 12)
MONDAY = date(2027, 1, 11)
STAFF_A = uuid4()
STAFF_B = uuid4()


def _rental(store: FakeStore, **metadata) -> UUID:
    return store.add_listing(ModuleKindEnum.RENTAL, {"rental_unit": "day", **metadata}).id


def _service(store: FakeStore, **metadata) -> UUID:
    return store.add_listing(
        ModuleKindEnum.SERVICE,
        {
            "duration_minutes": 60,
            "buffer_time_before": 10,
            "buffer_time_after": 10,
            "slot_interval_minutes": 60,
            "allow_specialist_selection": True,
            **metadata,
        },
        price=Decimal("40"),
    ).id


class BrokenCalendarRepository(FakeCalendarRepository):
    async def list_windows(self, item_id, start, end, staff_id=None):
        raise OperationalError("SELECT booking_windows", {}, Exception("connection refused"))


class BrokenCatalogRepository(FakeCatalogRepository):
    async def get_item_by_id(self, item_id):
        raise OperationalError("SELECT bookable_items", {}, Exception("connection refused"))


def _outcome_count(module_kind: str, outcome: str) -> float:
    value = REGISTRY.get_sample_value(
        "storefront_booking_reservation_outcomes_total",
        {"module_kind": module_kind, "outcome": outcome},
    )
    return value or 0.0


@pytest.mark.asyncio
async def test_free_rental_range_is_confirmed() -> None:
    store = FakeStore()
    item_id = _rental(store)
    seed_rental_window(store, item_id, JAN_10, JAN_12)

    outcome = await build_reservation_service(store).submit(
        rental_proposal(item_id, date(2027, 1, 13), date(2027, 1, 15)),
    )

    assert outcome.state == ReservationStateEnum.CONFIRMED
    assert outcome.order_id in store.orders
    assert outcome.total == Decimal("300")


@pytest.mark.asyncio
async def test_touching_rental_range_is_stale_conflict() -> None:
    store = FakeStore()
    item_id = _rental(store)
    seed_rental_window(store, item_id, JAN_10, JAN_12)
    repository = FakeReservationRepository(store)

    outcome = await build_reservation_service(store, repository).submit(
        rental_proposal(item_id, JAN_12, date(2027, 1, 14)),
    )

    assert outcome.state == ReservationStateEnum.CONFLICT
    assert outcome.error_code == "stale_availability"
    assert outcome.retryable is True
    assert outcome.excluded_dates == [JAN_12]
    assert repository.calls == []


@pytest.mark.asyncio
async def test_missing_phone_is_rejected_without_calendar_read() -> None:
    store = FakeStore()
    item_id = _rental(store)
    before = _outcome_count("rental", "rejected")

    outcome = await build_reservation_service(store).submit(
        rental_proposal(item_id, JAN_10, JAN_12, customer=CustomerDetails(name="Aminata", phone=" ")),
    )

    assert outcome.state == ReservationStateEnum.REJECTED
    assert outcome.error_code == "validation_error"
    assert outcome.missing_fields == ["phone"]
    assert store.storage_reads == 0
    assert _outcome_count("rental", "rejected") == before + 1


@pytest.mark.asyncio
async def test_id_number_required_when_listing_verifies_identity() -> None:
    store = FakeStore()
    item_id = _rental(store, require_id_verification=True)

    outcome = await build_reservation_service(store).submit(rental_proposal(item_id, JAN_10, JAN_12))

    assert outcome.state == ReservationStateEnum.REJECTED
    assert outcome.missing_fields == ["id_number"]


@pytest.mark.asyncio
async def test_rental_shorter_than_minimum_period_is_rejected() -> None:
    store = FakeStore()
    item_id = _rental(store, min_period=3)

    outcome = await build_reservation_service(store).submit(rental_proposal(item_id, JAN_10, JAN_10))

    assert outcome.state == ReservationStateEnum.REJECTED
    assert outcome.missing_fields == ["end_date"]


@pytest.mark.asyncio
async def test_rental_starting_in_the_past_is_rejected() -> None:
    store = FakeStore()
    item_id = _rental(store)

    outcome = await build_reservation_service(store).submit(
        rental_proposal(item_id, date(2027, 1, 2), date(2027, 1, 5)),
    )

    assert outcome.state == ReservationStateEnum.REJECTED
    assert outcome.missing_fields == ["start_date"]


@pytest.mark.asyncio
async def test_unknown_and_sale_listings_are_rejected() -> None:
    store = FakeStore()
    sale_id = store.add_listing(ModuleKindEnum.SALE, {"stock_level": 4}).id
    service = build_reservation_service(store)

    unknown = await service.submit(rental_proposal(uuid4(), JAN_10, JAN_12))
    sale = await service.submit(rental_proposal(sale_id, JAN_10, JAN_12))

    assert unknown.state == ReservationStateEnum.REJECTED
    assert unknown.error_code == "not_found"
    assert sale.state == ReservationStateEnum.REJECTED
    assert sale.error_code == "business_rule_violation"


@pytest.mark.asyncio
async def test_selection_kind_must_match_listing() -> None:
    store = FakeStore()
    item_id = _service(store)

    outcome = await build_reservation_service(store).submit(rental_proposal(item_id, JAN_10, JAN_12))

    assert outcome.state == ReservationStateEnum.REJECTED
    assert outcome.missing_fields == ["selection"]


@pytest.mark.asyncio
async def test_buffered_appointment_blocks_same_staff_only() -> None:
    store = FakeStore()
    item_id = _service(store)
    seed_service_window(store, item_id, MONDAY, 14 * 60, staff_id=STAFF_A)
    service = build_reservation_service(store)

    same_staff = await service.submit(service_proposal(item_id, MONDAY, "15:00", staff_id=STAFF_A))
    other_staff = await build_reservation_service(store).submit(
        service_proposal(item_id, MONDAY, "15:00", staff_id=STAFF_B),
    )

    assert same_staff.state == ReservationStateEnum.CONFLICT
    assert same_staff.excluded_slot == "15:00"
    assert other_staff.state == ReservationStateEnum.CONFIRMED


@pytest.mark.asyncio
async def test_slot_off_the_grid_is_rejected() -> None:
    store = FakeStore()
    item_id = _service(store)

    outcome = await build_reservation_service(store).submit(service_proposal(item_id, MONDAY, "10:30"))

    assert outcome.state == ReservationStateEnum.REJECTED
    assert outcome.missing_fields == ["time_slot"]


@pytest.mark.asyncio
async def test_staff_choice_refused_when_listing_does_not_allow_it() -> None:
    store = FakeStore()
    item_id = _service(store, allow_specialist_selection=False)

    outcome = await build_reservation_service(store).submit(
        service_proposal(item_id, MONDAY, "10:00", staff_id=STAFF_A),
    )

    assert outcome.state == ReservationStateEnum.REJECTED
    assert outcome.missing_fields == ["staff_id"]


@pytest.mark.asyncio
async def test_full_room_blocks_slot_for_any_staff() -> None:
    store = FakeStore()
    room = store.add_room(capacity=1)
    item_id = _service(store, room_id=str(room.id), max_bookings_per_slot=5)
    seed_service_window(store, item_id, MONDAY, 10 * 60, staff_id=STAFF_A, room_id=room.id)

    outcome = await build_reservation_service(store).submit(service_proposal(item_id, MONDAY, "10:00"))

    assert outcome.state == ReservationStateEnum.CONFLICT


@pytest.mark.asyncio
async def test_unreachable_calendar_fails_with_retryable_transport_error() -> None:
    store = FakeStore()
    item_id = _rental(store)
    service = build_reservation_service(store)
    service.detector = ConflictDetector(CalendarIndex(BrokenCalendarRepository(store)))

    outcome = await service.submit(rental_proposal(item_id, JAN_10, JAN_12))

    assert outcome.state == ReservationStateEnum.FAILED
    assert outcome.error_code == "transport_error"
    assert outcome.retryable is True


@pytest.mark.asyncio
async def test_partial_commit_fails_without_retry() -> None:
    store = FakeStore()
    item_id = _rental(store)
    repository = FakeReservationRepository(
        store,
        failures={"create_window": DataError("INSERT INTO booking_windows", {}, Exception("bad value"))},
    )

    outcome = await build_reservation_service(store, repository).submit(rental_proposal(item_id, JAN_10, JAN_12))

    assert outcome.state == ReservationStateEnum.FAILED
    assert outcome.error_code == "partial_commit"
    assert outcome.retryable is False


@pytest.mark.asyncio
async def test_confirmed_outcome_carries_customer_order() -> None:
    store = FakeStore()
    item_id = _rental(store)

    outcome = await build_reservation_service(store).submit(rental_proposal(item_id, JAN_10, JAN_12))

    order = store.orders[outcome.order_id]
    assert order.customer_name == customer().name
    assert order.transaction_reference == "WV-123456"
    assert order.booking_details["module_type"] == "rental"


@pytest.mark.asyncio
async def test_missing_phone_is_rejected_even_when_storage_is_down() -> None:
    store = FakeStore()
    service = build_reservation_service(store)
    service.catalog = CatalogService(BrokenCatalogRepository(store))

    outcome = await service.submit(
        rental_proposal(uuid4(), JAN_10, JAN_12, customer=CustomerDetails(name="Aminata", phone="")),
    )

    assert outcome.state == ReservationStateEnum.REJECTED
    assert outcome.error_code == "validation_error"
    assert outcome.missing_fields == ["phone"]


@pytest.mark.asyncio
async def test_complete_proposal_fails_retryably_when_catalog_is_down() -> None:
    store = FakeStore()
    service = build_reservation_service(store)
    service.catalog = CatalogService(BrokenCatalogRepository(store))

    outcome = await service.submit(rental_proposal(uuid4(), JAN_10, JAN_12))

    assert outcome.state == ReservationStateEnum.FAILED
    assert outcome.error_code == "transport_error"
    assert outcome.retryable is True


@pytest.mark.asyncio
async def test_unassigned_booking_fills_capped_slot_for_staff_request() -> None:
    store = FakeStore()
    item_id = _service(store, max_bookings_per_slot=1)

    first = await build_reservation_service(store).submit(service_proposal(item_id, MONDAY, "15:00"))
    second = await build_reservation_service(store).submit(
        service_proposal(item_id, MONDAY, "15:00", staff_id=STAFF_A),
    )

    assert first.state == ReservationStateEnum.CONFIRMED
    assert second.state == ReservationStateEnum.CONFLICT
    assert len(store.windows) == 1


@pytest.mark.asyncio
async def test_staff_booking_fills_capped_slot_for_unassigned_request() -> None:
    store = FakeStore()
    item_id = _service(store, max_bookings_per_slot=1)

    first = await build_reservation_service(store).submit(
        service_proposal(item_id, MONDAY, "15:00", staff_id=STAFF_A),
    )
    second = await build_reservation_service(store).submit(service_proposal(item_id, MONDAY, "15:00"))

    assert first.state == ReservationStateEnum.CONFIRMED
    assert second.state == ReservationStateEnum.CONFLICT
    assert len(store.windows) == 1
