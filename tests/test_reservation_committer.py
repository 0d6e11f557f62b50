from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from reservation_fakes import (
    FakeReservationRepository,
    FakeStore,
    rental_proposal,
    seed_rental_window,
    seed_service_window,
    service_proposal,
)
from sqlalchemy.exc import DataError, InterfaceError, OperationalError

from booking_engine.core.enums import ModuleKindEnum
from booking_engine.modules.catalog.service import to_item_read
from booking_engine.modules.reservations.committer import ReservationCommitter
from booking_engine.shared.exceptions import (
    CommitConflictException,
    PartialCommitException,
    TransportException,
)

MAR_1 = date(2027, 3, 1)
MAR_2 = date(2027, 3, 2)
MAR_3 = date(2027, 3, 3)
MONDAY = date(2027, 3, 8)


def _rental(store: FakeStore, **metadata):
    listing = store.add_listing(
        ModuleKindEnum.RENTAL,
        {"rental_unit": "day", "deposit_amount": "25", **metadata},
    )
    return to_item_read(listing)


def _service(store: FakeStore, **metadata):
    listing = store.add_listing(
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
    )
    return to_item_read(listing)


@pytest.mark.asyncio
async def test_commit_writes_order_window_and_calendar_cells() -> None:
    store = FakeStore()
    item = _rental(store)
    repository = FakeReservationRepository(store)

    result = await ReservationCommitter(repository).commit(rental_proposal(item.id, MAR_1, MAR_3), item)

    assert repository.calls == [
        "lock_item",
        "list_active_windows",
        "create_order",
        "create_window",
        "block_rental_days",
        "commit",
    ]
    assert result.total == Decimal("325")
    order = store.orders[result.order_id]
    assert order.booking_details["units"] == 3
    assert store.windows[result.window_id].order_id == result.order_id
    assert {day for (_, day) in store.days} == {MAR_1, MAR_2, MAR_3}


@pytest.mark.asyncio
async def test_turnover_listing_blocks_every_day_but_the_last() -> None:
    store = FakeStore()
    item = _rental(store, allow_same_day_turnover=True)

    await ReservationCommitter(FakeReservationRepository(store)).commit(
        rental_proposal(item.id, MAR_1, MAR_3),
        item,
    )

    assert {day for (_, day) in store.days} == {MAR_1, MAR_2}


@pytest.mark.asyncio
async def test_recheck_under_lock_rejects_overlap_before_any_write() -> None:
    store = FakeStore()
    item = _rental(store)
    seed_rental_window(store, item.id, MAR_2, date(2027, 3, 4))
    repository = FakeReservationRepository(store)

    with pytest.raises(CommitConflictException) as exc:
        await ReservationCommitter(repository).commit(rental_proposal(item.id, MAR_1, MAR_3), item)

    assert exc.value.excluded_dates == (MAR_2, MAR_3)
    assert "create_order" not in repository.calls
    assert repository.calls[-1] == "rollback"
    assert store.orders == {}


@pytest.mark.asyncio
async def test_unique_calendar_cell_violation_rolls_back_order() -> None:
    store = FakeStore()
    item = _rental(store)
    store.days[(item.id, MAR_2)] = uuid4()
    repository = FakeReservationRepository(store)

    with pytest.raises(CommitConflictException) as exc:
        await ReservationCommitter(repository).commit(rental_proposal(item.id, MAR_1, MAR_3), item)

    assert exc.value.code == "commit_conflict"
    assert exc.value.excluded_dates == (MAR_1, MAR_2, MAR_3)
    assert repository.calls[-1] == "rollback"
    assert store.orders == {}
    assert store.windows == {}


@pytest.mark.asyncio
async def test_service_conflict_reports_losing_slot() -> None:
    store = FakeStore()
    staff_id = uuid4()
    item = _service(store)
    seed_service_window(store, item.id, MONDAY, 14 * 60, staff_id=staff_id)

    with pytest.raises(CommitConflictException) as exc:
        await ReservationCommitter(FakeReservationRepository(store)).commit(
            service_proposal(item.id, MONDAY, "15:00", staff_id=staff_id),
            item,
        )

    assert exc.value.excluded_slot == "15:00"
    assert exc.value.excluded_dates == ()


@pytest.mark.asyncio
async def test_service_commit_stores_slot_minutes_and_buffers() -> None:
    store = FakeStore()
    item = _service(store)

    result = await ReservationCommitter(FakeReservationRepository(store)).commit(
        service_proposal(item.id, MONDAY, "11:00"),
        item,
    )

    window = store.windows[result.window_id]
    assert (window.start_minute, window.duration_minutes) == (660, 60)
    assert (window.buffer_time_before, window.buffer_time_after) == (10, 10)
    assert result.total == Decimal("40")
    assert store.days == {}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        OperationalError("INSERT INTO booking_windows", {}, Exception("connection reset")),
        InterfaceError("INSERT INTO booking_windows", {}, Exception("connection closed")),
    ],
)
async def test_connection_failure_is_transport_error(error: Exception) -> None:
    store = FakeStore()
    item = _rental(store)
    repository = FakeReservationRepository(store, failures={"create_window": error})

    with pytest.raises(TransportException) as exc:
        await ReservationCommitter(repository).commit(rental_proposal(item.id, MAR_1, MAR_3), item)

    assert exc.value.retryable is True
    assert repository.calls[-1] == "rollback"
    assert store.orders == {}


@pytest.mark.asyncio
async def test_storage_error_after_order_insert_is_partial_commit() -> None:
    store = FakeStore()
    item = _rental(store)
    repository = FakeReservationRepository(
        store,
        failures={"create_window": DataError("INSERT INTO booking_windows", {}, Exception("bad value"))},
    )

    with pytest.raises(PartialCommitException):
        await ReservationCommitter(repository).commit(rental_proposal(item.id, MAR_1, MAR_3), item)

    assert repository.calls[-1] == "rollback"
    assert store.orders == {}


@pytest.mark.asyncio
async def test_storage_error_before_order_insert_is_transport_error() -> None:
    store = FakeStore()
    item = _rental(store)
    repository = FakeReservationRepository(
        store,
        failures={"create_order": DataError("INSERT INTO orders", {}, Exception("bad value"))},
    )

    with pytest.raises(TransportException):
        await ReservationCommitter(repository).commit(rental_proposal(item.id, MAR_1, MAR_3), item)


@pytest.mark.asyncio
async def test_failed_rollback_after_order_insert_is_logged_as_critical(
    caplog: pytest.LogCaptureFixture,
) -> None:
    store = FakeStore()
    item = _rental(store)
    repository = FakeReservationRepository(
        store,
        failures={
            "create_window": OperationalError("INSERT INTO booking_windows", {}, Exception("connection reset")),
            "rollback": OperationalError("ROLLBACK", {}, Exception("connection reset")),
        },
    )

    with caplog.at_level("CRITICAL", logger="booking_engine.modules.reservations.committer"):
        with pytest.raises(PartialCommitException):
            await ReservationCommitter(repository).commit(rental_proposal(item.id, MAR_1, MAR_3), item)

    assert any(record.levelname == "CRITICAL" for record in caplog.records)
