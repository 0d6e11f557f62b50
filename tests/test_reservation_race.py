"""Two customers submitting the same window at the same time."""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID, uuid4

import httpx
import pytest
import pytest_asyncio
from reservation_fakes import (
    FakeReservationRepository,
    FakeStore,
    build_reservation_service,
    rental_proposal,
    service_proposal,
)

from booking_engine.core.enums import ModuleKindEnum, ReservationStateEnum

MAR_1 = date(2027, 3, 1)
MAR_3 = date(2027, 3, 3)


def _rental_listing(store: FakeStore) -> UUID:
    return store.add_listing(ModuleKindEnum.RENTAL, {"rental_unit": "day"}).id


@pytest.mark.asyncio
async def test_concurrent_rental_submissions_confirm_exactly_one() -> None:
    store = FakeStore()
    item_id = _rental_listing(store)
    proposal = rental_proposal(item_id, MAR_1, MAR_3)

    outcomes = await asyncio.gather(
        build_reservation_service(store).submit(proposal),
        build_reservation_service(store).submit(proposal),
    )

    states = sorted(outcome.state for outcome in outcomes)
    assert states == [ReservationStateEnum.CONFIRMED, ReservationStateEnum.CONFLICT]
    loser = next(outcome for outcome in outcomes if not outcome.confirmed)
    assert loser.error_code == "commit_conflict"
    assert loser.excluded_dates == [MAR_1, date(2027, 3, 2), MAR_3]
    assert len(store.orders) == 1
    assert len(store.windows) == 1


@pytest.mark.asyncio
async def test_unique_calendar_cell_decides_race_without_row_lock() -> None:
    store = FakeStore()
    item_id = _rental_listing(store)
    proposal = rental_proposal(item_id, MAR_1, MAR_3)

    outcomes = await asyncio.gather(
        build_reservation_service(store, FakeReservationRepository(store, use_row_lock=False)).submit(proposal),
        build_reservation_service(store, FakeReservationRepository(store, use_row_lock=False)).submit(proposal),
    )

    assert sorted(outcome.state for outcome in outcomes) == [
        ReservationStateEnum.CONFIRMED,
        ReservationStateEnum.CONFLICT,
    ]
    assert len(store.orders) == 1
    assert len(store.days) == 3


@pytest.mark.asyncio
async def test_concurrent_service_submissions_for_same_staff_confirm_one() -> None:
    store = FakeStore()
    staff_id = uuid4()
    item_id = store.add_listing(
        ModuleKindEnum.SERVICE,
        {"duration_minutes": 60, "slot_interval_minutes": 60, "allow_specialist_selection": True},
        price=Decimal("40"),
    ).id
    proposal = service_proposal(item_id, date(2027, 3, 8), "10:00", staff_id=staff_id)

    outcomes = await asyncio.gather(
        build_reservation_service(store).submit(proposal),
        build_reservation_service(store).submit(proposal),
    )

    assert sorted(outcome.state for outcome in outcomes) == [
        ReservationStateEnum.CONFIRMED,
        ReservationStateEnum.CONFLICT,
    ]
    loser = next(outcome for outcome in outcomes if not outcome.confirmed)
    assert loser.excluded_slot == "10:00"


# Against a running stack seeded with scripts/seed_demo_data.py.

API_BASE_URL = os.getenv("INTEGRATION_BASE_URL", "http://localhost:8000/api/v1").rstrip("/")
HEALTHCHECK_URL = os.getenv("INTEGRATION_HEALTH_URL", "http://localhost:8000/ready")
REQUEST_TIMEOUT_SECONDS = float(os.getenv("INTEGRATION_TIMEOUT_SECONDS", "15"))
DEMO_RENTAL_ITEM_ID = os.getenv("INTEGRATION_RENTAL_ITEM_ID")


@pytest_asyncio.fixture()
async def api_client() -> AsyncIterator[httpx.AsyncClient]:
    if not DEMO_RENTAL_ITEM_ID:
        pytest.skip("INTEGRATION_RENTAL_ITEM_ID is not set")

    async with httpx.AsyncClient(timeout=min(REQUEST_TIMEOUT_SECONDS, 3.0)) as probe:
        try:
            ready_response = await probe.get(HEALTHCHECK_URL)
        except httpx.HTTPError as exc:
            pytest.skip(f"Integration stack unavailable at {HEALTHCHECK_URL}: {exc}")
        if ready_response.status_code != 200:
            pytest.skip(f"Integration stack returned {ready_response.status_code} for {HEALTHCHECK_URL}")

    async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=REQUEST_TIMEOUT_SECONDS) as client:
        yield client


@pytest.mark.asyncio
async def test_live_stack_confirms_one_of_two_simultaneous_rentals(api_client: httpx.AsyncClient) -> None:
    # A far-future random week keeps reruns independent of each other.
    start = date.today() + timedelta(days=400 + uuid4().int % 2000)
    payload = {
        "item_id": DEMO_RENTAL_ITEM_ID,
        "selection": {
            "module_kind": "rental",
            "start_date": start.isoformat(),
            "end_date": (start + timedelta(days=2)).isoformat(),
        },
        "customer": {"name": "Race Test", "phone": "+221770000001", "id_number": "SN-0001"},
        "payment_method": "wave",
        "payment_reference": f"WV-{uuid4().hex[:8]}",
    }

    responses = await asyncio.gather(
        api_client.post("/reservations", json=payload),
        api_client.post("/reservations", json=payload),
    )

    assert sorted(response.status_code for response in responses) == [201, 409]
    states = sorted(response.json()["state"] for response in responses)
    assert states == ["confirmed", "conflict"]
