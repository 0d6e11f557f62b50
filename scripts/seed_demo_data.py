"""Seed idempotent demo listings for local/non-production environments."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass
from decimal import Decimal
from uuid import NAMESPACE_URL, UUID, uuid5

from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.config import get_settings
from booking_engine.core.database import SessionLocal, close_engine
from booking_engine.core.enums import ModuleKindEnum, RentalUnitEnum
from booking_engine.modules.catalog.models import BookableItem, Room, StaffMember
from booking_engine.modules.catalog.schemas import RentalMetadata, ServiceMetadata


def _demo_id(name: str) -> UUID:
    return uuid5(NAMESPACE_URL, f"https://storefront.dev/demo/{name}")


DEMO_MERCHANT_ID = _demo_id("merchant")
DEMO_STAFF_IDS = (_demo_id("staff/awa"), _demo_id("staff/moussa"))
DEMO_ROOM_ID = _demo_id("room/salon")
DEMO_RENTAL_ITEM_ID = _demo_id("item/camera")
DEMO_SERVICE_ITEM_ID = _demo_id("item/haircut")


@dataclass(slots=True)
class SeedStats:
    staff_created: int = 0
    rooms_created: int = 0
    items_created: int = 0
    items_updated: int = 0


async def _ensure_staff(session: AsyncSession) -> int:
    created = 0
    for staff_id, name in zip(DEMO_STAFF_IDS, ("Awa", "Moussa")):
        member = await session.get(StaffMember, staff_id)
        if member is None:
            session.add(StaffMember(id=staff_id, merchant_id=DEMO_MERCHANT_ID, name=name, is_active=True))
            created += 1
        else:
            member.is_active = True
    await session.flush()
    return created


async def _ensure_room(session: AsyncSession) -> int:
    room = await session.get(Room, DEMO_ROOM_ID)
    if room is None:
        session.add(Room(id=DEMO_ROOM_ID, merchant_id=DEMO_MERCHANT_ID, name="Salon", capacity=2, is_active=True))
        await session.flush()
        return 1
    room.capacity = 2
    await session.flush()
    return 0


def _demo_items() -> list[dict]:
    rental = RentalMetadata(
        rental_unit=RentalUnitEnum.DAY,
        deposit_amount=Decimal("50000"),
        min_period=1,
        max_period=14,
        require_id_verification=True,
    )
    service = ServiceMetadata(
        duration_minutes=60,
        buffer_time_before=10,
        buffer_time_after=10,
        slot_interval_minutes=60,
        allow_specialist_selection=True,
        assigned_staff_ids=list(DEMO_STAFF_IDS),
        room_id=DEMO_ROOM_ID,
        max_bookings_per_slot=2,
        availability={"sunday": []},
    )
    return [
        {
            "id": DEMO_RENTAL_ITEM_ID,
            "title": "Demo camera rental",
            "module_kind": ModuleKindEnum.RENTAL,
            "price": Decimal("15000"),
            "module_metadata": rental.model_dump(mode="json"),
        },
        {
            "id": DEMO_SERVICE_ITEM_ID,
            "title": "Demo haircut",
            "module_kind": ModuleKindEnum.SERVICE,
            "price": Decimal("5000"),
            "module_metadata": service.model_dump(mode="json"),
        },
    ]


async def _ensure_items(session: AsyncSession) -> tuple[int, int]:
    created = 0
    updated = 0
    for values in _demo_items():
        item = await session.get(BookableItem, values["id"])
        if item is None:
            session.add(BookableItem(merchant_id=DEMO_MERCHANT_ID, is_active=True, **values))
            created += 1
            continue
        item.title = values["title"]
        item.price = values["price"]
        item.module_metadata = values["module_metadata"]
        item.is_active = True
        updated += 1
    await session.flush()
    return created, updated


async def _run_seed(*, allow_production: bool) -> SeedStats:
    settings = get_settings()
    app_env = settings.app_env.strip().lower()
    if app_env in {"production", "prod"} and not allow_production:
        raise RuntimeError(
            "Refusing to seed demo data in production. "
            "Re-run with --allow-production only if you are absolutely sure.",
        )

    stats = SeedStats()

    async with SessionLocal() as session:
        try:
            stats.staff_created = await _ensure_staff(session)
            stats.rooms_created = await _ensure_room(session)
            stats.items_created, stats.items_updated = await _ensure_items(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    return stats


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Seed idempotent demo data (staff, room, one rental and one service listing).",
    )
    parser.add_argument(
        "--allow-production",
        action="store_true",
        help="Allow seeding even when APP_ENV is production/prod.",
    )
    return parser


def _print_summary(stats: SeedStats) -> None:
    print("Demo seed completed.")
    print(f"- Staff created: {stats.staff_created}")
    print(f"- Rooms created: {stats.rooms_created}")
    print(f"- Listings created: {stats.items_created}")
    print(f"- Listings updated: {stats.items_updated}")
    print("")
    print(f"- Rental listing id:  {DEMO_RENTAL_ITEM_ID}")
    print(f"- Service listing id: {DEMO_SERVICE_ITEM_ID}")


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    try:
        stats = asyncio.run(_run_seed(allow_production=args.allow_production))
    except Exception as exc:
        print(f"Demo seed failed: {exc}")
        return 1
    finally:
        asyncio.run(close_engine())

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
