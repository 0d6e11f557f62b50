"""Catalog repository layer."""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.modules.catalog.models import BookableItem, Room, StaffMember


class CatalogRepository:
    """DB access for listings, staff and rooms."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_item_by_id(self, item_id: UUID) -> BookableItem | None:
        stmt = select(BookableItem).where(BookableItem.id == item_id)
        return await self.session.scalar(stmt)

    async def list_active_staff(
        self,
        merchant_id: UUID,
        staff_ids: Sequence[UUID] | None = None,
    ) -> list[StaffMember]:
        stmt = select(StaffMember).where(
            StaffMember.merchant_id == merchant_id,
            StaffMember.is_active.is_(True),
        )
        if staff_ids:
            stmt = stmt.where(StaffMember.id.in_(list(staff_ids)))
        stmt = stmt.order_by(StaffMember.name.asc())
        return list((await self.session.scalars(stmt)).all())

    async def get_room_by_id(self, room_id: UUID) -> Room | None:
        stmt = select(Room).where(Room.id == room_id, Room.is_active.is_(True))
        return await self.session.scalar(stmt)
