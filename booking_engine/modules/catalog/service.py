"""Catalog business logic layer."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.config import get_settings
from booking_engine.core.database import get_db_session
from booking_engine.core.enums import ModuleKindEnum
from booking_engine.modules.catalog.models import BookableItem
from booking_engine.modules.catalog.repository import CatalogRepository
from booking_engine.modules.catalog.schemas import (
    BookableItemRead,
    ServiceMetadata,
    StaffRead,
    module_metadata,
    parse_module_metadata,
)
from booking_engine.shared.exceptions import BusinessRuleException, NotFoundException

settings = get_settings()


def _service_defaults(raw: dict | None) -> dict:
    payload = dict(raw or {})
    payload.setdefault("duration_minutes", settings.default_service_duration_minutes)
    payload.setdefault("max_bookings_per_slot", settings.default_max_bookings_per_slot)
    return payload


def to_item_read(item: BookableItem) -> BookableItemRead:
    """Convert ORM listing to schema with its typed metadata variant.

    Service listings saved without a duration or slot capacity take the
    merchant defaults.
    """
    raw = item.module_metadata
    if item.module_kind == ModuleKindEnum.SERVICE:
        raw = _service_defaults(raw)
    try:
        metadata = parse_module_metadata(item.module_kind, raw)
    except ValidationError as exc:
        raise BusinessRuleException(f"Listing {item.id} has invalid metadata: {exc}") from exc
    return BookableItemRead(
        id=item.id,
        merchant_id=item.merchant_id,
        title=item.title,
        module_kind=item.module_kind,
        price=item.price,
        is_active=item.is_active,
        metadata=metadata,
    )


class CatalogService:
    """Read access to listings and merchant registries."""

    def __init__(self, repository: CatalogRepository) -> None:
        self.repository = repository

    async def get_item(self, item_id: UUID) -> BookableItemRead:
        """Return active listing with parsed metadata."""
        item = await self.repository.get_item_by_id(item_id)
        if item is None or not item.is_active:
            raise NotFoundException("Listing not found")
        return to_item_read(item)

    async def get_bookable_item(
        self,
        item_id: UUID,
        module_kind: ModuleKindEnum | None = None,
    ) -> BookableItemRead:
        """Return listing that supports scheduling, optionally of one kind."""
        item = await self.get_item(item_id)
        if item.module_kind == ModuleKindEnum.SALE:
            raise BusinessRuleException("Sale listings cannot be booked")
        if module_kind is not None and item.module_kind != module_kind:
            raise BusinessRuleException(f"Listing is not a {module_kind} listing")
        return item

    async def list_staff_for_service(self, item_id: UUID) -> list[StaffRead]:
        """Assigned active staff, or every active staff member when none is assigned."""
        item = await self.get_bookable_item(item_id, ModuleKindEnum.SERVICE)
        metadata = module_metadata(item, ServiceMetadata)
        staff = await self.repository.list_active_staff(
            item.merchant_id,
            metadata.assigned_staff_ids or None,
        )
        return [StaffRead.model_validate(member) for member in staff]

    async def get_room_capacity(self, room_id: UUID | None) -> int | None:
        """Capacity of the room used by a service, None when unconstrained."""
        if room_id is None:
            return None
        room = await self.repository.get_room_by_id(room_id)
        if room is None:
            return None
        return room.capacity


async def get_catalog_service(session: AsyncSession = Depends(get_db_session)) -> CatalogService:
    """Dependency provider for catalog service."""
    return CatalogService(CatalogRepository(session))
