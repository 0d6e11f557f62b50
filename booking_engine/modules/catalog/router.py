"""Catalog API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from booking_engine.modules.catalog.schemas import BookableItemRead, StaffRead
from booking_engine.modules.catalog.service import CatalogService, get_catalog_service

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/items/{item_id}", response_model=BookableItemRead)
async def get_item(
    item_id: UUID,
    service: CatalogService = Depends(get_catalog_service),
) -> BookableItemRead:
    """Return listing with its module settings."""
    return await service.get_item(item_id)


@router.get("/items/{item_id}/staff", response_model=list[StaffRead])
async def list_item_staff(
    item_id: UUID,
    service: CatalogService = Depends(get_catalog_service),
) -> list[StaffRead]:
    """List staff customers can pick for a service."""
    return await service.list_staff_for_service(item_id)
