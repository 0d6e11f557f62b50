"""Orders API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from booking_engine.modules.orders.schemas import OrderCancelRequest, OrderRead
from booking_engine.modules.orders.service import OrdersService, get_orders_service
from booking_engine.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/items/{item_id}", response_model=Page[OrderRead])
async def list_item_orders(
    item_id: UUID,
    pagination=Depends(get_pagination_params),
    service: OrdersService = Depends(get_orders_service),
) -> Page[OrderRead]:
    """List orders placed for a listing."""
    items, total = await service.list_item_orders(item_id, pagination.limit, pagination.offset)
    serialized = [OrderRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: UUID,
    service: OrdersService = Depends(get_orders_service),
) -> OrderRead:
    """Return one order."""
    order = await service.get_order(order_id)
    return OrderRead.model_validate(order)


@router.post("/{order_id}/cancel", response_model=OrderRead)
async def cancel_order(
    order_id: UUID,
    payload: OrderCancelRequest,
    service: OrdersService = Depends(get_orders_service),
) -> OrderRead:
    """Cancel order and free its dates or slot."""
    order = await service.cancel_order(order_id, payload)
    return OrderRead.model_validate(order)
