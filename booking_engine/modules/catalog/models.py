"""Catalog ORM models: bookable listings and merchant resource registries."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Numeric, String
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from booking_engine.core.database import Base, BaseModelMixin
from booking_engine.core.enums import ModuleKindEnum


class BookableItem(BaseModelMixin, Base):
    """Storefront listing; rentals and services can be booked."""

    __tablename__ = "bookable_items"

    merchant_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    module_kind: Mapped[ModuleKindEnum] = mapped_column(
        SAEnum(ModuleKindEnum, name="module_kind_enum", native_enum=False),
        nullable=False,
        index=True,
    )
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    # "metadata" is reserved on declarative classes.
    module_metadata: Mapped[dict] = mapped_column("metadata", JSONB, default=dict, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class StaffMember(BaseModelMixin, Base):
    """Merchant staff member assignable to service appointments."""

    __tablename__ = "staff_members"

    merchant_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Room(BaseModelMixin, Base):
    """Room or booth shared by service appointments."""

    __tablename__ = "rooms"

    merchant_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    capacity: Mapped[int] = mapped_column(default=1, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
