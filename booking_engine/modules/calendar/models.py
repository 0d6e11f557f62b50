"""Calendar ORM models: booking windows and blocked rental days."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booking_engine.core.database import Base, BaseModelMixin
from booking_engine.core.enums import BookingStatusEnum, ModuleKindEnum

if TYPE_CHECKING:
    from booking_engine.modules.orders.models import Order


class BookingWindow(BaseModelMixin, Base):
    """Reserved time of one order against a listing.

    Rentals use the inclusive ``[start_date, end_date]`` interval. Services
    keep ``start_date == end_date`` and store the slot start in minutes
    together with the duration and buffers in force at booking time.
    """

    __tablename__ = "booking_windows"
    __table_args__ = (CheckConstraint("end_date >= start_date", name="date_order"),)

    item_id: Mapped[UUID] = mapped_column(
        ForeignKey("bookable_items.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    order_id: Mapped[UUID] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    module_kind: Mapped[ModuleKindEnum] = mapped_column(
        SAEnum(ModuleKindEnum, name="module_kind_enum", native_enum=False),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    start_minute: Mapped[int | None] = mapped_column(nullable=True)
    duration_minutes: Mapped[int | None] = mapped_column(nullable=True)
    buffer_time_before: Mapped[int] = mapped_column(default=0, nullable=False)
    buffer_time_after: Mapped[int] = mapped_column(default=0, nullable=False)
    staff_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("staff_members.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    room_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("rooms.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    status: Mapped[BookingStatusEnum] = mapped_column(
        SAEnum(BookingStatusEnum, name="booking_status_enum", native_enum=False),
        default=BookingStatusEnum.PENDING,
        nullable=False,
        index=True,
    )

    order: Mapped[Order] = relationship(back_populates="window")
    days: Mapped[list[RentalCalendarDay]] = relationship(
        back_populates="window",
        cascade="all, delete-orphan",
    )


class RentalCalendarDay(BaseModelMixin, Base):
    """One blocked calendar cell of an active rental window."""

    __tablename__ = "rental_calendar_days"
    __table_args__ = (UniqueConstraint("item_id", "booked_date"),)

    item_id: Mapped[UUID] = mapped_column(
        ForeignKey("bookable_items.id", ondelete="RESTRICT"),
        nullable=False,
    )
    booked_date: Mapped[date] = mapped_column(Date, nullable=False)
    window_id: Mapped[UUID] = mapped_column(
        ForeignKey("booking_windows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    window: Mapped[BookingWindow] = relationship(back_populates="days")
