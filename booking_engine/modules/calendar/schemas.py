"""Calendar schemas."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from pydantic import BaseModel, ConfigDict, model_validator

from booking_engine.core.enums import BookingStatusEnum, ModuleKindEnum
from booking_engine.shared.utils import iter_dates


class DateRange(BaseModel):
    """Closed date interval used by calendar queries."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def validate_order(self) -> "DateRange":
        if self.end < self.start:
            raise ValueError("Date range end must not be before start")
        return self

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def dates(self) -> list[date]:
        return list(iter_dates(self.start, self.end))


class BookingWindowRead(BaseModel):
    """Snapshot of a stored booking window."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    item_id: UUID
    order_id: UUID
    module_kind: ModuleKindEnum
    start_date: date
    end_date: date
    start_minute: int | None = None
    duration_minutes: int | None = None
    buffer_time_before: int = 0
    buffer_time_after: int = 0
    staff_id: UUID | None = None
    room_id: UUID | None = None
    status: BookingStatusEnum

    @property
    def occupied_minutes(self) -> tuple[int, int]:
        """Half-open ``[start - before, start + duration + after)`` of a service window."""
        if self.start_minute is None or self.duration_minutes is None:
            raise ValueError("Rental windows have no occupied minutes")
        return (
            self.start_minute - self.buffer_time_before,
            self.start_minute + self.duration_minutes + self.buffer_time_after,
        )
