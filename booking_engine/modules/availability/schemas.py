"""Availability schemas."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ServiceSlot(BaseModel):
    """One candidate appointment start."""

    model_config = ConfigDict(frozen=True)

    time: str
    available: bool


class ServiceAvailability(BaseModel):
    """Slots of one service on one date, in chronological order."""

    item_id: UUID
    appointment_date: date
    staff_id: UUID | None = None
    slots: list[ServiceSlot]


class RentalBookedDates(BaseModel):
    """Dates a rental cannot be picked for within a month."""

    item_id: UUID
    month: str
    booked_dates: list[date]


class RentalAvailabilityCheck(BaseModel):
    """Result of checking a rental date range."""

    available: bool
    conflicting_dates: list[date] = Field(default_factory=list)


class RentalQuote(BaseModel):
    """Price breakdown of a rental range."""

    units: int
    rental_cost: Decimal
    deposit_amount: Decimal
    total: Decimal
