"""Reservation schemas: proposals and attempt outcomes."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from booking_engine.core.enums import ModuleKindEnum, PaymentMethodEnum, ReservationStateEnum


class CustomerDetails(BaseModel):
    """Customer identity entered at checkout.

    Blank values are accepted here so that missing fields surface as a
    booking validation error instead of a schema error.
    """

    name: str = Field(default="", max_length=255)
    phone: str = Field(default="", max_length=64)
    id_number: str | None = Field(default=None, max_length=128)
    notes: str | None = Field(default=None, max_length=1024)


class RentalSelection(BaseModel):
    """Inclusive rental date range."""

    model_config = ConfigDict(frozen=True)

    module_kind: Literal["rental"] = "rental"
    start_date: date
    end_date: date


class ServiceSelection(BaseModel):
    """Appointment slot on one date."""

    model_config = ConfigDict(frozen=True)

    module_kind: Literal["service"] = "service"
    appointment_date: date
    time_slot: str
    staff_id: UUID | None = None


Selection = Annotated[Union[RentalSelection, ServiceSelection], Field(discriminator="module_kind")]


class BookingProposal(BaseModel):
    """Candidate booking submitted from checkout."""

    item_id: UUID
    selection: Selection
    customer: CustomerDetails = Field(default_factory=CustomerDetails)
    payment_method: PaymentMethodEnum | None = None
    payment_reference: str | None = Field(default=None, max_length=128)

    @property
    def module_kind(self) -> ModuleKindEnum:
        return ModuleKindEnum(self.selection.module_kind)


class ConflictCheck(BaseModel):
    """Result of the authoritative pre-commit re-check."""

    available: bool
    conflicting_dates: list[date] = Field(default_factory=list)
    conflicting_window_ids: list[UUID] = Field(default_factory=list)


class CommitResult(BaseModel):
    """Identifiers written by a successful reservation commit."""

    order_id: UUID
    window_id: UUID
    total: Decimal


class ReservationOutcome(BaseModel):
    """Discriminated result of one booking attempt, returned to the UI."""

    state: ReservationStateEnum
    order_id: UUID | None = None
    window_id: UUID | None = None
    total: Decimal | None = None
    error_code: str | None = None
    message: str | None = None
    retryable: bool = False
    missing_fields: list[str] = Field(default_factory=list)
    excluded_dates: list[date] = Field(default_factory=list)
    excluded_slot: str | None = None

    @property
    def confirmed(self) -> bool:
        return self.state == ReservationStateEnum.CONFIRMED
