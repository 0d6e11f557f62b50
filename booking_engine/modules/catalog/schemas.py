"""Catalog schemas, including the per-module metadata union."""

from __future__ import annotations

from datetime import time
from decimal import Decimal
from typing import Annotated, Literal, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from booking_engine.core.enums import ModuleKindEnum, RentalUnitEnum
from booking_engine.shared.exceptions import BusinessRuleException

Weekday = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

WEEKDAYS: tuple[Weekday, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


class OperatingPeriod(BaseModel):
    """One opening period of a day, e.g. 09:00-12:00."""

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, value: str) -> str:
        time.fromisoformat(value)
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "OperatingPeriod":
        if time.fromisoformat(self.start) >= time.fromisoformat(self.end):
            raise ValueError("Operating period start must be before end")
        return self


class SaleMetadata(BaseModel):
    """Physical goods listing; never bookable."""

    model_config = ConfigDict(extra="ignore")

    module_kind: Literal["sale"] = "sale"
    stock_level: int = Field(default=0, ge=0)


class RentalMetadata(BaseModel):
    """Rental listing settings."""

    model_config = ConfigDict(extra="ignore")

    module_kind: Literal["rental"] = "rental"
    rental_unit: RentalUnitEnum = RentalUnitEnum.DAY
    deposit_amount: Decimal = Field(default=Decimal("0"), ge=0)
    min_period: int | None = Field(default=None, ge=1)
    max_period: int | None = Field(default=None, ge=1)
    require_id_verification: bool = False
    allow_same_day_turnover: bool = False

    @model_validator(mode="after")
    def validate_period_bounds(self) -> "RentalMetadata":
        if (
            self.min_period is not None
            and self.max_period is not None
            and self.min_period > self.max_period
        ):
            raise ValueError("min_period cannot exceed max_period")
        return self


class ServiceMetadata(BaseModel):
    """Appointment listing settings."""

    model_config = ConfigDict(extra="ignore")

    module_kind: Literal["service"] = "service"
    duration_minutes: int = Field(default=60, ge=5, le=24 * 60)
    buffer_time_before: int = Field(default=0, ge=0, le=24 * 60)
    buffer_time_after: int = Field(default=0, ge=0, le=24 * 60)
    slot_interval_minutes: int | None = Field(default=None, ge=5, le=24 * 60)
    allow_specialist_selection: bool = False
    assigned_staff_ids: list[UUID] = Field(default_factory=list)
    room_id: UUID | None = None
    max_bookings_per_slot: int = Field(default=1, ge=1)
    availability: dict[Weekday, list[OperatingPeriod]] = Field(default_factory=dict)

    @property
    def slot_step_minutes(self) -> int:
        """Distance between two consecutive candidate slot starts."""
        if self.slot_interval_minutes is not None:
            return self.slot_interval_minutes
        return self.duration_minutes + self.buffer_time_after


ModuleMetadata = Annotated[
    Union[SaleMetadata, RentalMetadata, ServiceMetadata],
    Field(discriminator="module_kind"),
]

_module_metadata_adapter: TypeAdapter[ModuleMetadata] = TypeAdapter(ModuleMetadata)


def parse_module_metadata(module_kind: ModuleKindEnum | str, raw: dict | None) -> ModuleMetadata:
    """Validate stored metadata against the variant of its module kind."""
    payload = dict(raw or {})
    payload["module_kind"] = str(module_kind)
    return _module_metadata_adapter.validate_python(payload)


class BookableItemRead(BaseModel):
    """Bookable item response schema."""

    id: UUID
    merchant_id: UUID
    title: str
    module_kind: ModuleKindEnum
    price: Decimal
    is_active: bool
    metadata: ModuleMetadata


class StaffRead(BaseModel):
    """Staff member response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    avatar_url: str | None = None


MetadataT = TypeVar("MetadataT", SaleMetadata, RentalMetadata, ServiceMetadata)


def module_metadata(item: BookableItemRead, metadata_type: type[MetadataT]) -> MetadataT:
    """Return listing settings, requiring the given module variant."""
    metadata = item.metadata
    if not isinstance(metadata, metadata_type):
        raise BusinessRuleException(f"Listing {item.id} has no {metadata_type.__name__} settings")
    return metadata
