"""Core enums used across modules."""

from enum import StrEnum


class ModuleKindEnum(StrEnum):
    """Storefront listing module kind."""

    SALE = "sale"
    RENTAL = "rental"
    SERVICE = "service"


class RentalUnitEnum(StrEnum):
    """Billing unit of a rental listing."""

    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class BookingStatusEnum(StrEnum):
    """Booking window lifecycle status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class OrderStatusEnum(StrEnum):
    """Order status owned by the commerce side."""

    PENDING_VERIFICATION = "pending_verification"
    PAID = "paid"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentMethodEnum(StrEnum):
    """Mobile money providers offered at checkout."""

    ORANGE_MONEY = "orange_money"
    WAVE = "wave"


class ReservationStateEnum(StrEnum):
    """State of a single booking attempt."""

    DRAFT = "draft"
    VALIDATING = "validating"
    COMMITTING = "committing"
    CONFIRMED = "confirmed"
    CONFLICT = "conflict"
    REJECTED = "rejected"
    FAILED = "failed"


class CheckoutStepEnum(StrEnum):
    """Checkout flow step shown to the customer."""

    SELECTING_ITEM = "selecting_item"
    SELECTING_DATES = "selecting_dates"
    SELECTING_SLOT = "selecting_slot"
    ENTERING_CUSTOMER_DETAILS = "entering_customer_details"
    SELECTING_PAYMENT = "selecting_payment"
    ENTERING_PAYMENT_REFERENCE = "entering_payment_reference"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILURE = "failure"


ACTIVE_BOOKING_STATUSES = (BookingStatusEnum.PENDING, BookingStatusEnum.CONFIRMED)
