"""
Checkout flow state machine.

Drives one customer through a booking:

    SELECTING_ITEM -> SELECTING_DATES -> (SELECTING_SLOT for services)
    -> ENTERING_CUSTOMER_DETAILS -> SELECTING_PAYMENT
    -> ENTERING_PAYMENT_REFERENCE -> SUBMITTING -> SUCCESS | FAILURE

The flow only moves forward, except FAILURE -> SELECTING_DATES which keeps
the customer and payment details already entered. Each step has a validity
predicate; ``advance()`` refuses to leave a step whose predicate fails and
``can_advance()`` lets the UI hide the next action.

Availability cached on the session is a hint used to render options. The
reservation service re-checks it on every submission.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from uuid import UUID

from booking_engine.core.enums import CheckoutStepEnum, ModuleKindEnum, PaymentMethodEnum, ReservationStateEnum
from booking_engine.modules.availability import calculator
from booking_engine.modules.availability.schemas import RentalBookedDates, ServiceAvailability
from booking_engine.modules.availability.service import AvailabilityService, merchant_now_minutes
from booking_engine.modules.catalog.schemas import BookableItemRead, RentalMetadata
from booking_engine.modules.reservations.attempt import InvalidTransitionError
from booking_engine.modules.reservations.schemas import (
    BookingProposal,
    CustomerDetails,
    RentalSelection,
    ReservationOutcome,
    ServiceSelection,
)
from booking_engine.modules.reservations.service import ReservationService
from booking_engine.modules.reservations.validation import missing_customer_fields
from booking_engine.shared.exceptions import BookingValidationException
from booking_engine.shared.utils import iter_dates

logger = logging.getLogger(__name__)


class CheckoutAction(StrEnum):
    """Customer actions that move the checkout."""

    ADVANCE = "advance"
    SUBMIT = "submit"
    SUCCEED = "succeed"
    FAIL = "fail"
    RESELECT = "reselect"


@dataclass(frozen=True)
class StepTransition:
    """A single valid checkout transition."""

    from_step: CheckoutStepEnum
    to_step: CheckoutStepEnum
    action: CheckoutAction
    guard: Callable[["CheckoutSession"], bool] | None = None


def _is_service(session: "CheckoutSession") -> bool:
    return session.module_kind == ModuleKindEnum.SERVICE


def _is_rental(session: "CheckoutSession") -> bool:
    return session.module_kind == ModuleKindEnum.RENTAL


class CheckoutSession:
    """Per-customer checkout flow for one rental or service listing."""

    TRANSITIONS: tuple[StepTransition, ...] = (
        StepTransition(CheckoutStepEnum.SELECTING_ITEM, CheckoutStepEnum.SELECTING_DATES, CheckoutAction.ADVANCE),
        StepTransition(
            CheckoutStepEnum.SELECTING_DATES,
            CheckoutStepEnum.SELECTING_SLOT,
            CheckoutAction.ADVANCE,
            _is_service,
        ),
        StepTransition(
            CheckoutStepEnum.SELECTING_DATES,
            CheckoutStepEnum.ENTERING_CUSTOMER_DETAILS,
            CheckoutAction.ADVANCE,
            _is_rental,
        ),
        StepTransition(
            CheckoutStepEnum.SELECTING_SLOT,
            CheckoutStepEnum.ENTERING_CUSTOMER_DETAILS,
            CheckoutAction.ADVANCE,
        ),
        StepTransition(
            CheckoutStepEnum.ENTERING_CUSTOMER_DETAILS,
            CheckoutStepEnum.SELECTING_PAYMENT,
            CheckoutAction.ADVANCE,
        ),
        StepTransition(
            CheckoutStepEnum.SELECTING_PAYMENT,
            CheckoutStepEnum.ENTERING_PAYMENT_REFERENCE,
            CheckoutAction.ADVANCE,
        ),
        StepTransition(
            CheckoutStepEnum.ENTERING_PAYMENT_REFERENCE,
            CheckoutStepEnum.SUBMITTING,
            CheckoutAction.SUBMIT,
        ),
        StepTransition(CheckoutStepEnum.SUBMITTING, CheckoutStepEnum.SUCCESS, CheckoutAction.SUCCEED),
        StepTransition(CheckoutStepEnum.SUBMITTING, CheckoutStepEnum.FAILURE, CheckoutAction.FAIL),
        StepTransition(CheckoutStepEnum.FAILURE, CheckoutStepEnum.SELECTING_DATES, CheckoutAction.RESELECT),
    )

    def __init__(
        self,
        reservations: ReservationService,
        availability: AvailabilityService | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        self.reservations = reservations
        self.availability = availability
        self._today = today or (lambda: merchant_now_minutes()[0])

        self.step = CheckoutStepEnum.SELECTING_ITEM
        self.item: BookableItemRead | None = None
        self.start_date: date | None = None
        self.end_date: date | None = None
        self.appointment_date: date | None = None
        self.time_slot: str | None = None
        self.staff_id: UUID | None = None
        self.customer = CustomerDetails()
        self.payment_method: PaymentMethodEnum | None = None
        self.payment_reference: str = ""

        self.booked_dates: set[date] = set()
        self.slot_availability: dict[str, bool] = {}
        self.last_outcome: ReservationOutcome | None = None
        self.history: list[CheckoutStepEnum] = [self.step]

    @property
    def module_kind(self) -> ModuleKindEnum | None:
        return self.item.module_kind if self.item is not None else None

    # --- Field entry, only allowed on the matching step ---

    def select_item(self, item: BookableItemRead) -> None:
        self._require_step(CheckoutStepEnum.SELECTING_ITEM)
        if item.module_kind == ModuleKindEnum.SALE:
            raise BookingValidationException("Sale listings cannot be booked", ["item_id"])
        self.item = item

    def select_dates(self, start_date: date, end_date: date) -> None:
        self._require_step(CheckoutStepEnum.SELECTING_DATES)
        self.start_date = start_date
        self.end_date = end_date

    def select_date(self, appointment_date: date) -> None:
        self._require_step(CheckoutStepEnum.SELECTING_DATES)
        if appointment_date != self.appointment_date:
            self.time_slot = None
            self.slot_availability = {}
        self.appointment_date = appointment_date

    def select_slot(self, time_slot: str, staff_id: UUID | None = None) -> None:
        self._require_step(CheckoutStepEnum.SELECTING_SLOT)
        self.time_slot = time_slot
        self.staff_id = staff_id

    def enter_customer_details(self, customer: CustomerDetails) -> None:
        self._require_step(CheckoutStepEnum.ENTERING_CUSTOMER_DETAILS)
        self.customer = customer

    def select_payment(self, method: PaymentMethodEnum) -> None:
        self._require_step(CheckoutStepEnum.SELECTING_PAYMENT)
        self.payment_method = method

    def enter_payment_reference(self, reference: str) -> None:
        self._require_step(CheckoutStepEnum.ENTERING_PAYMENT_REFERENCE)
        self.payment_reference = reference

    # --- Cached availability ---

    def load_rental_availability(self, availability: RentalBookedDates) -> None:
        """Replace the cached booked dates with the freshly fetched month."""
        self.booked_dates = set(availability.booked_dates)

    def load_service_availability(self, availability: ServiceAvailability) -> None:
        self.slot_availability = {slot.time: slot.available for slot in availability.slots}

    async def refresh_availability(self, month: date | None = None) -> None:
        """Reload the options shown on the current selection step."""
        if self.availability is None or self.item is None:
            return
        if self.module_kind == ModuleKindEnum.RENTAL:
            target = month or self.start_date or self._today()
            self.load_rental_availability(
                await self.availability.get_rental_booked_dates(self.item.id, target),
            )
        elif self.appointment_date is not None:
            self.load_service_availability(
                await self.availability.get_service_availability(
                    self.item.id,
                    self.appointment_date,
                    self.staff_id,
                ),
            )

    def is_date_selectable(self, day: date) -> bool:
        return calculator.is_date_selectable(day, self.booked_dates, self._today())

    # --- Step predicates ---

    def missing_fields(self) -> list[str]:
        """Fields that keep the current step from being left."""
        step = self.step
        if step == CheckoutStepEnum.SELECTING_ITEM:
            return [] if self.item is not None else ["item_id"]
        if step == CheckoutStepEnum.SELECTING_DATES:
            return self._missing_dates()
        if step == CheckoutStepEnum.SELECTING_SLOT:
            if self.time_slot is None or not self.slot_availability.get(self.time_slot, True):
                return ["time_slot"]
            return []
        if step == CheckoutStepEnum.ENTERING_CUSTOMER_DETAILS:
            metadata = self.item.metadata if self.item is not None else None
            require_id = isinstance(metadata, RentalMetadata) and metadata.require_id_verification
            return missing_customer_fields(self.customer, require_id)
        if step == CheckoutStepEnum.SELECTING_PAYMENT:
            return [] if self.payment_method is not None else ["payment_method"]
        if step == CheckoutStepEnum.ENTERING_PAYMENT_REFERENCE:
            return [] if self.payment_reference.strip() else ["payment_reference"]
        return []

    def _missing_dates(self) -> list[str]:
        if self.module_kind == ModuleKindEnum.SERVICE:
            if self.appointment_date is None or self.appointment_date < self._today():
                return ["appointment_date"]
            return []
        if self.start_date is None:
            return ["start_date"]
        if self.end_date is None or self.end_date < self.start_date:
            return ["end_date"]
        if not all(self.is_date_selectable(day) for day in iter_dates(self.start_date, self.end_date)):
            return ["start_date", "end_date"]
        return []

    def can_advance(self) -> bool:
        return self._find(CheckoutAction.ADVANCE) is not None and not self.missing_fields()

    def advance(self) -> CheckoutStepEnum:
        """Leave the current step once its predicate holds."""
        self._ensure_step_complete()
        return self._apply(CheckoutAction.ADVANCE)

    def reselect_dates(self) -> CheckoutStepEnum:
        """Go back to date selection after a failed submission.

        Customer and payment details are kept. After a conflict the losing
        dates or slot are cleared so they cannot be picked again blindly.
        """
        self._apply(CheckoutAction.RESELECT)
        outcome = self.last_outcome
        if outcome is not None and outcome.state == ReservationStateEnum.CONFLICT:
            self.start_date = None
            self.end_date = None
            self.time_slot = None
        return self.step

    # --- Submission ---

    def build_proposal(self) -> BookingProposal:
        if self.item is None:
            raise BookingValidationException("No listing selected", ["item_id"])
        if self.module_kind == ModuleKindEnum.RENTAL:
            selection = RentalSelection(start_date=self.start_date, end_date=self.end_date)
        else:
            selection = ServiceSelection(
                appointment_date=self.appointment_date,
                time_slot=self.time_slot,
                staff_id=self.staff_id,
            )
        return BookingProposal(
            item_id=self.item.id,
            selection=selection,
            customer=self.customer,
            payment_method=self.payment_method,
            payment_reference=self.payment_reference,
        )

    async def submit(self) -> ReservationOutcome:
        """Send the booking; a second call while in flight is refused."""
        if self.step == CheckoutStepEnum.SUBMITTING:
            raise InvalidTransitionError("A submission is already in flight")
        self._ensure_step_complete()
        self._apply(CheckoutAction.SUBMIT)

        try:
            outcome = await self.reservations.submit(self.build_proposal())
        except Exception:
            self._apply(CheckoutAction.FAIL)
            raise
        self.last_outcome = outcome
        if outcome.confirmed:
            self._apply(CheckoutAction.SUCCEED)
            return outcome

        if outcome.state == ReservationStateEnum.CONFLICT:
            self._forget_taken(outcome)
        self._apply(CheckoutAction.FAIL)
        logger.info("Checkout for item %s failed: %s", self.item.id if self.item else None, outcome.error_code)
        return outcome

    def _forget_taken(self, outcome: ReservationOutcome) -> None:
        self.booked_dates.update(outcome.excluded_dates)
        if outcome.excluded_slot is not None:
            self.slot_availability[outcome.excluded_slot] = False

    # --- Transition plumbing ---

    def _require_step(self, step: CheckoutStepEnum) -> None:
        if self.step != step:
            raise InvalidTransitionError(f"Action not allowed while in '{self.step.value}', expected '{step.value}'")

    def _ensure_step_complete(self) -> None:
        missing = self.missing_fields()
        if missing:
            raise BookingValidationException(f"Missing required fields: {', '.join(missing)}", missing)

    def _find(self, action: CheckoutAction) -> StepTransition | None:
        for candidate in self.TRANSITIONS:
            if candidate.from_step != self.step or candidate.action != action:
                continue
            if candidate.guard is not None and not candidate.guard(self):
                continue
            return candidate
        return None

    def _apply(self, action: CheckoutAction) -> CheckoutStepEnum:
        transition = self._find(action)
        if transition is None:
            raise InvalidTransitionError(f"No valid transition from '{self.step.value}' with action '{action.value}'")
        logger.debug("Checkout: %s -> %s (%s)", self.step.value, transition.to_step.value, action.value)
        self.step = transition.to_step
        self.history.append(self.step)
        return self.step
