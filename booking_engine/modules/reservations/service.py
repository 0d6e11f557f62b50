"""Reservation business logic layer."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.database import get_db_session
from booking_engine.core.metrics import record_reservation_outcome
from booking_engine.modules.availability.service import default_operating_periods, merchant_now_minutes
from booking_engine.modules.calendar.repository import CalendarRepository
from booking_engine.modules.calendar.service import CalendarIndex
from booking_engine.modules.catalog.repository import CatalogRepository
from booking_engine.modules.catalog.schemas import BookableItemRead, ServiceMetadata
from booking_engine.modules.catalog.service import CatalogService
from booking_engine.modules.reservations.attempt import AttemptTrigger, ReservationAttempt
from booking_engine.modules.reservations.committer import ReservationCommitter
from booking_engine.modules.reservations.conflicts import ConflictDetector
from booking_engine.modules.reservations.repository import ReservationRepository
from booking_engine.modules.reservations.schemas import (
    BookingProposal,
    CommitResult,
    ReservationOutcome,
)
from booking_engine.modules.reservations.validation import validate_contact_details, validate_proposal
from booking_engine.shared.exceptions import (
    AppException,
    BookingValidationException,
    BusinessRuleException,
    CommitConflictException,
    NotFoundException,
    PartialCommitException,
    StaleAvailabilityException,
    TransportException,
    transport_errors,
)

logger = logging.getLogger(__name__)


def _failure_outcome(
    attempt: ReservationAttempt,
    exc: AppException,
) -> ReservationOutcome:
    return ReservationOutcome(
        state=attempt.current_state,
        error_code=exc.code,
        message=exc.message,
        retryable=exc.retryable,
        missing_fields=list(getattr(exc, "fields", ())),
        excluded_dates=list(getattr(exc, "excluded_dates", ())),
        excluded_slot=getattr(exc, "excluded_slot", None),
    )


class ReservationService:
    """Drives one booking attempt from proposal to outcome.

    Customer and payment fields are checked before any storage access.
    The listing rules follow, then a re-check against a fresh calendar
    snapshot, and only then the write through the committer.
    Failures come back as a ``ReservationOutcome`` instead of an exception so
    the checkout can react to each of them.
    """

    def __init__(
        self,
        catalog: CatalogService,
        detector: ConflictDetector,
        committer: ReservationCommitter,
        clock: Callable[[], tuple[date, int]] = merchant_now_minutes,
    ) -> None:
        self.catalog = catalog
        self.detector = detector
        self.committer = committer
        self.clock = clock

    async def submit(self, proposal: BookingProposal) -> ReservationOutcome:
        attempt = ReservationAttempt()
        attempt.transition(AttemptTrigger.SUBMITTED)
        module_kind = str(proposal.module_kind)

        try:
            validate_contact_details(proposal)
            item, room_capacity = await self._load_item(proposal)
            today, now_minute = self.clock()
            validate_proposal(
                proposal,
                item,
                today=today,
                now_minute=now_minute,
                default_periods=default_operating_periods(),
            )
            await self.detector.ensure_available(proposal, item, room_capacity)
        except (BookingValidationException, BusinessRuleException, NotFoundException) as exc:
            attempt.transition(AttemptTrigger.VALIDATION_FAILED)
            logger.info("Reservation for item %s rejected: %s", proposal.item_id, exc.message)
            return self._finish(module_kind, _failure_outcome(attempt, exc))
        except StaleAvailabilityException as exc:
            attempt.transition(AttemptTrigger.AVAILABILITY_STALE)
            return self._finish(module_kind, _failure_outcome(attempt, exc))
        except TransportException as exc:
            attempt.transition(AttemptTrigger.STORAGE_UNAVAILABLE)
            logger.warning("Reservation for item %s failed before commit: %s", proposal.item_id, exc.message)
            return self._finish(module_kind, _failure_outcome(attempt, exc))

        attempt.transition(AttemptTrigger.VALIDATION_PASSED)
        try:
            result = await self.committer.commit(proposal, item, room_capacity)
        except CommitConflictException as exc:
            attempt.transition(AttemptTrigger.COMMIT_CONFLICT)
            return self._finish(module_kind, _failure_outcome(attempt, exc))
        except (TransportException, PartialCommitException, BusinessRuleException) as exc:
            attempt.transition(AttemptTrigger.COMMIT_FAILED)
            return self._finish(module_kind, _failure_outcome(attempt, exc))

        attempt.transition(AttemptTrigger.COMMITTED)
        return self._finish(module_kind, self._confirmed(attempt, result))

    async def _load_item(self, proposal: BookingProposal) -> tuple[BookableItemRead, int | None]:
        with transport_errors():
            item = await self.catalog.get_bookable_item(proposal.item_id)
            room_capacity = None
            if isinstance(item.metadata, ServiceMetadata):
                room_capacity = await self.catalog.get_room_capacity(item.metadata.room_id)
        return item, room_capacity

    @staticmethod
    def _confirmed(attempt: ReservationAttempt, result: CommitResult) -> ReservationOutcome:
        return ReservationOutcome(
            state=attempt.current_state,
            order_id=result.order_id,
            window_id=result.window_id,
            total=result.total,
        )

    @staticmethod
    def _finish(module_kind: str, outcome: ReservationOutcome) -> ReservationOutcome:
        record_reservation_outcome(module_kind, outcome.state.value)
        if outcome.confirmed:
            logger.info("Reservation confirmed: order %s", outcome.order_id)
        elif outcome.error_code is not None:
            logger.info("Reservation ended in %s (%s)", outcome.state.value, outcome.error_code)
        return outcome


async def get_reservation_service(
    session: AsyncSession = Depends(get_db_session),
) -> ReservationService:
    """Dependency provider for reservation service."""
    return ReservationService(
        catalog=CatalogService(CatalogRepository(session)),
        detector=ConflictDetector(CalendarIndex(CalendarRepository(session))),
        committer=ReservationCommitter(ReservationRepository(session)),
    )
