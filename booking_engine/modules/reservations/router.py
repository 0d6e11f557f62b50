"""Reservations API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from booking_engine.core.enums import ReservationStateEnum
from booking_engine.modules.reservations.schemas import BookingProposal, ReservationOutcome
from booking_engine.modules.reservations.service import ReservationService, get_reservation_service
from booking_engine.shared.exceptions import PartialCommitException

router = APIRouter(prefix="/reservations", tags=["reservations"])

OUTCOME_STATUS_CODES = {
    ReservationStateEnum.CONFIRMED: status.HTTP_201_CREATED,
    ReservationStateEnum.CONFLICT: status.HTTP_409_CONFLICT,
    ReservationStateEnum.REJECTED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ReservationStateEnum.FAILED: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def outcome_status_code(outcome: ReservationOutcome) -> int:
    if outcome.error_code == PartialCommitException.code:
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return OUTCOME_STATUS_CODES.get(outcome.state, status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.post("", response_model=ReservationOutcome, status_code=status.HTTP_201_CREATED)
async def submit_reservation(
    payload: BookingProposal,
    response: Response,
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationOutcome:
    """Submit a booking proposal; the outcome state tells the client what to do next."""
    outcome = await service.submit(payload)
    response.status_code = outcome_status_code(outcome)
    return outcome
