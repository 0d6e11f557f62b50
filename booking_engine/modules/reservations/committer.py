"""Atomic order + booking window write."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from time import perf_counter
from uuid import UUID

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError

from booking_engine.core.enums import ModuleKindEnum
from booking_engine.core.metrics import observe_commit_duration
from booking_engine.modules.availability import calculator
from booking_engine.modules.catalog.schemas import (
    BookableItemRead,
    RentalMetadata,
    ServiceMetadata,
    module_metadata,
)
from booking_engine.modules.reservations.conflicts import (
    evaluate_conflicts,
    proposal_range,
    unavailable_message,
)
from booking_engine.modules.reservations.repository import ReservationRepository
from booking_engine.modules.reservations.schemas import (
    BookingProposal,
    CommitResult,
    RentalSelection,
    ServiceSelection,
)
from booking_engine.shared.exceptions import (
    BookingValidationException,
    BusinessRuleException,
    CommitConflictException,
    PartialCommitException,
    TransportException,
)
from booking_engine.shared.utils import clock_to_minutes

logger = logging.getLogger(__name__)


def _order_values(proposal: BookingProposal, item: BookableItemRead) -> dict:
    selection = proposal.selection
    metadata = item.metadata
    customer = proposal.customer

    if isinstance(selection, RentalSelection) and isinstance(metadata, RentalMetadata):
        quote = calculator.rental_quote(item.price, metadata, selection.start_date, selection.end_date)
        total = quote.total
        details = {
            "module_type": ModuleKindEnum.RENTAL.value,
            "start_date": selection.start_date.isoformat(),
            "end_date": selection.end_date.isoformat(),
            "rental_unit": metadata.rental_unit.value,
            "units": quote.units,
            "rental_cost": str(quote.rental_cost),
            "deposit_amount": str(quote.deposit_amount),
        }
    elif isinstance(selection, ServiceSelection) and isinstance(metadata, ServiceMetadata):
        total = Decimal(item.price)
        details = {
            "module_type": ModuleKindEnum.SERVICE.value,
            "appointment_date": selection.appointment_date.isoformat(),
            "time_slot": selection.time_slot,
            "duration_minutes": metadata.duration_minutes,
            "staff_id": str(selection.staff_id) if selection.staff_id else None,
            "room_id": str(metadata.room_id) if metadata.room_id else None,
        }
    else:
        raise BookingValidationException("Listing cannot be booked", ["item_id"])

    return {
        "merchant_id": item.merchant_id,
        "item_id": item.id,
        "customer_name": customer.name.strip(),
        "customer_phone": customer.phone.strip(),
        "customer_id_number": (customer.id_number or "").strip() or None,
        "notes": customer.notes,
        "total": total,
        "payment_method": proposal.payment_method,
        "transaction_reference": (proposal.payment_reference or "").strip(),
        "booking_details": details,
    }


def _window_values(proposal: BookingProposal, item: BookableItemRead, order_id: UUID) -> dict:
    selection = proposal.selection
    if isinstance(selection, RentalSelection):
        return {
            "item_id": item.id,
            "order_id": order_id,
            "module_kind": ModuleKindEnum.RENTAL,
            "start_date": selection.start_date,
            "end_date": selection.end_date,
        }
    metadata = module_metadata(item, ServiceMetadata)
    return {
        "item_id": item.id,
        "order_id": order_id,
        "module_kind": ModuleKindEnum.SERVICE,
        "start_date": selection.appointment_date,
        "end_date": selection.appointment_date,
        "start_minute": clock_to_minutes(selection.time_slot),
        "duration_minutes": metadata.duration_minutes,
        "buffer_time_before": metadata.buffer_time_before,
        "buffer_time_after": metadata.buffer_time_after,
        "staff_id": selection.staff_id,
        "room_id": metadata.room_id,
    }


def _lost_race(proposal: BookingProposal, dates: Iterable[date]) -> CommitConflictException:
    selection = proposal.selection
    if isinstance(selection, ServiceSelection):
        return CommitConflictException(unavailable_message(proposal), excluded_slot=selection.time_slot)
    return CommitConflictException(unavailable_message(proposal), excluded_dates=dates)


class ReservationCommitter:
    """Creates the order and its booking window as one outcome.

    The listing row is locked first so commits for one item run one at a
    time; the overlap check is repeated under that lock and the unique
    rental day constraint rejects anything that still slips through. On any
    failure the transaction is rolled back so that no order survives
    without its window.
    """

    def __init__(self, repository: ReservationRepository) -> None:
        self.repository = repository

    async def commit(
        self,
        proposal: BookingProposal,
        item: BookableItemRead,
        room_capacity: int | None = None,
    ) -> CommitResult:
        started_at = perf_counter()
        order_id: UUID | None = None
        try:
            await self.repository.lock_item(item.id)

            date_range = proposal_range(proposal)
            windows = await self.repository.list_active_windows(item.id, date_range.start, date_range.end)
            check = evaluate_conflicts(proposal, item, windows, room_capacity)
            if not check.available:
                raise _lost_race(proposal, check.conflicting_dates)

            values = _order_values(proposal, item)
            order = await self.repository.create_order(**values)
            order_id = order.id

            window = await self.repository.create_window(**_window_values(proposal, item, order.id))
            if isinstance(proposal.selection, RentalSelection):
                metadata = module_metadata(item, RentalMetadata)
                await self.repository.block_rental_days(
                    window,
                    calculator.occupied_dates(
                        window.start_date,
                        window.end_date,
                        metadata.allow_same_day_turnover,
                    ),
                )
            await self.repository.commit()
        except (CommitConflictException, BusinessRuleException):
            await self._rollback(order_id)
            raise
        except IntegrityError as exc:
            await self._rollback(order_id)
            logger.warning("Reservation for item %s lost the race at the storage layer", item.id)
            raise _lost_race(proposal, proposal_range(proposal).dates()) from exc
        except (OperationalError, InterfaceError) as exc:
            logger.exception("Storage unavailable while committing reservation for item %s", item.id)
            await self._rollback(order_id)
            raise TransportException("Booking storage is unavailable, please retry") from exc
        except SQLAlchemyError as exc:
            logger.exception("Reservation write failed for item %s", item.id)
            await self._rollback(order_id)
            if order_id is None:
                raise TransportException("Booking could not be saved, please retry") from exc
            raise PartialCommitException("Order was created but its booking could not be saved") from exc
        finally:
            observe_commit_duration(str(item.module_kind), perf_counter() - started_at)

        logger.info("Reserved %s window %s for order %s", item.module_kind, window.id, order_id)
        return CommitResult(order_id=order.id, window_id=window.id, total=values["total"])

    async def _rollback(self, order_id: UUID | None) -> None:
        """Undo everything written in this attempt."""
        try:
            await self.repository.rollback()
        except SQLAlchemyError as exc:
            if order_id is None:
                raise TransportException("Booking storage is unavailable, please retry") from exc
            logger.critical(
                "Rollback failed after order %s was written; manual reconciliation required",
                order_id,
            )
            raise PartialCommitException(f"Order {order_id} could not be rolled back") from exc
