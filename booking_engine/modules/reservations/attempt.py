"""
State machine for a single reservation attempt.

Each submission walks an explicit transition table:

    DRAFT -> VALIDATING -> COMMITTING -> CONFIRMED
                       \\-> REJECTED | CONFLICT | FAILED
             COMMITTING -> CONFLICT | FAILED

CONFLICT, REJECTED and FAILED lead back to DRAFT once the customer picks
other dates, edits the form or retries. Anything else raises
``InvalidTransitionError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from booking_engine.core.enums import ReservationStateEnum
from booking_engine.shared.utils import utc_now

logger = logging.getLogger(__name__)


class AttemptTrigger(StrEnum):
    """Events that move a reservation attempt."""

    SUBMITTED = "submitted"
    VALIDATION_FAILED = "validation_failed"
    AVAILABILITY_STALE = "availability_stale"
    VALIDATION_PASSED = "validation_passed"
    STORAGE_UNAVAILABLE = "storage_unavailable"
    COMMITTED = "committed"
    COMMIT_CONFLICT = "commit_conflict"
    COMMIT_FAILED = "commit_failed"
    RESELECTED = "reselected"
    EDITED = "edited"
    RETRIED = "retried"


@dataclass(frozen=True)
class Transition:
    """A single valid state transition."""

    from_state: ReservationStateEnum
    to_state: ReservationStateEnum
    trigger: AttemptTrigger


@dataclass(frozen=True)
class StateEntry:
    """Recorded history entry for a state visit."""

    state: ReservationStateEnum
    entered_at: datetime
    trigger: AttemptTrigger | None = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


TERMINAL_STATES = frozenset({ReservationStateEnum.CONFIRMED})


class ReservationAttempt:
    """Tracks where one booking attempt is in its lifecycle."""

    TRANSITIONS: tuple[Transition, ...] = (
        Transition(ReservationStateEnum.DRAFT, ReservationStateEnum.VALIDATING, AttemptTrigger.SUBMITTED),
        # --- Validation ---
        Transition(
            ReservationStateEnum.VALIDATING,
            ReservationStateEnum.REJECTED,
            AttemptTrigger.VALIDATION_FAILED,
        ),
        Transition(
            ReservationStateEnum.VALIDATING,
            ReservationStateEnum.CONFLICT,
            AttemptTrigger.AVAILABILITY_STALE,
        ),
        Transition(
            ReservationStateEnum.VALIDATING,
            ReservationStateEnum.COMMITTING,
            AttemptTrigger.VALIDATION_PASSED,
        ),
        Transition(
            ReservationStateEnum.VALIDATING,
            ReservationStateEnum.FAILED,
            AttemptTrigger.STORAGE_UNAVAILABLE,
        ),
        # --- Commit ---
        Transition(ReservationStateEnum.COMMITTING, ReservationStateEnum.CONFIRMED, AttemptTrigger.COMMITTED),
        Transition(
            ReservationStateEnum.COMMITTING,
            ReservationStateEnum.CONFLICT,
            AttemptTrigger.COMMIT_CONFLICT,
        ),
        Transition(ReservationStateEnum.COMMITTING, ReservationStateEnum.FAILED, AttemptTrigger.COMMIT_FAILED),
        # --- Recovery ---
        Transition(ReservationStateEnum.CONFLICT, ReservationStateEnum.DRAFT, AttemptTrigger.RESELECTED),
        Transition(ReservationStateEnum.REJECTED, ReservationStateEnum.DRAFT, AttemptTrigger.EDITED),
        Transition(ReservationStateEnum.FAILED, ReservationStateEnum.DRAFT, AttemptTrigger.RETRIED),
    )

    def __init__(self) -> None:
        self._current_state = ReservationStateEnum.DRAFT
        self._history: list[StateEntry] = [
            StateEntry(state=ReservationStateEnum.DRAFT, entered_at=utc_now()),
        ]

    @property
    def current_state(self) -> ReservationStateEnum:
        return self._current_state

    def transition(self, trigger: AttemptTrigger) -> ReservationStateEnum:
        """Apply ``trigger`` and return the new state.

        Raises:
            InvalidTransitionError: If ``trigger`` is not valid from the current state.
        """
        for candidate in self.TRANSITIONS:
            if candidate.from_state == self._current_state and candidate.trigger == trigger:
                old_state = self._current_state
                self._current_state = candidate.to_state
                self._history.append(
                    StateEntry(state=self._current_state, entered_at=utc_now(), trigger=trigger),
                )
                logger.debug(
                    "Reservation attempt: %s -> %s (trigger: %s)",
                    old_state.value,
                    self._current_state.value,
                    trigger.value,
                )
                return self._current_state

        valid = [item.value for item in self.valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}",
        )

    def valid_triggers(self) -> list[AttemptTrigger]:
        return [item.trigger for item in self.TRANSITIONS if item.from_state == self._current_state]

    def history(self) -> list[StateEntry]:
        return list(self._history)

    def state_trace(self) -> list[str]:
        """Ordered state names visited so far."""
        return [entry.state.value for entry in self._history]

    def is_terminal(self) -> bool:
        return self._current_state in TERMINAL_STATES
