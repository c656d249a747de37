"""
Finite state machine for a single booking attempt.

Selecting -> Committing -> Committed | Rejected, and Committed -> Cancelled.
Every transition is declared in the table below; anything else raises
InvalidTransitionError, so a cancelled booking can never become active
again through this machine.

Usage:
    sm = BookingStateMachine()
    sm.transition(BookingTrigger.SUBMIT)
    assert sm.current_state == BookingState.COMMITTING
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from piste_booking.errors import InvalidTransitionError

logger = logging.getLogger(__name__)


class BookingState(str, Enum):
    """All states a booking attempt passes through."""
    SELECTING = "selecting"
    COMMITTING = "committing"
    COMMITTED = "committed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class BookingTrigger(str, Enum):
    """Events that cause state transitions."""
    SUBMIT = "submit"
    PERSISTED = "persisted"
    ALREADY_BOOKED = "already_booked"
    CONFLICT = "conflict"
    INVALID = "invalid"
    STORE_FAILED = "store_failed"
    CANCEL = "cancel"


@dataclass(frozen=True)
class Transition:
    """A single valid state transition."""
    from_state: BookingState
    to_state: BookingState
    trigger: BookingTrigger


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: BookingState
    entered_at: datetime
    trigger: Optional[BookingTrigger] = None


class BookingStateMachine:
    """Deterministic lifecycle of one booking attempt."""

    TRANSITIONS: list[Transition] = [
        # --- Submission ---
        Transition(BookingState.SELECTING, BookingState.COMMITTING, BookingTrigger.SUBMIT),
        Transition(BookingState.SELECTING, BookingState.REJECTED, BookingTrigger.INVALID),

        # --- Commit outcome ---
        Transition(BookingState.COMMITTING, BookingState.COMMITTED, BookingTrigger.PERSISTED),
        Transition(BookingState.COMMITTING, BookingState.COMMITTED, BookingTrigger.ALREADY_BOOKED),
        Transition(BookingState.COMMITTING, BookingState.REJECTED, BookingTrigger.CONFLICT),
        Transition(BookingState.COMMITTING, BookingState.REJECTED, BookingTrigger.INVALID),
        # A failed store call leaves nothing persisted; the caller may resubmit.
        Transition(BookingState.COMMITTING, BookingState.SELECTING, BookingTrigger.STORE_FAILED),

        # --- Post-commit ---
        Transition(BookingState.COMMITTED, BookingState.CANCELLED, BookingTrigger.CANCEL),
    ]

    TERMINAL_STATES = frozenset({BookingState.REJECTED, BookingState.CANCELLED})

    def __init__(self, initial: BookingState = BookingState.SELECTING) -> None:
        self._current_state = initial
        self._history: list[StateEntry] = [
            StateEntry(state=initial, entered_at=datetime.now())
        ]

    @property
    def current_state(self) -> BookingState:
        return self._current_state

    def transition(self, trigger: BookingTrigger) -> BookingState:
        """
        Execute a state transition.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                old_state = self._current_state
                self._current_state = t.to_state
                self._history.append(StateEntry(
                    state=self._current_state,
                    entered_at=datetime.now(),
                    trigger=trigger,
                ))
                logger.debug(
                    "Booking state: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self) -> list[BookingTrigger]:
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_state_trace(self) -> list[str]:
        """Return ordered list of state names visited."""
        return [entry.state.value for entry in self._history]

    def is_terminal(self) -> bool:
        return self._current_state in self.TERMINAL_STATES
