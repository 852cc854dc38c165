from __future__ import annotations

from enum import Enum


class TicketState(str, Enum):
    """Lifecycle states a ticket moves through."""

    UNQUEUED = "unqueued"
    WAITING = "waiting"
    CALLED = "called"
    DISCARDED = "discarded"


class TicketStateMachine:
    """Validate ticket lifecycle transitions."""

    _TRANSITIONS: dict[TicketState, set[TicketState]] = {
        TicketState.UNQUEUED: {TicketState.WAITING},
        TicketState.WAITING: {TicketState.WAITING, TicketState.CALLED},
        TicketState.CALLED: {TicketState.WAITING, TicketState.DISCARDED},
        TicketState.DISCARDED: set(),
    }

    @classmethod
    def initial_state(cls) -> TicketState:
        return TicketState.UNQUEUED

    @classmethod
    def can_transition(cls, current: TicketState, new: TicketState) -> bool:
        return new in cls._TRANSITIONS.get(current, set())

    @classmethod
    def assert_transition(cls, current: TicketState, new: TicketState) -> None:
        if not cls.can_transition(current, new):
            raise ValueError(f"Invalid ticket state transition: {current.value} -> {new.value}")
