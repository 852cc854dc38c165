import pytest

from nextqueue.queueing.state import TicketState, TicketStateMachine


def test_ticket_state_machine_allows_expected_transitions():
    assert TicketStateMachine.initial_state() is TicketState.UNQUEUED
    assert TicketStateMachine.can_transition(TicketState.UNQUEUED, TicketState.WAITING)
    assert TicketStateMachine.can_transition(TicketState.WAITING, TicketState.CALLED)
    assert TicketStateMachine.can_transition(TicketState.WAITING, TicketState.WAITING)
    assert TicketStateMachine.can_transition(TicketState.CALLED, TicketState.WAITING)
    assert TicketStateMachine.can_transition(TicketState.CALLED, TicketState.DISCARDED)


def test_ticket_state_machine_blocks_invalid_transitions():
    assert not TicketStateMachine.can_transition(TicketState.WAITING, TicketState.DISCARDED)
    assert not TicketStateMachine.can_transition(TicketState.UNQUEUED, TicketState.CALLED)
    with pytest.raises(ValueError):
        TicketStateMachine.assert_transition(TicketState.DISCARDED, TicketState.WAITING)
