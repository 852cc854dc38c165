"""Ticket, stage and workstation state for the service counters."""

from .engine import (
    QueueEngine,
    QueueEngineError,
    StageNotFoundError,
    Subscription,
    TicketNotFoundError,
    WorkstationNotFoundError,
    format_ticket_number,
)
from .models import CalledTicketInfo, ServiceStage, Ticket, Workstation
from .outcome import Outcome, OutcomeStatus, RejectionReason
from .state import TicketState, TicketStateMachine

__all__ = [
    "CalledTicketInfo",
    "Outcome",
    "OutcomeStatus",
    "QueueEngine",
    "QueueEngineError",
    "RejectionReason",
    "ServiceStage",
    "StageNotFoundError",
    "Subscription",
    "Ticket",
    "TicketNotFoundError",
    "TicketState",
    "TicketStateMachine",
    "Workstation",
    "WorkstationNotFoundError",
    "format_ticket_number",
]
