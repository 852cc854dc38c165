from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .models import ServiceStage, Ticket


class OutcomeStatus(str, Enum):
    """How a queue operation ended."""

    APPLIED = "applied"
    NOOP = "noop"
    REJECTED = "rejected"


class RejectionReason(str, Enum):
    """Why an operation did not change the queue."""

    UNKNOWN_STAGE = "unknown_stage"
    UNKNOWN_WORKSTATION = "unknown_workstation"
    WORKSTATION_BUSY = "workstation_busy"
    BLANK_STAGE_NAME = "blank_stage_name"
    TICKET_NOT_AT_SOURCE = "ticket_not_at_source"
    NO_WAITING_TICKETS = "no_waiting_tickets"
    NO_WORKSTATIONS = "no_workstations"


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of a queue operation.

    ``NOOP`` means there was nothing to do (an empty waiting list, a stage
    without workstations); ``REJECTED`` means the call itself was invalid.
    Only applied outcomes change state or notify subscribers.
    """

    status: OutcomeStatus
    reason: RejectionReason | None = None
    ticket: Ticket | None = None
    stage: ServiceStage | None = None

    @classmethod
    def applied(cls, ticket: Ticket | None = None, *, stage: ServiceStage | None = None) -> "Outcome":
        return cls(OutcomeStatus.APPLIED, ticket=ticket, stage=stage)

    @classmethod
    def noop(cls, reason: RejectionReason) -> "Outcome":
        return cls(OutcomeStatus.NOOP, reason=reason)

    @classmethod
    def rejected(cls, reason: RejectionReason) -> "Outcome":
        return cls(OutcomeStatus.REJECTED, reason=reason)

    @property
    def is_applied(self) -> bool:
        return self.status is OutcomeStatus.APPLIED

    def __bool__(self) -> bool:
        return self.is_applied
