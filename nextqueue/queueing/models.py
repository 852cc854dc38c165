from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

DEFAULT_WORKSTATION_TYPE = "Guichê"


@dataclass(frozen=True, slots=True)
class Ticket:
    """A numbered ticket handed out by the dispenser."""

    number: str
    is_priority: bool
    created_at: datetime
    id: UUID = field(default_factory=uuid4)


@dataclass(slots=True, eq=False)
class Workstation:
    """Service point holding at most one ticket at a time."""

    number: int
    id: UUID = field(default_factory=uuid4)
    current_ticket: Ticket | None = None

    @property
    def name(self) -> str:
        return str(self.number)

    @property
    def is_busy(self) -> bool:
        return self.current_ticket is not None


@dataclass(slots=True, eq=False)
class ServiceStage:
    """A sequential phase of service with its own workstations and waiting list."""

    name: str
    workstation_type: str = DEFAULT_WORKSTATION_TYPE
    id: UUID = field(default_factory=uuid4)
    workstations: list[Workstation] = field(default_factory=list)
    waiting_tickets: list[Ticket] = field(default_factory=list)

    def find_workstation(self, workstation_id: UUID) -> Workstation | None:
        for workstation in self.workstations:
            if workstation.id == workstation_id:
                return workstation
        return None

    def label_for(self, workstation: Workstation) -> str:
        return f"{self.workstation_type} {workstation.name}"


@dataclass(frozen=True, slots=True)
class CalledTicketInfo:
    """History entry describing a ticket being called to a workstation."""

    ticket_number: str
    stage_name: str
    workstation_name: str
    called_at: datetime
