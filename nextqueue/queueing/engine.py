from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from functools import wraps
from threading import RLock
from typing import Callable, Iterator
from uuid import UUID

from opentelemetry.trace import Tracer

from nextqueue.core.config import Settings
from nextqueue.core.logging import get_tracer
from nextqueue.metrics import MetricsRegistry, metrics_registry as default_metrics_registry, register_default_metrics
from nextqueue.metrics.definitions import (
    OPERATIONS_REJECTED,
    TICKET_WAIT_SECONDS,
    TICKETS_CALLED,
    TICKETS_FINISHED,
    TICKETS_GENERATED,
)

from .models import DEFAULT_WORKSTATION_TYPE, CalledTicketInfo, ServiceStage, Ticket, Workstation
from .outcome import Outcome, RejectionReason
from .state import TicketState, TicketStateMachine

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50

ChangeCallback = Callable[[], None]
Clock = Callable[[], datetime]
Operation = Callable[..., Outcome]


class QueueEngineError(RuntimeError):
    """Base error for queue engine lookups."""


class StageNotFoundError(QueueEngineError):
    """Raised when a stage id is not part of the engine."""


class WorkstationNotFoundError(QueueEngineError):
    """Raised when a workstation id is not part of the given stage."""


class TicketNotFoundError(QueueEngineError):
    """Raised when a ticket id is not waiting or being served anywhere."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_ticket_number(is_priority: bool, sequence: int) -> str:
    """Render ``P001``/``C001`` style numbers; digits grow past 999."""

    prefix = "P" if is_priority else "C"
    return f"{prefix}{sequence:03d}"


def _call_order(ticket: Ticket) -> tuple[bool, datetime]:
    return (not ticket.is_priority, ticket.created_at)


def _traced(operation: str) -> Callable[[Operation], Operation]:
    """Run a queue operation inside a ``queue.<operation>`` span."""

    def decorator(method: Operation) -> Operation:
        @wraps(method)
        def wrapper(self: "QueueEngine", *args: object, **kwargs: object) -> Outcome:
            with self._tracer.start_as_current_span(f"queue.{operation}") as span:
                stages = [value.name for value in (*args, *kwargs.values()) if isinstance(value, ServiceStage)]
                if stages:
                    span.set_attribute("queue.stages", stages)
                outcome = method(self, *args, **kwargs)
                span.set_attribute("queue.outcome", outcome.status.value)
                if outcome.reason is not None:
                    span.set_attribute("queue.reason", outcome.reason.value)
                if outcome.ticket is not None:
                    span.set_attribute("queue.ticket", outcome.ticket.number)
                return outcome

        return wrapper

    return decorator


class Subscription:
    """Handle returned by :meth:`QueueEngine.subscribe`."""

    def __init__(self, engine: "QueueEngine", callback: ChangeCallback) -> None:
        self._engine = engine
        self.callback = callback

    def close(self) -> None:
        self._engine.unsubscribe(self.callback)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class QueueEngine:
    """Owner of every stage, workstation, ticket and history entry.

    Each public operation runs under a single re-entrant lock and returns an
    :class:`Outcome`. Subscribers are notified synchronously, in subscription
    order, once per applied operation and never for no-op or rejected calls.
    Stages and workstations handed in must still belong to the engine;
    anything already removed is rejected.
    """

    def __init__(
        self,
        *,
        history_limit: int = HISTORY_LIMIT,
        auto_forward: bool = False,
        default_workstation_type: str = DEFAULT_WORKSTATION_TYPE,
        clock: Clock | None = None,
        metrics: MetricsRegistry | None = None,
        tracer: Tracer | None = None,
    ) -> None:
        if history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        self._lock = RLock()
        self._clock = clock or _utcnow
        self._metrics = register_default_metrics(metrics or default_metrics_registry)
        self._tracer = tracer or get_tracer()
        self._default_workstation_type = default_workstation_type
        self._stages: list[ServiceStage] = []
        self._waiting_queue: list[Ticket] = []
        self._history: deque[CalledTicketInfo] = deque(maxlen=history_limit)
        self._auto_forward = auto_forward
        self._common_counter = 1
        self._priority_counter = 1
        self._subscribers: list[ChangeCallback] = []

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        metrics: MetricsRegistry | None = None,
        tracer: Tracer | None = None,
    ) -> "QueueEngine":
        return cls(
            history_limit=settings.history_limit,
            auto_forward=settings.auto_forward_default,
            default_workstation_type=settings.default_workstation_type,
            metrics=metrics,
            tracer=tracer,
        )

    # --- read accessors -------------------------------------------------

    @property
    def stages(self) -> tuple[ServiceStage, ...]:
        with self._lock:
            return tuple(self._stages)

    @property
    def waiting_queue(self) -> tuple[Ticket, ...]:
        with self._lock:
            return tuple(self._waiting_queue)

    @property
    def history(self) -> tuple[CalledTicketInfo, ...]:
        with self._lock:
            return tuple(self._history)

    @property
    def auto_forward_enabled(self) -> bool:
        return self._auto_forward

    @property
    def metrics(self) -> MetricsRegistry:
        return self._metrics

    def get_stage(self, stage_id: UUID) -> ServiceStage:
        with self._lock:
            for stage in self._stages:
                if stage.id == stage_id:
                    return stage
        raise StageNotFoundError(f"Stage {stage_id} not found")

    def get_workstation(self, stage: ServiceStage, workstation_id: UUID) -> Workstation:
        with self._lock:
            workstation = stage.find_workstation(workstation_id)
        if workstation is None:
            raise WorkstationNotFoundError(f"Workstation {workstation_id} not found in stage {stage.name!r}")
        return workstation

    def locate_ticket(self, ticket_id: UUID) -> tuple[Ticket, ServiceStage | None, Workstation | None]:
        """Return a ticket with the stage and workstation currently holding it.

        Tickets in the engine-level waiting queue come back as
        ``(ticket, None, None)``.
        """

        with self._lock:
            for ticket in self._waiting_queue:
                if ticket.id == ticket_id:
                    return ticket, None, None
            for stage in self._stages:
                for ticket in stage.waiting_tickets:
                    if ticket.id == ticket_id:
                        return ticket, stage, None
                for workstation in stage.workstations:
                    current = workstation.current_ticket
                    if current is not None and current.id == ticket_id:
                        return current, stage, workstation
        raise TicketNotFoundError(f"Ticket {ticket_id} not found")

    def ticket_state(self, ticket_id: UUID) -> TicketState:
        """Return ``WAITING`` or ``CALLED`` for a ticket still in the queue."""

        _, _, workstation = self.locate_ticket(ticket_id)
        return TicketState.WAITING if workstation is None else TicketState.CALLED

    def iter_active_tickets(self) -> Iterator[Ticket]:
        """Yield every ticket that is waiting or being served."""

        with self._lock:
            snapshot = list(self._waiting_queue)
            for stage in self._stages:
                snapshot.extend(stage.waiting_tickets)
                snapshot.extend(ws.current_ticket for ws in stage.workstations if ws.current_ticket is not None)
        yield from snapshot

    # --- subscriptions --------------------------------------------------

    def subscribe(self, callback: ChangeCallback) -> Subscription:
        with self._lock:
            self._subscribers.append(callback)
        return Subscription(self, callback)

    def unsubscribe(self, callback: ChangeCallback) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)


    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback()
            except Exception:  # noqa: BLE001 - a subscriber must not break the queue
                logger.exception("Queue change subscriber %r failed", callback)

    def _owns_stage(self, stage: ServiceStage | None) -> bool:
        return stage is None or stage in self._stages

    def _owns_workstation(self, workstation: Workstation) -> bool:
        return any(workstation in stage.workstations for stage in self._stages)

    def _state_of(self, ticket: Ticket) -> TicketState:
        if ticket in self._waiting_queue:
            return TicketState.WAITING
        for stage in self._stages:
            if ticket in stage.waiting_tickets:
                return TicketState.WAITING
            if any(ws.current_ticket is ticket for ws in stage.workstations):
                return TicketState.CALLED
        return TicketStateMachine.initial_state()

    def _transition(self, ticket: Ticket, new: TicketState) -> None:
        # must run before the ticket leaves its current location
        current = self._state_of(ticket)
        TicketStateMachine.assert_transition(current, new)
        logger.debug("Ticket %s: %s -> %s", ticket.number, current.value, new.value)

    def _reject(self, operation: str, outcome: Outcome) -> Outcome:
        reason = outcome.reason.value if outcome.reason else "unknown"
        self._metrics.counter(OPERATIONS_REJECTED).inc(labels={"operation": operation, "reason": reason})
        logger.info("Queue operation %s not applied (%s: %s)", operation, outcome.status.value, reason)
        return outcome

    # --- operations -----------------------------------------------------

    @_traced("generate_ticket")
    def generate_ticket(self, is_priority: bool) -> Outcome:
        with self._lock:
            if is_priority:
                number = format_ticket_number(True, self._priority_counter)
                self._priority_counter += 1
            else:
                number = format_ticket_number(False, self._common_counter)
                self._common_counter += 1
            ticket = Ticket(number=number, is_priority=is_priority, created_at=self._clock())
            self._transition(ticket, TicketState.WAITING)

            if self._auto_forward and self._stages:
                self._stages[0].waiting_tickets.append(ticket)
                destination = self._stages[0].name
            else:
                self._waiting_queue.append(ticket)
                destination = "waiting queue"

            self._metrics.counter(TICKETS_GENERATED).inc(
                labels={"ticket_class": "priority" if is_priority else "common"}
            )
            logger.info("Generated ticket %s into %s", ticket.number, destination)
            self._notify()
            return Outcome.applied(ticket)

    @_traced("call_next")
    def call_next_in_stage(self, stage: ServiceStage, workstation_id: UUID) -> Outcome:
        with self._lock:
            if not self._owns_stage(stage):
                return self._reject("call_next", Outcome.rejected(RejectionReason.UNKNOWN_STAGE))
            workstation = stage.find_workstation(workstation_id)
            if workstation is None:
                return self._reject("call_next", Outcome.rejected(RejectionReason.UNKNOWN_WORKSTATION))
            if workstation.is_busy:
                return self._reject("call_next", Outcome.rejected(RejectionReason.WORKSTATION_BUSY))
            if not stage.waiting_tickets:
                return self._reject("call_next", Outcome.noop(RejectionReason.NO_WAITING_TICKETS))

            ticket = min(stage.waiting_tickets, key=_call_order)
            self._transition(ticket, TicketState.CALLED)
            stage.waiting_tickets.remove(ticket)
            workstation.current_ticket = ticket

            called_at = self._clock()
            self._history.appendleft(
                CalledTicketInfo(
                    ticket_number=ticket.number,
                    stage_name=stage.name,
                    workstation_name=stage.label_for(workstation),
                    called_at=called_at,
                )
            )

            self._metrics.counter(TICKETS_CALLED).inc(labels={"stage": stage.name})
            self._metrics.distribution(TICKET_WAIT_SECONDS).observe(
                max((called_at - ticket.created_at).total_seconds(), 0.0),
                labels={"stage": stage.name},
            )
            logger.info("Called ticket %s to %s (%s)", ticket.number, stage.label_for(workstation), stage.name)
            self._notify()
            return Outcome.applied(ticket)

    @_traced("move_ticket")
    def move_ticket(
        self,
        ticket: Ticket,
        from_stage: ServiceStage | None = None,
        to_stage: ServiceStage | None = None,
    ) -> Outcome:
        with self._lock:
            if not (self._owns_stage(from_stage) and self._owns_stage(to_stage)):
                return self._reject("move_ticket", Outcome.rejected(RejectionReason.UNKNOWN_STAGE))
            source = self._waiting_queue if from_stage is None else from_stage.waiting_tickets
            if ticket not in source:
                return self._reject("move_ticket", Outcome.rejected(RejectionReason.TICKET_NOT_AT_SOURCE))
            self._transition(ticket, TicketState.WAITING)
            source.remove(ticket)
            destination = self._waiting_queue if to_stage is None else to_stage.waiting_tickets
            destination.append(ticket)

            logger.debug(
                "Moved ticket %s from %s to %s",
                ticket.number,
                from_stage.name if from_stage else "waiting queue",
                to_stage.name if to_stage else "waiting queue",
            )
            self._notify()
            return Outcome.applied(ticket)

    @_traced("move_ticket_from_workstation")
    def move_ticket_from_workstation(
        self, from_workstation: Workstation, ticket: Ticket, to_stage: ServiceStage
    ) -> Outcome:
        operation = "move_ticket_from_workstation"
        with self._lock:
            if not self._owns_stage(to_stage) or to_stage is None:
                return self._reject(operation, Outcome.rejected(RejectionReason.UNKNOWN_STAGE))
            if not self._owns_workstation(from_workstation):
                return self._reject(operation, Outcome.rejected(RejectionReason.UNKNOWN_WORKSTATION))
            if ticket is None or from_workstation.current_ticket is not ticket:
                return self._reject(operation, Outcome.rejected(RejectionReason.TICKET_NOT_AT_SOURCE))
            self._transition(ticket, TicketState.WAITING)
            from_workstation.current_ticket = None
            to_stage.waiting_tickets.append(ticket)

            logger.info("Transferred ticket %s to stage %s", ticket.number, to_stage.name)
            self._notify()
            return Outcome.applied(ticket)

    @_traced("finish_ticket")
    def finish_ticket(self, workstation: Workstation) -> Outcome:
        with self._lock:
            if not self._owns_workstation(workstation):
                return self._reject("finish_ticket", Outcome.rejected(RejectionReason.UNKNOWN_WORKSTATION))
            ticket = workstation.current_ticket
            if ticket is not None:
                self._transition(ticket, TicketState.DISCARDED)
                self._metrics.counter(TICKETS_FINISHED).inc()
                logger.info("Finished ticket %s", ticket.number)
            workstation.current_ticket = None
            self._notify()
            return Outcome.applied(ticket)

    @_traced("add_stage")
    def add_stage(self, name: str, workstation_type: str | None = None) -> Outcome:
        with self._lock:
            if not name or not name.strip():
                return self._reject("add_stage", Outcome.rejected(RejectionReason.BLANK_STAGE_NAME))
            stage = ServiceStage(name=name, workstation_type=workstation_type or self._default_workstation_type)
            self._stages.append(stage)

            logger.info("Added stage %s", name)
            self._notify()
            return Outcome.applied(stage=stage)

    @_traced("remove_stage")
    def remove_stage(self, stage: ServiceStage) -> Outcome:
        with self._lock:
            if not self._owns_stage(stage):
                return self._reject("remove_stage", Outcome.rejected(RejectionReason.UNKNOWN_STAGE))
            salvaged = list(stage.waiting_tickets)
            for workstation in stage.workstations:
                if workstation.current_ticket is not None:
                    self._transition(workstation.current_ticket, TicketState.WAITING)
                    salvaged.append(workstation.current_ticket)
                    workstation.current_ticket = None
            self._waiting_queue.extend(salvaged)
            stage.waiting_tickets.clear()
            self._stages.remove(stage)

            logger.info("Removed stage %s, %d ticket(s) returned to the waiting queue", stage.name, len(salvaged))
            self._notify()
            return Outcome.applied(stage=stage)

    @_traced("increment_workstation")
    def increment_workstation(self, stage: ServiceStage) -> Outcome:
        with self._lock:
            if not self._owns_stage(stage):
                return self._reject("increment_workstation", Outcome.rejected(RejectionReason.UNKNOWN_STAGE))
            highest = max((ws.number for ws in stage.workstations), default=0)
            workstation = Workstation(number=highest + 1)
            stage.workstations.append(workstation)

            logger.debug("Added %s to stage %s", stage.label_for(workstation), stage.name)
            self._notify()
            return Outcome.applied(stage=stage)

    @_traced("decrement_workstation")
    def decrement_workstation(self, stage: ServiceStage) -> Outcome:
        with self._lock:
            if not self._owns_stage(stage):
                return self._reject("decrement_workstation", Outcome.rejected(RejectionReason.UNKNOWN_STAGE))
            if not stage.workstations:
                return self._reject("decrement_workstation", Outcome.noop(RejectionReason.NO_WORKSTATIONS))
            # max() keeps the first of equal numbers
            workstation = max(stage.workstations, key=lambda ws: ws.number)
            ticket = workstation.current_ticket
            if ticket is not None:
                self._transition(ticket, TicketState.WAITING)
                stage.waiting_tickets.append(ticket)
                workstation.current_ticket = None
            stage.workstations.remove(workstation)

            logger.debug("Removed %s from stage %s", stage.label_for(workstation), stage.name)
            self._notify()
            return Outcome.applied(ticket, stage=stage)

    @_traced("toggle_auto_forward")
    def toggle_auto_forward(self) -> Outcome:
        with self._lock:
            self._auto_forward = not self._auto_forward
            logger.info("Auto-forward %s", "enabled" if self._auto_forward else "disabled")
            self._notify()
            return Outcome.applied()
