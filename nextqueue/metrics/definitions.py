"""Metric definitions recorded by the queue engine."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

TICKETS_GENERATED = "queue_tickets_generated_total"
TICKETS_CALLED = "queue_tickets_called_total"
TICKETS_FINISHED = "queue_tickets_finished_total"
OPERATIONS_REJECTED = "queue_operations_rejected_total"
TICKET_WAIT_SECONDS = "queue_ticket_wait_seconds"


@dataclass(frozen=True)
class MetricDefinition:
    """Describe a metric that should exist in the registry."""

    name: str
    metric_type: str
    description: str
    label_names: Tuple[str, ...] = ()


DEFAULT_METRIC_DEFINITIONS: Tuple[MetricDefinition, ...] = (
    MetricDefinition(
        name=TICKETS_GENERATED,
        metric_type="counter",
        description="Tickets handed out by the dispenser.",
        label_names=("ticket_class",),
    ),
    MetricDefinition(
        name=TICKETS_CALLED,
        metric_type="counter",
        description="Tickets called to a workstation.",
        label_names=("stage",),
    ),
    MetricDefinition(
        name=TICKETS_FINISHED,
        metric_type="counter",
        description="Tickets retired from a workstation.",
    ),
    MetricDefinition(
        name=OPERATIONS_REJECTED,
        metric_type="counter",
        description="Queue operations that were rejected or had nothing to do.",
        label_names=("operation", "reason"),
    ),
    MetricDefinition(
        name=TICKET_WAIT_SECONDS,
        metric_type="distribution",
        description="Seconds between ticket creation and its call to a workstation.",
        label_names=("stage",),
    ),
)
