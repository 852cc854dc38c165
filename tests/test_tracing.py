from __future__ import annotations

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from nextqueue.core.config import Settings
from nextqueue.core.logging import build_tracer_provider, get_tracer, shutdown_tracer
from nextqueue.metrics import MetricsRegistry
from nextqueue.queueing import QueueEngine


@pytest.fixture
def spans():
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    engine = QueueEngine(metrics=MetricsRegistry(), tracer=get_tracer(provider))
    yield engine, exporter
    provider.shutdown()


def test_each_operation_opens_a_span(spans):
    engine, exporter = spans
    engine.add_stage("Triage", "Sala")
    stage = engine.stages[0]
    engine.increment_workstation(stage)
    ticket = engine.generate_ticket(True).ticket
    engine.move_ticket(ticket, None, stage)
    engine.call_next_in_stage(stage, stage.workstations[0].id)

    finished = {span.name: span for span in exporter.get_finished_spans()}

    assert set(finished) == {
        "queue.add_stage",
        "queue.increment_workstation",
        "queue.generate_ticket",
        "queue.move_ticket",
        "queue.call_next",
    }
    call = finished["queue.call_next"]
    assert call.attributes["queue.outcome"] == "applied"
    assert call.attributes["queue.ticket"] == "P001"
    assert tuple(call.attributes["queue.stages"]) == ("Triage",)


def test_rejected_operation_records_reason(spans):
    engine, exporter = spans
    engine.add_stage("  ")

    (span,) = exporter.get_finished_spans()
    assert span.name == "queue.add_stage"
    assert span.attributes["queue.outcome"] == "rejected"
    assert span.attributes["queue.reason"] == "blank_stage_name"
    assert "queue.ticket" not in span.attributes


def test_build_tracer_provider_uses_service_name():
    exporter = InMemorySpanExporter()
    provider = build_tracer_provider(Settings(otel_service_name="counter-a"), exporter=exporter)
    with get_tracer(provider).start_as_current_span("queue.test"):
        pass
    shutdown_tracer(provider)

    (span,) = exporter.get_finished_spans()
    assert span.resource.attributes["service.name"] == "counter-a"
