import pytest

from nextqueue.metrics import (
    DEFAULT_METRIC_DEFINITIONS,
    MetricDefinition,
    MetricsRegistry,
    PrometheusExporter,
    register_default_metrics,
)


def test_register_default_metrics_creates_all_definitions():
    registry = register_default_metrics(MetricsRegistry())
    names = {metric.name for metric in registry.metrics()}
    assert names == {definition.name for definition in DEFAULT_METRIC_DEFINITIONS}


def test_counter_requires_declared_labels():
    registry = MetricsRegistry()
    counter = registry.counter("calls_total", label_names=("stage",))
    with pytest.raises(ValueError):
        counter.inc()
    with pytest.raises(ValueError):
        counter.inc(-1, labels={"stage": "Triage"})
    counter.inc(labels={"stage": "Triage"})
    assert counter.value(labels={"stage": "Triage"}) == 1.0


def test_registry_rejects_type_mismatch():
    registry = MetricsRegistry()
    registry.counter("waits")
    with pytest.raises(TypeError):
        registry.distribution("waits")


def test_prometheus_exporter_renders_counters_and_summaries():
    registry = MetricsRegistry()
    registry.counter("tickets_total", description="Tickets", label_names=("ticket_class",)).inc(
        labels={"ticket_class": "priority"}
    )
    registry.distribution("wait_seconds", description="Wait").observe(2.5)

    payload = PrometheusExporter(registry).export()

    assert "# TYPE tickets_total counter" in payload
    assert 'tickets_total{ticket_class="priority"} 1.0' in payload
    assert "# TYPE wait_seconds summary" in payload
    assert "wait_seconds_count 1.0" in payload
    assert "wait_seconds_sum 2.5" in payload


def test_register_rejects_unknown_metric_kind():
    registry = MetricsRegistry()
    with pytest.raises(ValueError):
        registry.register(MetricDefinition(name="gauge", metric_type="gauge", description=""))
    assert "gauge" not in registry


def test_register_is_idempotent():
    registry = MetricsRegistry()
    definition = DEFAULT_METRIC_DEFINITIONS[0]
    assert registry.register(definition) is registry.register(definition)
    assert definition.name in registry
