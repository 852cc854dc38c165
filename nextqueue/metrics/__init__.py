"""Application wide metrics utilities."""
from .definitions import DEFAULT_METRIC_DEFINITIONS, MetricDefinition
from .exporters import PrometheusExporter
from .registry import MetricsRegistry

metrics_registry = MetricsRegistry()


def register_default_metrics(registry: MetricsRegistry | None = None) -> MetricsRegistry:
    """Ensure every queue metric exists in ``registry`` and return it."""
    target = registry or metrics_registry
    for definition in DEFAULT_METRIC_DEFINITIONS:
        target.register(definition)
    return target


register_default_metrics()

__all__ = [
    "DEFAULT_METRIC_DEFINITIONS",
    "MetricDefinition",
    "MetricsRegistry",
    "PrometheusExporter",
    "metrics_registry",
    "register_default_metrics",
]
