"""In-memory registry for queue metrics."""
from __future__ import annotations

from threading import Lock
from typing import Dict, Iterable, Mapping, Tuple, Type, TypeVar

from .base import CounterMetric, DistributionMetric, Metric
from .definitions import MetricDefinition

M = TypeVar("M", bound=Metric)

_KINDS: Mapping[str, Type[Metric]] = {
    "counter": CounterMetric,
    "distribution": DistributionMetric,
}


class MetricsRegistry:
    """Name-indexed metrics shared by one engine and its exporters.

    Asking twice for the same name returns the same instance; asking for it
    with a different kind raises ``TypeError``.
    """

    def __init__(self) -> None:
        self._metrics: Dict[str, Metric] = {}
        self._lock = Lock()

    def _metric(self, kind: Type[M], name: str, description: str, label_names: Iterable[str] | None) -> M:
        with self._lock:
            metric = self._metrics.get(name)
            if metric is None:
                metric = self._metrics[name] = kind(name, description=description, label_names=label_names)
        if not isinstance(metric, kind):
            raise TypeError(f"Metric '{name}' is a {type(metric).__name__}, not a {kind.__name__}")
        return metric

    def register(self, definition: MetricDefinition) -> Metric:
        try:
            kind = _KINDS[definition.metric_type]
        except KeyError:
            raise ValueError(f"Unsupported metric type: {definition.metric_type}") from None
        return self._metric(kind, definition.name, definition.description, definition.label_names)

    def counter(self, name: str, *, description: str = "", label_names: Iterable[str] | None = None) -> CounterMetric:
        return self._metric(CounterMetric, name, description, label_names)

    def distribution(
        self, name: str, *, description: str = "", label_names: Iterable[str] | None = None
    ) -> DistributionMetric:
        return self._metric(DistributionMetric, name, description, label_names)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._metrics

    def metrics(self) -> Tuple[Metric, ...]:
        with self._lock:
            return tuple(self._metrics.values())

    def snapshot(self) -> Dict[str, Mapping[Tuple[str, ...], Mapping[str, float]]]:
        """Label values to readings, per metric name."""

        return {metric.name: metric.snapshot() for metric in self.metrics()}
