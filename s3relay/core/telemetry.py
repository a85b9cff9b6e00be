"""
Telemetry and metrics collection
"""
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
import time


@dataclass
class Metric:
    """Single metric sample"""
    name: str
    value: float
    timestamp: float = field(default_factory=time.time)
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass
class Event:
    """Event record"""
    name: str
    timestamp: float = field(default_factory=time.time)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class MetricSummary:
    """Aggregate of the samples of one metric"""
    name: str
    count: int = 0
    total: float = 0.0
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    @property
    def mean(self) -> Optional[float]:
        return self.total / self.count if self.count else None


def _matches(metric: Metric, name: Optional[str], tags: Optional[Dict[str, str]]) -> bool:
    if name is not None and metric.name != name:
        return False
    if tags:
        return all(metric.tags.get(k) == v for k, v in tags.items())
    return True


class Telemetry:
    """
    In-process collector for transfer events and per-part samples.

    Samples carry tags (the orchestrator tags them with the upload id)
    so one collector can serve several transfers.
    """

    def __init__(self):
        self._metrics: list[Metric] = []
        self._events: list[Event] = []

    def record_metric(self, name: str, value: float, tags: Optional[Dict[str, str]] = None) -> None:
        self._metrics.append(Metric(name=name, value=value, tags=tags or {}))

    def record_event(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._events.append(Event(name=name, metadata=metadata or {}))

    def get_metrics(self, name: Optional[str] = None, tags: Optional[Dict[str, str]] = None) -> list[Metric]:
        """Recorded samples, filtered by name and by tag values"""
        return [m for m in self._metrics if _matches(m, name, tags)]

    def get_events(self, name: Optional[str] = None) -> list[Event]:
        """Recorded events, optionally only those with the given name"""
        if name is None:
            return self._events.copy()
        return [e for e in self._events if e.name == name]

    def summarize(self, name: str, tags: Optional[Dict[str, str]] = None) -> MetricSummary:
        """Count, total and range of one metric"""
        summary = MetricSummary(name=name)
        for metric in self.get_metrics(name, tags):
            summary.count += 1
            summary.total += metric.value
            if summary.minimum is None or metric.value < summary.minimum:
                summary.minimum = metric.value
            if summary.maximum is None or metric.value > summary.maximum:
                summary.maximum = metric.value
        return summary

    def clear(self) -> None:
        self._metrics.clear()
        self._events.clear()


# Global telemetry instance
_telemetry = Telemetry()


def get_telemetry() -> Telemetry:
    """Get global telemetry instance"""
    return _telemetry
