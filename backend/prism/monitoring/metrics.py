"""
Health metric definitions, classification and sampling.

Every metric is "lower is better" so a single rule classifies all of them:

    critical  iff value >= threshold.critical
    warning   iff value >= threshold.warning (and not critical)
    healthy   otherwise

Rates that are naturally "higher is better" (conversion, hit rate, delivery
rate) are tracked as their complement (abandonment, miss rate, failure rate).

Sample values come from a MetricSampler. RandomMetricSampler draws uniformly
from each definition's sample range; tests plug in a fixed sampler.
"""

import random
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple


class MetricStatus(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class MetricThreshold:
    warning: float
    critical: float


@dataclass(frozen=True)
class MetricDefinition:
    """Fixed shape of one metric: name, unit, thresholds and sample range."""
    name: str
    unit: str
    threshold: MetricThreshold
    sample_range: Tuple[float, float]
    integer: bool = False


@dataclass(frozen=True)
class HealthMetric:
    name: str
    value: float
    unit: str
    status: MetricStatus
    threshold: MetricThreshold
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "unit": self.unit,
            "status": self.status.value,
            "threshold": {
                "warning": self.threshold.warning,
                "critical": self.threshold.critical,
            },
            "timestamp": self.timestamp.isoformat(),
        }


def classify(value: float, threshold: MetricThreshold) -> MetricStatus:
    if value >= threshold.critical:
        return MetricStatus.CRITICAL
    if value >= threshold.warning:
        return MetricStatus.WARNING
    return MetricStatus.HEALTHY


def create_metric(definition: MetricDefinition, value: float, timestamp: datetime) -> HealthMetric:
    return HealthMetric(
        name=definition.name,
        value=value,
        unit=definition.unit,
        status=classify(value, definition.threshold),
        threshold=definition.threshold,
        timestamp=timestamp,
    )


class MetricSampler(Protocol):
    """Source of sample values for metric definitions."""

    def sample(self, group: str, definition: MetricDefinition) -> float:
        ...


class RandomMetricSampler:
    """Uniform draw from each definition's sample range."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def sample(self, group: str, definition: MetricDefinition) -> float:
        low, high = definition.sample_range
        value = self._rng.uniform(low, high)
        if definition.integer:
            return float(int(value))
        return round(value, 2)


PERFORMANCE_GROUP = "performance"


def _metric(name, unit, warning, critical, low, high, integer=False) -> MetricDefinition:
    return MetricDefinition(
        name=name,
        unit=unit,
        threshold=MetricThreshold(warning=warning, critical=critical),
        sample_range=(low, high),
        integer=integer,
    )


DEFAULT_METRIC_DEFINITIONS: Dict[str, Tuple[MetricDefinition, ...]] = {
    "database": (
        _metric("Connection Pool", "%", 80, 95, 0, 100),
        _metric("Query Time", "ms", 100, 500, 0, 200),
        _metric("Active Connections", "count", 40, 45, 0, 50, integer=True),
    ),
    "ecommerce": (
        _metric("API Response Time", "ms", 200, 1000, 0, 300),
        _metric("Cart Abandonment", "%", 30, 50, 5, 15),
        _metric("Payment Failure Rate", "%", 10, 15, 1, 5),
    ),
    "cache": (
        _metric("Miss Rate", "%", 40, 60, 5, 20),
        _metric("Memory Usage", "%", 70, 90, 0, 80),
        _metric("Eviction Rate", "/min", 10, 20, 0, 5),
    ),
    "notifications": (
        _metric("Delivery Failure Rate", "%", 15, 25, 2, 8),
        _metric("Queue Size", "count", 500, 1000, 0, 100, integer=True),
    ),
    "monitoring": (
        _metric("Error Rate", "%", 1, 5, 0, 2),
        _metric("Alert Response", "sec", 60, 300, 0, 30),
    ),
    PERFORMANCE_GROUP: (
        _metric("Page Load Time", "ms", 1000, 3000, 800, 1300),
        _metric("API Response Time", "ms", 500, 2000, 150, 350),
        _metric("Error Rate", "%", 1, 5, 0, 1),
    ),
}


def apply_threshold_overrides(
    definitions: Mapping[str, Tuple[MetricDefinition, ...]],
    overrides: Mapping[str, Mapping[str, Mapping[str, float]]],
) -> Dict[str, Tuple[MetricDefinition, ...]]:
    """
    Replace thresholds by group and metric name.

    Overrides for unknown groups or metrics are ignored.
    """
    result = {}
    for group, group_definitions in definitions.items():
        group_overrides = overrides.get(group) or {}
        updated = []
        for definition in group_definitions:
            override = group_overrides.get(definition.name)
            if override:
                definition = replace(
                    definition,
                    threshold=MetricThreshold(
                        warning=float(override.get("warning", definition.threshold.warning)),
                        critical=float(override.get("critical", definition.threshold.critical)),
                    ),
                )
            updated.append(definition)
        result[group] = tuple(updated)
    return result
