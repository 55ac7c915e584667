"""
Health monitoring: metric sampling, service rollup and alerting.
"""

from prism.monitoring.alerts import (
    Alert,
    AlertLog,
    AlertNotifier,
    AlertSeverity,
)

from prism.monitoring.metrics import (
    DEFAULT_METRIC_DEFINITIONS,
    HealthMetric,
    MetricDefinition,
    MetricSampler,
    MetricStatus,
    MetricThreshold,
    RandomMetricSampler,
    classify,
)

from prism.monitoring.health_monitor import (
    HealthMonitoringService,
    OverallStatus,
    ServiceHealthStatus,
    ServiceStatus,
)

__all__ = [
    # Alerts
    "Alert",
    "AlertLog",
    "AlertNotifier",
    "AlertSeverity",
    # Metrics
    "DEFAULT_METRIC_DEFINITIONS",
    "HealthMetric",
    "MetricDefinition",
    "MetricSampler",
    "MetricStatus",
    "MetricThreshold",
    "RandomMetricSampler",
    "classify",
    # Monitor
    "HealthMonitoringService",
    "OverallStatus",
    "ServiceHealthStatus",
    "ServiceStatus",
]
