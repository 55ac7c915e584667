"""
Periodic health sampling, rollup and alerting.

HealthMonitoringService runs one SampleCycle at a time:

    1. Ask DeploymentConfigManager for aggregate probe health.
    2. Regenerate the metric list of every service group (plus the
       performance group) from fixed definitions and a MetricSampler.
    3. Classify each metric; services roll up to healthy/degraded/down.
    4. Re-derive three alert conditions and append an alert for each one
       that is newly true. A condition that clears re-arms.
    5. The alert log keeps the newest `alert_history` entries.

Cycles never overlap: perform_health_check() returns False immediately while
a cycle is in flight, and the background loop awaits each cycle before
sleeping.
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, List, Mapping, Optional, Set, Tuple, Union

from prism.monitoring.alerts import (
    DEFAULT_ALERT_HISTORY,
    Alert,
    AlertLog,
    AlertNotifier,
    AlertSeverity,
)
from prism.monitoring.metrics import (
    DEFAULT_METRIC_DEFINITIONS,
    PERFORMANCE_GROUP,
    HealthMetric,
    MetricDefinition,
    MetricSampler,
    MetricStatus,
    RandomMetricSampler,
    create_metric,
)
from prism.platform.deployment_config import DeploymentConfigManager, Service
from prism.platform.feature_flags import DeploymentMode, FeatureFlagManager

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30.0
DEFAULT_METRIC_HISTORY = 20
RECENT_ALERTS_IN_REPORT = 10

HEALTHY_SCORE = 80
DEGRADED_SCORE = 50

CONDITION_CRITICAL_DISABLED = "critical_disabled"
CONDITION_DEGRADED_MODE = "degraded_mode"
CONDITION_PERFORMANCE_CRITICAL = "performance_critical"

DEGRADED_MODE_MESSAGE = "Application running in degraded mode - some features may be limited"
CYCLE_FAILURE_MESSAGE = "Health monitoring system encountered an error"


class ServiceStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    DOWN = "down"


class OverallStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    CRITICAL = "critical"


@dataclass
class ServiceHealthStatus:
    """Per-service rollup of the latest metric list."""
    service: str
    status: ServiceStatus
    response_time: float
    uptime: int
    last_check: datetime
    metrics: List[HealthMetric] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service": self.service,
            "status": self.status.value,
            "response_time": self.response_time,
            "uptime": self.uptime,
            "last_check": self.last_check.isoformat(),
            "metrics": [m.to_dict() for m in self.metrics],
            "issues": list(self.issues),
        }


def rollup_status(metrics: List[HealthMetric]) -> ServiceStatus:
    """down iff any metric critical, degraded iff any warning, else healthy."""
    statuses = {m.status for m in metrics}
    if MetricStatus.CRITICAL in statuses:
        return ServiceStatus.DOWN
    if MetricStatus.WARNING in statuses:
        return ServiceStatus.DEGRADED
    return ServiceStatus.HEALTHY


def overall_status(score: float) -> OverallStatus:
    if score < DEGRADED_SCORE:
        return OverallStatus.CRITICAL
    if score < HEALTHY_SCORE:
        return OverallStatus.DEGRADED
    return OverallStatus.HEALTHY


def _format_issue(metric: HealthMetric) -> str:
    return (
        f"{metric.name}: {metric.value:g}{metric.unit} "
        f"(threshold: {metric.threshold.warning:g}{metric.unit})"
    )


def _find_metric(metrics: List[HealthMetric], name: str) -> Optional[HealthMetric]:
    return next((m for m in metrics if m.name == name), None)


class HealthMonitoringService:
    """
    Samples per-service health metrics and maintains a capped alert log.

    Construct once per process (see prism.context). Call start_monitoring()
    from a running event loop to begin periodic sampling.
    """

    def __init__(
        self,
        deployment_config: DeploymentConfigManager,
        feature_flags: FeatureFlagManager,
        sampler: Optional[MetricSampler] = None,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        alert_history: int = DEFAULT_ALERT_HISTORY,
        history_size: int = DEFAULT_METRIC_HISTORY,
        notifier: Optional[AlertNotifier] = None,
        metric_definitions: Optional[Mapping[str, Tuple[MetricDefinition, ...]]] = None,
    ):
        self._deployment_config = deployment_config
        self._feature_flags = feature_flags
        self._sampler = sampler or RandomMetricSampler()
        self._interval = interval_seconds
        self._history_size = history_size
        self._notifier = notifier
        self._definitions = dict(metric_definitions or DEFAULT_METRIC_DEFINITIONS)

        self._alerts = AlertLog(max_alerts=alert_history)
        self._metrics: Dict[str, List[HealthMetric]] = {}
        self._history: Dict[Tuple[str, str], Deque[HealthMetric]] = {}
        self._active_conditions: Set[str] = set()
        self._last_probe: Optional[Dict[str, Any]] = None

        self._started_at = time.monotonic()
        self._task: Optional[asyncio.Task] = None
        self._in_flight = False

    # ── Lifecycle ─────────────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start_monitoring(self) -> None:
        """Schedule the sampling loop on the running event loop. Idempotent."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("Health monitoring started", extra={"interval_seconds": self._interval})

    async def _run(self) -> None:
        while True:
            await self.perform_health_check()
            await asyncio.sleep(self._interval)

    def stop_monitoring(self) -> None:
        """Cancel the sampling loop. Safe to call repeatedly."""
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
        self._task = None
        logger.info("Health monitoring stopped")

    def destroy(self) -> None:
        """Stop sampling and drop all collected state. Safe to call repeatedly."""
        self.stop_monitoring()
        self._metrics.clear()
        self._history.clear()
        self._alerts.clear()
        self._active_conditions.clear()
        self._last_probe = None

    # ── Sample cycle ──────────────────────────────────────────────────────

    async def perform_health_check(self) -> bool:
        """
        Run one sample cycle.

        Returns False without doing anything when a cycle is already running,
        and False when the cycle failed (an error alert is recorded).
        """
        if self._in_flight:
            logger.debug("Health check skipped: previous cycle still running")
            return False

        self._in_flight = True
        try:
            self._last_probe = await self._deployment_config.get_health_status()
            self._update_metrics()
            new_alerts = self._detect_issues()
        except Exception:
            logger.exception("Health check failed")
            self._alerts.add(AlertSeverity.ERROR, CYCLE_FAILURE_MESSAGE)
            return False
        finally:
            self._in_flight = False

        if new_alerts and self._notifier is not None:
            try:
                await self._notifier.dispatch(new_alerts)
            except Exception:
                logger.exception("Alert forwarding failed")
        return True

    def _update_metrics(self) -> None:
        timestamp = datetime.now(timezone.utc)
        for group, definitions in self._definitions.items():
            metrics = [
                create_metric(definition, self._sampler.sample(group, definition), timestamp)
                for definition in definitions
            ]
            self._metrics[group] = metrics
            for metric in metrics:
                history = self._history.setdefault(
                    (group, metric.name), deque(maxlen=self._history_size)
                )
                history.append(metric)

    def _detect_issues(self) -> List[Alert]:
        degradation = self._feature_flags.get_degradation_report()
        critical_performance = [
            m.name for m in self._metrics.get(PERFORMANCE_GROUP, [])
            if m.status == MetricStatus.CRITICAL
        ]

        conditions = {
            CONDITION_CRITICAL_DISABLED: (
                bool(degradation.critical_features_disabled),
                AlertSeverity.CRITICAL,
                "Critical services unavailable: "
                + ", ".join(degradation.critical_features_disabled),
            ),
            CONDITION_DEGRADED_MODE: (
                degradation.deployment_mode == DeploymentMode.DEGRADED,
                AlertSeverity.WARNING,
                DEGRADED_MODE_MESSAGE,
            ),
            CONDITION_PERFORMANCE_CRITICAL: (
                bool(critical_performance),
                AlertSeverity.ERROR,
                "Performance issues detected: " + ", ".join(critical_performance),
            ),
        }

        new_alerts = []
        for name, (active, severity, message) in conditions.items():
            if not active:
                self._active_conditions.discard(name)
                continue
            if name in self._active_conditions:
                continue
            self._active_conditions.add(name)
            new_alerts.append(self._alerts.add(severity, message))
        return new_alerts

    # ── Reports ───────────────────────────────────────────────────────────

    def _uptime(self) -> int:
        return int(round(time.monotonic() - self._started_at))

    def _service_status(self, service: str, now: datetime) -> ServiceHealthStatus:
        metrics = list(self._metrics.get(service, []))
        timed = [m.value for m in metrics if "Time" in m.name]
        return ServiceHealthStatus(
            service=service,
            status=rollup_status(metrics),
            response_time=sum(timed) / len(timed) if timed else 0.0,
            uptime=self._uptime(),
            last_check=now,
            metrics=metrics,
            issues=[_format_issue(m) for m in metrics if m.status != MetricStatus.HEALTHY],
        )

    async def get_system_health(self) -> Dict[str, Any]:
        config = self._deployment_config.get_config()
        degradation = self._feature_flags.get_degradation_report()
        deployment = self._feature_flags.get_deployment_info()
        now = datetime.now(timezone.utc)

        performance = self._metrics.get(PERFORMANCE_GROUP, [])
        api_response = _find_metric(performance, "API Response Time")
        page_load = _find_metric(performance, "Page Load Time")
        error_rate = _find_metric(performance, "Error Rate")

        score = degradation.availability_percentage

        return {
            "overall": overall_status(score).value,
            "score": score,
            "services": [
                self._service_status(service.value, now).to_dict()
                for service in config.services
            ],
            "deployment": {
                "environment": config.environment.value,
                "mode": config.mode,
                "version": deployment.version,
                "uptime": self._uptime(),
                "probe_score": self._last_probe["score"] if self._last_probe else None,
            },
            "performance": {
                "response_time": api_response.value if api_response else 0,
                "page_load_time": page_load.value if page_load else 0,
                "error_rate": error_rate.value if error_rate else 0,
            },
            "alerts": [a.to_dict() for a in self._alerts.recent(RECENT_ALERTS_IN_REPORT)],
            "recommendations": list(degradation.recommended_actions),
        }

    async def get_service_health(self, service: Union[Service, str]) -> Optional[Dict[str, Any]]:
        """Rollup for one service, or None when the name is not a service."""
        name = service.value if isinstance(service, Service) else str(service)
        if name not in {s.value for s in Service}:
            return None
        return self._service_status(name, datetime.now(timezone.utc)).to_dict()

    def get_metric_history(self, service: str, metric_name: str) -> List[HealthMetric]:
        """Recent samples of one metric, oldest first."""
        return list(self._history.get((service, metric_name), ()))

    def get_metrics(self, group: str) -> List[HealthMetric]:
        return list(self._metrics.get(group, []))

    # ── Alerts ────────────────────────────────────────────────────────────

    def get_alerts(self, limit: Optional[int] = None) -> List[Alert]:
        return self._alerts.recent(limit)

    def acknowledge_alert(self, timestamp: Union[datetime, str]) -> bool:
        return self._alerts.acknowledge(timestamp)

    def clear_acknowledged_alerts(self) -> int:
        return self._alerts.clear_acknowledged()
