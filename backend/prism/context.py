"""
Application context: one instance of every manager and service.

build_app_context() wires the dependency chain once:

    EnvironmentSnapshot -> FeatureFlagManager -> DeploymentConfigManager
        -> DatabaseFallback / EcommerceFallback / HealthMonitoringService

The FastAPI lifespan stores the result on app.state.context; routes reach it
through prism.api.dependencies.get_app_context.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from prism.config.health_thresholds import HealthThresholdsLoader
from prism.fallbacks.database_fallback import DatabaseFallback
from prism.fallbacks.ecommerce_fallback import EcommerceFallback
from prism.monitoring.alerts import AlertNotifier
from prism.monitoring.health_monitor import HealthMonitoringService
from prism.monitoring.metrics import MetricSampler
from prism.platform.deployment_config import DeploymentConfigManager
from prism.platform.environment import EnvironmentSnapshot
from prism.platform.feature_flags import FeatureFlagManager

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    snapshot: EnvironmentSnapshot
    feature_flags: FeatureFlagManager
    deployment_config: DeploymentConfigManager
    database_fallback: DatabaseFallback
    ecommerce_fallback: EcommerceFallback
    health_monitor: HealthMonitoringService
    thresholds: HealthThresholdsLoader

    def shutdown(self) -> None:
        self.health_monitor.destroy()


def build_app_context(
    snapshot: Optional[EnvironmentSnapshot] = None,
    thresholds: Optional[HealthThresholdsLoader] = None,
    sampler: Optional[MetricSampler] = None,
    notifier: Optional[AlertNotifier] = None,
    fallback_latency_seconds: Optional[float] = None,
) -> AppContext:
    """
    Build the full context.

    Args:
        snapshot: environment to detect capabilities from (default: os.environ)
        thresholds: monitor configuration (default: config/health_thresholds.yml)
        sampler: metric value source (default: random)
        notifier: alert forwarder (default: Slack webhook from the snapshot)
        fallback_latency_seconds: override the simulated latency of both
            fallback services
    """
    snapshot = snapshot or EnvironmentSnapshot.from_environ()
    thresholds = thresholds or HealthThresholdsLoader()

    feature_flags = FeatureFlagManager(snapshot)
    deployment_config = DeploymentConfigManager(feature_flags, snapshot)

    health_monitor = HealthMonitoringService(
        deployment_config,
        feature_flags,
        sampler=sampler,
        interval_seconds=thresholds.get_interval_seconds(),
        alert_history=thresholds.get_alert_history(),
        history_size=thresholds.get_metric_history(),
        notifier=notifier or AlertNotifier(snapshot.get("HEALTH_ALERT_SLACK_WEBHOOK_URL")),
        metric_definitions=thresholds.get_metric_definitions(),
    )

    context = AppContext(
        snapshot=snapshot,
        feature_flags=feature_flags,
        deployment_config=deployment_config,
        database_fallback=DatabaseFallback(deployment_config, fallback_latency_seconds),
        ecommerce_fallback=EcommerceFallback(deployment_config, fallback_latency_seconds),
        health_monitor=health_monitor,
        thresholds=thresholds,
    )

    logger.info(
        "Application context built",
        extra={
            "environment": snapshot.environment.value,
            "deployment_mode": feature_flags.get_deployment_info().mode.value,
        },
    )
    return context
