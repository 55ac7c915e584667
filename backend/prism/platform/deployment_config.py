"""
Per-capability deployment configuration.

Builds one ServiceConfig per backend capability from the feature flags and
the environment snapshot. Each ServiceConfig carries:

- enabled:       the capability has its required configuration
- fallback_mode: the hard gate consumed by fallback services (not enabled)
- config:        connection identifiers (None when absent) plus an advisory
                 fallback_to_* flag
- health_check:  optional async probe

The advisory flags (fallback_to_mock / fallback_to_demo) are also true outside
production. They are informational only: fallback services gate on
fallback_mode alone. Callers that want to keep preview/dev traffic away from
real backends can consult prefers_mock().
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from prism.platform.environment import Environment, EnvironmentSnapshot
from prism.platform.feature_flags import Feature, FeatureFlagManager

logger = logging.getLogger(__name__)

HealthCheck = Callable[[], Awaitable[bool]]

HEALTHY_SCORE_THRESHOLD = 80

CACHE_TTL_SECONDS = 3600
MEMORY_CACHE_TTL_SECONDS = 300


class Service(str, Enum):
    """Backend capabilities with a deployment configuration."""
    DATABASE = "database"
    ECOMMERCE = "ecommerce"
    CACHE = "cache"
    NOTIFICATIONS = "notifications"
    MONITORING = "monitoring"


# Feature flag that decides whether each service has its required config.
SERVICE_FEATURES = {
    Service.DATABASE: Feature.DATABASE,
    Service.ECOMMERCE: Feature.ECOMMERCE,
    Service.CACHE: Feature.CACHING,
    Service.NOTIFICATIONS: Feature.PUSH_NOTIFICATIONS,
    Service.MONITORING: Feature.ERROR_MONITORING,
}

# Advisory "prefer mock" key inside each service's config.
ADVISORY_FALLBACK_KEYS = {
    Service.DATABASE: "fallback_to_mock",
    Service.ECOMMERCE: "fallback_to_demo",
    Service.CACHE: "fallback_to_memory",
    Service.NOTIFICATIONS: "fallback_to_email",
    Service.MONITORING: "fallback_to_console",
}


@dataclass
class ServiceConfig:
    """Deployment configuration for one capability."""
    enabled: bool
    fallback_mode: bool
    config: Dict[str, Any] = field(default_factory=dict)
    health_check: Optional[HealthCheck] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize without secrets: identifiers are reported as present/absent."""
        return {
            "enabled": self.enabled,
            "fallback_mode": self.fallback_mode,
            "config": {
                key: (value if isinstance(value, (bool, int)) else value is not None)
                for key, value in self.config.items()
            },
            "has_health_check": self.health_check is not None,
        }


@dataclass
class DeploymentConfig:
    """Full deployment configuration."""
    environment: Environment
    platform: str
    mode: str
    services: Dict[Service, ServiceConfig]
    features: Dict[str, bool]
    fallbacks: Dict[str, str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "environment": self.environment.value,
            "platform": self.platform,
            "mode": self.mode,
            "services": {name.value: svc.to_dict() for name, svc in self.services.items()},
            "features": dict(self.features),
            "fallbacks": dict(self.fallbacks),
        }


def _service(name: Union[Service, str]) -> Service:
    return name if isinstance(name, Service) else Service(name)


class DeploymentConfigManager:
    """
    Answers "is this backend usable, and should I fall back?" per capability.
    """

    def __init__(self, feature_flags: FeatureFlagManager, snapshot: EnvironmentSnapshot):
        self._flags = feature_flags
        self._snapshot = snapshot
        self._config = self._build_configuration()

        logger.info(
            "Deployment configuration built",
            extra={
                "environment": self._config.environment.value,
                "mode": self._config.mode,
                "services_enabled": [s.value for s, c in self._config.services.items() if c.enabled],
            },
        )

    # ── Construction ──────────────────────────────────────────────────────

    def _build_configuration(self) -> DeploymentConfig:
        environment = self._flags.environment
        deployment = self._flags.get_deployment_info()
        is_production = environment == Environment.PRODUCTION

        return DeploymentConfig(
            environment=environment,
            platform=deployment.platform,
            mode=deployment.mode.value,
            services={
                Service.DATABASE: self._build_database_config(),
                Service.ECOMMERCE: self._build_ecommerce_config(),
                Service.CACHE: self._build_cache_config(),
                Service.NOTIFICATIONS: self._build_notification_config(),
                Service.MONITORING: self._build_monitoring_config(),
            },
            features={
                "enable_mock_data": not self._flags.is_enabled(Feature.DATABASE) or not is_production,
                "enable_test_mode": not is_production,
                "enable_debug_logs": environment == Environment.DEVELOPMENT,
                "enable_performance_tracking": not is_production,
            },
            fallbacks={
                "database_failure": "readonly" if is_production else "mock",
                "ecommerce_failure": "readonly" if is_production else "demo",
                "cache_failure": "memory",
                "notification_failure": "email",
            },
        )

    def _has_required_config(self, service: Service) -> bool:
        return self._flags.is_enabled(SERVICE_FEATURES[service])

    def _outside_production(self) -> bool:
        return self._flags.environment != Environment.PRODUCTION

    def _presence_probe(self, enabled: bool, variable: str) -> HealthCheck:
        """Probe that passes only when the service is enabled and its key identifier is set."""
        snapshot = self._snapshot

        async def probe() -> bool:
            if not enabled:
                return False
            return snapshot.has(variable)

        return probe

    def _build_database_config(self) -> ServiceConfig:
        enabled = self._has_required_config(Service.DATABASE)
        return ServiceConfig(
            enabled=enabled,
            fallback_mode=not enabled,
            config={
                "url": self._snapshot.get("SUPABASE_URL"),
                "anon_key": self._snapshot.get("SUPABASE_ANON_KEY"),
                "service_key": self._snapshot.get("SUPABASE_SERVICE_ROLE_KEY"),
                "fallback_to_mock": not enabled or self._outside_production(),
            },
            health_check=self._presence_probe(enabled, "SUPABASE_URL"),
        )

    def _build_ecommerce_config(self) -> ServiceConfig:
        enabled = self._has_required_config(Service.ECOMMERCE)
        return ServiceConfig(
            enabled=enabled,
            fallback_mode=not enabled,
            config={
                "store_id": self._snapshot.get("SWELL_STORE_ID"),
                "public_key": self._snapshot.get("SWELL_PUBLIC_KEY"),
                "secret_key": self._snapshot.get("SWELL_SECRET_KEY"),
                "fallback_to_demo": not enabled or self._outside_production(),
            },
            health_check=self._presence_probe(enabled, "SWELL_STORE_ID"),
        )

    def _build_cache_config(self) -> ServiceConfig:
        enabled = self._has_required_config(Service.CACHE)
        return ServiceConfig(
            enabled=enabled,
            fallback_mode=not enabled,
            config={
                "redis_url": self._snapshot.get("UPSTASH_REDIS_REST_URL"),
                "redis_token": self._snapshot.get("UPSTASH_REDIS_REST_TOKEN"),
                "fallback_to_memory": True,
                "ttl": CACHE_TTL_SECONDS if enabled else MEMORY_CACHE_TTL_SECONDS,
            },
        )

    def _build_notification_config(self) -> ServiceConfig:
        enabled = self._has_required_config(Service.NOTIFICATIONS)
        return ServiceConfig(
            enabled=enabled,
            fallback_mode=not enabled,
            config={
                "vapid_public_key": self._snapshot.get("VAPID_PUBLIC_KEY"),
                "vapid_private_key": self._snapshot.get("VAPID_PRIVATE_KEY"),
                "fallback_to_email": True,
            },
        )

    def _build_monitoring_config(self) -> ServiceConfig:
        enabled = self._has_required_config(Service.MONITORING)
        return ServiceConfig(
            enabled=enabled,
            fallback_mode=not enabled,
            config={
                "sentry_dsn": self._snapshot.get("SENTRY_DSN"),
                "enable_in_dev": self._flags.environment == Environment.DEVELOPMENT,
                "fallback_to_console": True,
            },
        )

    # ── Public API ────────────────────────────────────────────────────────

    def get_config(self) -> DeploymentConfig:
        return self._config

    def get_service_config(self, service: Union[Service, str]) -> ServiceConfig:
        return self._config.services[_service(service)]

    def is_service_enabled(self, service: Union[Service, str]) -> bool:
        return self.get_service_config(service).enabled

    def should_use_fallback(self, service: Union[Service, str]) -> bool:
        """Hard gate: True when the real backend is not configured."""
        return self.get_service_config(service).fallback_mode

    def prefers_mock(self, service: Union[Service, str]) -> bool:
        """Advisory flag: True when mocks are preferable (fallback active or outside production)."""
        svc = _service(service)
        return self._config.services[svc].config.get(ADVISORY_FALLBACK_KEYS[svc]) is True

    async def get_health_status(self) -> Dict[str, Any]:
        """
        Run every service probe concurrently.

        A probe that raises counts as unhealthy; it never fails the batch.
        Services without a probe report their enabled state.
        """
        services = list(self._config.services.items())

        async def probe(svc: ServiceConfig) -> bool:
            if svc.health_check is None:
                return svc.enabled
            return await svc.health_check()

        checks = [probe(svc) for _, svc in services]
        outcomes = await asyncio.gather(*checks, return_exceptions=True)

        results: List[Dict[str, Any]] = []
        for (name, svc), outcome in zip(services, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(
                    "Health probe failed",
                    extra={"service": name.value, "error": f"{type(outcome).__name__}: {outcome}"},
                )
                healthy = False
            else:
                healthy = outcome is True
            results.append({
                "service": name.value,
                "healthy": healthy,
                "enabled": svc.enabled,
            })

        enabled_count = sum(1 for r in results if r["enabled"])
        healthy_enabled = sum(1 for r in results if r["enabled"] and r["healthy"])

        if enabled_count == 0:
            score = 0
            overall = False
        else:
            score = int(round(healthy_enabled / enabled_count * 100))
            overall = score >= HEALTHY_SCORE_THRESHOLD

        return {
            "overall": overall,
            "services": results,
            "score": score,
            "mode": self._config.mode,
        }

    def get_deployment_summary(self) -> Dict[str, Any]:
        degradation = self._flags.get_degradation_report()
        services = self._config.services

        return {
            "environment": self._config.environment.value,
            "platform": self._config.platform,
            "mode": self._config.mode,
            "availability_score": degradation.availability_percentage,
            "critical_issues": list(degradation.critical_features_disabled),
            "recommended_actions": list(degradation.recommended_actions),
            "impact": degradation.impact.value,
            "services_enabled": [name.value for name, svc in services.items() if svc.enabled],
            "fallbacks_active": [name.value for name, svc in services.items() if svc.fallback_mode],
        }
