"""
Runtime feature flags derived from the deployed environment.

Flags are computed once, at construction, from an EnvironmentSnapshot:

    1. Resolve the environment (development / preview / production).
    2. Resolve raw capability availability, either from the FEATURES_AVAILABLE
       JSON object or, when absent or unparseable, from the presence of each
       capability's configuration variables.
    3. Derive the full flag set. Dependent flags never contradict their
       prerequisites: authentication requires the database; real-time
       updates and AI insights require the database in production.
    4. Derive the deployment mode from database/ecommerce availability.

Missing configuration is an expected state, not an error. Nothing in this
module raises on bad or absent input.

Usage:
    from prism.platform.feature_flags import Feature, FeatureFlagManager

    flags = FeatureFlagManager(snapshot)
    if flags.is_enabled(Feature.AUTHENTICATION):
        ...
    report = flags.get_degradation_report()
"""

import json
import logging
from dataclasses import asdict, dataclass, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from prism.platform.environment import Environment, EnvironmentSnapshot

logger = logging.getLogger(__name__)


class Feature(str, Enum):
    """Names of all runtime feature flags."""
    # Core platform
    DATABASE = "database"
    ECOMMERCE = "ecommerce"
    AUTHENTICATION = "authentication"

    # Enhanced
    CACHING = "caching"
    PUSH_NOTIFICATIONS = "push_notifications"
    ERROR_MONITORING = "error_monitoring"
    ANALYTICS = "analytics"

    # Advanced
    REAL_TIME_UPDATES = "real_time_updates"
    AI_INSIGHTS = "ai_insights"
    ADVANCED_SECURITY = "advanced_security"

    # Development
    DEBUG_MODE = "debug_mode"
    PERFORMANCE_METRICS = "performance_metrics"
    FEATURE_PREVIEWS = "feature_previews"


class DeploymentMode(str, Enum):
    """How much of the critical backend is available."""
    FULL = "full"
    DEGRADED = "degraded"
    MAINTENANCE = "maintenance"


class DegradationImpact(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


CRITICAL_FEATURES = (Feature.DATABASE, Feature.ECOMMERCE, Feature.AUTHENTICATION)

# Raw capability keys accepted in FEATURES_AVAILABLE, with the variable that
# signals presence when the JSON override is not usable.
CAPABILITY_PRESENCE_VARIABLES = {
    "database": "SUPABASE_URL",
    "ecommerce": "SWELL_STORE_ID",
    "caching": "UPSTASH_REDIS_REST_URL",
    "notifications": "VAPID_PUBLIC_KEY",
    "monitoring": "SENTRY_DSN",
}


@dataclass(frozen=True)
class FeatureFlags:
    """Immutable set of feature flags for the process lifetime."""
    database: bool = False
    ecommerce: bool = False
    authentication: bool = False
    caching: bool = False
    push_notifications: bool = False
    error_monitoring: bool = False
    analytics: bool = False
    real_time_updates: bool = False
    ai_insights: bool = False
    advanced_security: bool = False
    debug_mode: bool = False
    performance_metrics: bool = False
    feature_previews: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)


@dataclass(frozen=True)
class DeploymentInfo:
    """Where and how the process is deployed."""
    mode: DeploymentMode
    environment: Environment
    platform: str
    version: str
    build_time: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "environment": self.environment.value,
            "platform": self.platform,
            "version": self.version,
            "build_time": self.build_time.isoformat(),
        }


@dataclass(frozen=True)
class DegradationReport:
    """Snapshot explaining what is missing and what to do about it."""
    deployment_mode: DeploymentMode
    environment: Environment
    critical_features_disabled: List[str]
    total_features_available: int
    availability_percentage: int
    recommended_actions: List[str]
    impact: DegradationImpact

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deployment_mode": self.deployment_mode.value,
            "environment": self.environment.value,
            "critical_features_disabled": list(self.critical_features_disabled),
            "total_features_available": self.total_features_available,
            "availability_percentage": self.availability_percentage,
            "recommended_actions": list(self.recommended_actions),
            "impact": self.impact.value,
        }


def _feature_name(feature: Union[Feature, str]) -> str:
    return feature.value if isinstance(feature, Feature) else str(feature)


class FeatureFlagManager:
    """
    Computes feature flags and deployment info once from an environment
    snapshot and answers availability questions for the rest of the app.
    """

    def __init__(self, snapshot: EnvironmentSnapshot):
        self._snapshot = snapshot
        self._environment = snapshot.environment
        self._capabilities = self._parse_available_capabilities()
        self._flags = self._initialize_flags()
        self._deployment_info = DeploymentInfo(
            mode=self._derive_deployment_mode(),
            environment=self._environment,
            platform=snapshot.platform.value,
            version=snapshot.app_version,
            build_time=datetime.now(timezone.utc),
        )

        logger.info(
            "Feature flags initialized",
            extra={
                "environment": self._environment.value,
                "deployment_mode": self._deployment_info.mode.value,
                "capabilities": self._capabilities,
            },
        )

    # ── Initialization ────────────────────────────────────────────────────

    def _parse_available_capabilities(self) -> Dict[str, bool]:
        """
        Resolve raw capability availability.

        FEATURES_AVAILABLE takes precedence when it parses to a JSON object.
        Parse failures fall back to presence detection.
        """
        raw = self._snapshot.get("FEATURES_AVAILABLE")
        if raw:
            try:
                parsed = json.loads(raw)
            except ValueError as e:
                logger.warning(
                    "Failed to parse FEATURES_AVAILABLE - detecting from environment",
                    extra={"error": str(e)},
                )
            else:
                if isinstance(parsed, dict):
                    return {
                        name: parsed.get(name) is True
                        for name in CAPABILITY_PRESENCE_VARIABLES
                    }
                logger.warning(
                    "FEATURES_AVAILABLE is not a JSON object - detecting from environment",
                    extra={"type": type(parsed).__name__},
                )

        return {
            name: self._snapshot.has(variable)
            for name, variable in CAPABILITY_PRESENCE_VARIABLES.items()
        }

    def _initialize_flags(self) -> FeatureFlags:
        caps = self._capabilities
        env = self._environment
        is_production = env == Environment.PRODUCTION
        is_development = env == Environment.DEVELOPMENT

        return FeatureFlags(
            database=caps["database"],
            ecommerce=caps["ecommerce"],
            authentication=caps["database"],
            caching=caps["caching"],
            push_notifications=caps["notifications"],
            error_monitoring=caps["monitoring"],
            analytics=not is_development,
            real_time_updates=caps["database"] and is_production,
            ai_insights=caps["database"] and is_production,
            advanced_security=is_production,
            debug_mode=is_development,
            performance_metrics=not is_production,
            feature_previews=not is_production,
        )

    def _derive_deployment_mode(self) -> DeploymentMode:
        has_database = self._flags.database
        has_ecommerce = self._flags.ecommerce

        if has_database and has_ecommerce:
            return DeploymentMode.FULL
        if has_database or has_ecommerce:
            return DeploymentMode.DEGRADED
        return DeploymentMode.MAINTENANCE

    # ── Public API ────────────────────────────────────────────────────────

    @property
    def environment(self) -> Environment:
        return self._environment

    def is_enabled(self, feature: Union[Feature, str]) -> bool:
        """Return the flag value; unknown names are disabled."""
        return getattr(self._flags, _feature_name(feature), False) is True

    def can_use_feature(
        self,
        feature: Union[Feature, str],
        requirements: Optional[Iterable[Union[Feature, str]]] = None,
    ) -> bool:
        """True when the feature and every listed requirement are enabled."""
        if not self.is_enabled(feature):
            return False
        return all(self.is_enabled(req) for req in (requirements or ()))

    def get_flags(self) -> FeatureFlags:
        return self._flags

    def get_deployment_info(self) -> DeploymentInfo:
        return self._deployment_info

    def get_feature_status(self) -> Dict[str, Any]:
        values = self._flags.to_dict()
        enabled = [name for name, value in values.items() if value]
        disabled = [name for name, value in values.items() if not value]
        total = len(fields(FeatureFlags))

        return {
            "enabled": enabled,
            "disabled": disabled,
            "total": total,
            "availability_score": len(enabled) / total * 100,
        }

    def get_degradation_report(self) -> DegradationReport:
        status = self.get_feature_status()
        critical_disabled = [
            feature.value for feature in CRITICAL_FEATURES
            if not self.is_enabled(feature)
        ]

        return DegradationReport(
            deployment_mode=self._deployment_info.mode,
            environment=self._environment,
            critical_features_disabled=critical_disabled,
            total_features_available=len(status["enabled"]),
            availability_percentage=int(round(status["availability_score"])),
            recommended_actions=self._get_recommended_actions(critical_disabled),
            impact=self._assess_impact(critical_disabled),
        )

    # ── Internal helpers ──────────────────────────────────────────────────

    def _get_recommended_actions(self, critical_disabled: List[str]) -> List[str]:
        actions = []

        if Feature.DATABASE.value in critical_disabled:
            actions.append("Configure SUPABASE_URL and SUPABASE_ANON_KEY")

        if Feature.ECOMMERCE.value in critical_disabled:
            actions.append("Configure SWELL_STORE_ID and SWELL_PUBLIC_KEY")

        if not self.is_enabled(Feature.CACHING):
            actions.append("Consider adding Redis caching for improved performance")

        if not self.is_enabled(Feature.ERROR_MONITORING):
            actions.append("Add Sentry monitoring for production error tracking")

        return actions

    @staticmethod
    def _assess_impact(critical_disabled: List[str]) -> DegradationImpact:
        if not critical_disabled:
            return DegradationImpact.NONE

        database_down = Feature.DATABASE.value in critical_disabled
        ecommerce_down = Feature.ECOMMERCE.value in critical_disabled

        if database_down and ecommerce_down:
            return DegradationImpact.CRITICAL
        if database_down or ecommerce_down:
            return DegradationImpact.HIGH
        return DegradationImpact.MEDIUM
