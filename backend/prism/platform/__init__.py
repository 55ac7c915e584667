"""
Platform-level modules for capability detection.

This package contains:
- environment: one-shot snapshot of configuration-relevant variables
- feature_flags: feature flags, deployment mode and degradation report
- deployment_config: per-capability service configuration and probes
"""

from prism.platform.environment import (
    Environment,
    EnvironmentSnapshot,
    Platform,
)

from prism.platform.feature_flags import (
    CRITICAL_FEATURES,
    DegradationImpact,
    DegradationReport,
    DeploymentInfo,
    DeploymentMode,
    Feature,
    FeatureFlagManager,
    FeatureFlags,
)

from prism.platform.deployment_config import (
    DeploymentConfig,
    DeploymentConfigManager,
    Service,
    ServiceConfig,
)

__all__ = [
    # Environment
    "Environment",
    "EnvironmentSnapshot",
    "Platform",
    # Feature flags
    "CRITICAL_FEATURES",
    "DegradationImpact",
    "DegradationReport",
    "DeploymentInfo",
    "DeploymentMode",
    "Feature",
    "FeatureFlagManager",
    "FeatureFlags",
    # Deployment config
    "DeploymentConfig",
    "DeploymentConfigManager",
    "Service",
    "ServiceConfig",
]
