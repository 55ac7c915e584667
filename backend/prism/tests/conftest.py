"""
Root test configuration and fixtures.

Snapshots are built directly from dicts so no test depends on (or mutates)
os.environ. Fallback services are constructed with zero latency.
"""

from typing import Dict, Optional, Tuple

import pytest

from prism.fallbacks.database_fallback import DatabaseFallback
from prism.fallbacks.ecommerce_fallback import EcommerceFallback
from prism.monitoring.metrics import MetricDefinition
from prism.platform.deployment_config import DeploymentConfigManager
from prism.platform.environment import EnvironmentSnapshot
from prism.platform.feature_flags import FeatureFlagManager

DATABASE_VARS = {
    "SUPABASE_URL": "https://demo.supabase.co",
    "SUPABASE_ANON_KEY": "anon-key",
    "SUPABASE_SERVICE_ROLE_KEY": "service-key",
}

ECOMMERCE_VARS = {
    "SWELL_STORE_ID": "demo-store",
    "SWELL_PUBLIC_KEY": "pk_demo",
    "SWELL_SECRET_KEY": "sk_demo",
}

OPTIONAL_VARS = {
    "UPSTASH_REDIS_REST_URL": "https://demo.upstash.io",
    "UPSTASH_REDIS_REST_TOKEN": "redis-token",
    "VAPID_PUBLIC_KEY": "vapid-public",
    "VAPID_PRIVATE_KEY": "vapid-private",
    "SENTRY_DSN": "https://key@sentry.io/1",
}


class FixedMetricSampler:
    """Returns configured values per (group, metric name); everything else is `default`."""

    def __init__(self, values: Optional[Dict[Tuple[str, str], float]] = None, default: float = 0.0):
        self.values = dict(values or {})
        self.default = default
        self.calls = 0

    def sample(self, group: str, definition: MetricDefinition) -> float:
        self.calls += 1
        return self.values.get((group, definition.name), self.default)


def build_managers(**values) -> Tuple[FeatureFlagManager, DeploymentConfigManager]:
    snapshot = EnvironmentSnapshot(values=values)
    flags = FeatureFlagManager(snapshot)
    return flags, DeploymentConfigManager(flags, snapshot)


@pytest.fixture
def make_snapshot():
    """Factory for snapshots from keyword variables."""
    def _make(**values) -> EnvironmentSnapshot:
        return EnvironmentSnapshot(values=values)
    return _make


@pytest.fixture
def bare_managers():
    """Development deployment with nothing configured (maintenance mode)."""
    return build_managers()


@pytest.fixture
def full_managers():
    """Production deployment with every capability configured."""
    return build_managers(ENV="production", **DATABASE_VARS, **ECOMMERCE_VARS, **OPTIONAL_VARS)


@pytest.fixture
def database_fallback(bare_managers):
    _, config = bare_managers
    return DatabaseFallback(config, latency_seconds=0)


@pytest.fixture
def ecommerce_fallback(bare_managers):
    _, config = bare_managers
    return EcommerceFallback(config, latency_seconds=0)


@pytest.fixture
def fixed_sampler():
    return FixedMetricSampler()


@pytest.fixture
def make_managers():
    """Factory: keyword environment variables -> (flags, deployment config)."""
    return build_managers


@pytest.fixture
def make_sampler():
    return FixedMetricSampler


@pytest.fixture
def database_vars():
    return dict(DATABASE_VARS)


@pytest.fixture
def ecommerce_vars():
    return dict(ECOMMERCE_VARS)


@pytest.fixture
def optional_vars():
    return dict(OPTIONAL_VARS)
