"""
End-to-end deployment scenarios through a fully built AppContext.
"""

import asyncio
import time

import pytest

from prism.config.health_thresholds import HealthThresholdsLoader
from prism.context import build_app_context
from prism.fallbacks.database_fallback import DEMO_USER_ID
from prism.fallbacks.errors import FallbackNotActiveError
from prism.monitoring.alerts import AlertNotifier
from prism.platform.environment import Environment, EnvironmentSnapshot
from prism.platform.feature_flags import DeploymentMode


@pytest.fixture
def make_context(tmp_path, make_sampler):
    def _make(latency=0, **values):
        return build_app_context(
            EnvironmentSnapshot(values=values),
            thresholds=HealthThresholdsLoader(str(tmp_path / "absent.yml")),
            sampler=make_sampler(),
            notifier=AlertNotifier(slack_webhook_url=""),
            fallback_latency_seconds=latency,
        )
    return _make


@pytest.mark.asyncio
async def test_nothing_configured_in_development(make_context):
    context = make_context(latency=0.05)
    flags = context.feature_flags

    assert flags.environment == Environment.DEVELOPMENT
    assert flags.get_flags().database is False
    assert flags.get_flags().authentication is False
    assert flags.get_deployment_info().mode == DeploymentMode.MAINTENANCE

    started = time.monotonic()
    profile = await context.database_fallback.get_profile()
    elapsed = time.monotonic() - started

    assert profile.id == DEMO_USER_ID
    assert len(context.database_fallback.profiles) == 1
    assert 0.04 <= elapsed < 1.0


@pytest.mark.asyncio
async def test_database_configured_ecommerce_missing(make_context, database_vars):
    context = make_context(**database_vars)

    assert context.feature_flags.get_deployment_info().mode == DeploymentMode.DEGRADED

    products = await context.ecommerce_fallback.get_products()
    cart = await context.ecommerce_fallback.add_to_cart(products[0].id)
    assert cart.item_count == 1

    with pytest.raises(FallbackNotActiveError):
        await context.database_fallback.get_profile()
    with pytest.raises(FallbackNotActiveError):
        await context.database_fallback.get_test_results()


@pytest.mark.asyncio
async def test_context_shutdown_tears_down_monitor(make_context):
    context = make_context()
    context.health_monitor.start_monitoring()

    context.shutdown()
    context.shutdown()
    await asyncio.sleep(0)

    assert not context.health_monitor.is_running
    assert context.health_monitor.get_alerts() == []
