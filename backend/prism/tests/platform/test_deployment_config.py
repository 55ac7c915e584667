"""
Tests for DeploymentConfigManager: per-service config, fallback gating and
aggregate health probes.
"""

import pytest

from prism.platform.deployment_config import (
    CACHE_TTL_SECONDS,
    MEMORY_CACHE_TTL_SECONDS,
    Service,
)


class TestServiceConfig:

    @pytest.mark.parametrize("service", list(Service))
    def test_fallback_mode_is_inverse_of_enabled(self, make_managers, database_vars, service):
        for values in ({}, database_vars):
            _, config = make_managers(**values)
            svc = config.get_service_config(service)
            assert svc.fallback_mode is (not svc.enabled)
            assert config.should_use_fallback(service) is svc.fallback_mode

    def test_identifiers_are_none_when_absent(self, bare_managers):
        _, config = bare_managers
        database = config.get_service_config(Service.DATABASE)

        assert database.config["url"] is None
        assert database.config["anon_key"] is None
        assert database.config["service_key"] is None

    def test_string_service_names_accepted(self, make_managers, ecommerce_vars):
        _, config = make_managers(**ecommerce_vars)

        assert config.is_service_enabled("ecommerce") is True
        assert config.should_use_fallback("database") is True

    def test_unknown_service_raises(self, bare_managers):
        _, config = bare_managers

        with pytest.raises(ValueError):
            config.get_service_config("mainframe")

    def test_cache_ttl_depends_on_redis(self, make_managers, optional_vars):
        _, without = make_managers()
        _, with_redis = make_managers(**optional_vars)

        assert without.get_service_config(Service.CACHE).config["ttl"] == MEMORY_CACHE_TTL_SECONDS
        assert with_redis.get_service_config(Service.CACHE).config["ttl"] == CACHE_TTL_SECONDS

    def test_to_dict_masks_secrets(self, make_managers, database_vars):
        _, config = make_managers(**database_vars)
        data = config.get_service_config(Service.DATABASE).to_dict()

        assert data["config"]["service_key"] is True
        assert "service-key" not in str(data)


class TestAdvisoryFlags:

    def test_mock_preferred_outside_production_even_when_enabled(self, make_managers, database_vars):
        _, config = make_managers(**database_vars)

        assert config.is_service_enabled(Service.DATABASE) is True
        assert config.prefers_mock(Service.DATABASE) is True
        assert config.should_use_fallback(Service.DATABASE) is False

    def test_no_mock_preference_in_production_when_enabled(self, make_managers, database_vars, ecommerce_vars):
        _, config = make_managers(ENV="production", **database_vars, **ecommerce_vars)

        assert config.prefers_mock(Service.DATABASE) is False
        assert config.prefers_mock(Service.ECOMMERCE) is False

    def test_mock_preferred_when_not_configured(self, make_managers):
        _, config = make_managers(ENV="production")

        assert config.prefers_mock(Service.ECOMMERCE) is True


class TestDeploymentConfig:

    def test_production_toggles(self, full_managers):
        _, config = full_managers
        cfg = config.get_config()

        assert cfg.features == {
            "enable_mock_data": False,
            "enable_test_mode": False,
            "enable_debug_logs": False,
            "enable_performance_tracking": False,
        }
        assert cfg.fallbacks["database_failure"] == "readonly"
        assert cfg.fallbacks["ecommerce_failure"] == "readonly"

    def test_development_toggles(self, bare_managers):
        _, config = bare_managers
        cfg = config.get_config()

        assert cfg.features["enable_mock_data"] is True
        assert cfg.features["enable_debug_logs"] is True
        assert cfg.fallbacks["database_failure"] == "mock"
        assert cfg.fallbacks["ecommerce_failure"] == "demo"
        assert cfg.fallbacks["cache_failure"] == "memory"
        assert cfg.fallbacks["notification_failure"] == "email"

    def test_deployment_summary(self, make_managers, database_vars):
        _, config = make_managers(**database_vars)
        summary = config.get_deployment_summary()

        assert summary["mode"] == "degraded"
        assert summary["critical_issues"] == ["ecommerce"]
        assert summary["impact"] == "high"
        assert summary["services_enabled"] == ["database"]
        assert "ecommerce" in summary["fallbacks_active"]
        assert "database" not in summary["fallbacks_active"]


class TestHealthStatus:

    @pytest.mark.asyncio
    async def test_zero_enabled_services(self, bare_managers):
        _, config = bare_managers

        status = await config.get_health_status()

        assert status["score"] == 0
        assert status["overall"] is False
        assert status["mode"] == "maintenance"
        assert all(s["healthy"] is False for s in status["services"])

    @pytest.mark.asyncio
    async def test_all_enabled_and_healthy(self, full_managers):
        _, config = full_managers

        status = await config.get_health_status()

        assert status["score"] == 100
        assert status["overall"] is True
        assert {s["service"] for s in status["services"]} == {s.value for s in Service}

    @pytest.mark.asyncio
    async def test_failing_probe_is_isolated(self, full_managers):
        _, config = full_managers

        async def broken() -> bool:
            raise ConnectionError("probe exploded")

        config.get_service_config(Service.DATABASE).health_check = broken

        status = await config.get_health_status()
        by_name = {s["service"]: s for s in status["services"]}

        assert by_name["database"]["healthy"] is False
        assert by_name["ecommerce"]["healthy"] is True
        assert status["score"] == 80
        assert status["overall"] is True

    @pytest.mark.asyncio
    async def test_probe_raising_before_await_is_isolated(self, full_managers):
        _, config = full_managers

        def broken():
            raise RuntimeError("probe failed to start")

        config.get_service_config(Service.ECOMMERCE).health_check = broken

        status = await config.get_health_status()
        by_name = {s["service"]: s for s in status["services"]}

        assert by_name["ecommerce"]["healthy"] is False
        assert by_name["database"]["healthy"] is True
        assert status["score"] == 80

    @pytest.mark.asyncio
    async def test_non_true_probe_result_is_unhealthy(self, full_managers):
        _, config = full_managers

        async def vague():
            return "ok"

        config.get_service_config(Service.ECOMMERCE).health_check = vague

        status = await config.get_health_status()
        by_name = {s["service"]: s for s in status["services"]}

        assert by_name["ecommerce"]["healthy"] is False

    @pytest.mark.asyncio
    async def test_score_below_threshold(self, make_managers, database_vars, ecommerce_vars):
        _, config = make_managers(**database_vars, **ecommerce_vars)

        async def down() -> bool:
            return False

        config.get_service_config(Service.DATABASE).health_check = down

        status = await config.get_health_status()

        assert status["score"] == 50
        assert status["overall"] is False
