"""
Tests for the database fallback: seeded patient data, mutations and the
availability guard.
"""

from datetime import date

import pytest

from prism.fallbacks.database_fallback import (
    DEFAULT_TEST_PRICE,
    DEMO_USER_ID,
    DatabaseFallback,
)
from prism.fallbacks.errors import FallbackNotActiveError
from prism.fallbacks.models import AppointmentStatus, TestResultStatus


class TestGuard:

    @pytest.mark.asyncio
    async def test_raises_when_database_configured(self, make_managers, database_vars):
        _, config = make_managers(**database_vars)
        fallback = DatabaseFallback(config, latency_seconds=0)

        with pytest.raises(FallbackNotActiveError) as exc_info:
            await fallback.get_profile()

        assert str(exc_info.value) == "Database service is available - use real implementation"
        assert exc_info.value.to_dict()["operation"] == "get_profile"

    def test_status_block(self, database_fallback):
        status = database_fallback.get_fallback_status()

        assert status["service"] == "database"
        assert status["active"] is True
        assert status["reason"] == "Service not configured"
        assert "Data is not persistent" in status["limitations"]

    def test_default_latency(self, bare_managers):
        _, config = bare_managers
        assert DatabaseFallback(config)._latency == pytest.approx(0.1)


class TestProfile:

    @pytest.mark.asyncio
    async def test_get_profile(self, database_fallback):
        profile = await database_fallback.get_profile()

        assert profile.id == DEMO_USER_ID

    @pytest.mark.asyncio
    async def test_update_profile_ignores_unknown_fields(self, database_fallback):
        profile = await database_fallback.update_profile(
            DEMO_USER_ID, {"full_name": "Renamed", "id": "hijack"},
        )

        assert profile.full_name == "Renamed"
        assert profile.id == DEMO_USER_ID
        assert profile.updated_at >= profile.created_at


class TestTestResults:

    @pytest.mark.asyncio
    async def test_seeded_results(self, database_fallback):
        results = await database_fallback.get_test_results()

        assert [r.id for r in results] == ["result-1", "result-2", "result-3"]
        for result in results:
            assert (result.completed_at is not None) == (result.status == TestResultStatus.COMPLETED)

    @pytest.mark.asyncio
    async def test_results_are_live(self, database_fallback):
        first = await database_fallback.get_test_results()
        await database_fallback.add_test_order({"test_name": "Vitamin D"})
        second = await database_fallback.get_test_results()

        assert first is second
        assert first[0].test_name == "Vitamin D"

    @pytest.mark.asyncio
    async def test_add_test_order_is_always_pending(self, database_fallback):
        result = await database_fallback.add_test_order({
            "test_name": "Lipid Panel",
            "status": "completed",
            "results": {"ldl": 90},
        })

        assert result.status == TestResultStatus.PENDING
        assert result.results is None
        assert result.completed_at is None
        assert result.price == DEFAULT_TEST_PRICE
        assert result.user_id == DEMO_USER_ID

    @pytest.mark.asyncio
    async def test_get_test_result(self, database_fallback):
        assert (await database_fallback.get_test_result("result-2")).test_name == "Hormone Panel"
        assert await database_fallback.get_test_result("missing") is None


class TestAppointments:

    @pytest.mark.asyncio
    async def test_create_is_always_scheduled(self, database_fallback):
        appointment = await database_fallback.create_appointment({
            "appointment_date": "2030-01-15",
            "status": "cancelled",
        })

        assert appointment.status == AppointmentStatus.SCHEDULED
        assert appointment.appointment_date == date(2030, 1, 15)
        assert appointment in await database_fallback.get_appointments()

    @pytest.mark.asyncio
    async def test_update_appointment(self, database_fallback):
        updated = await database_fallback.update_appointment(
            "appt-1", {"status": "completed", "appointment_time": "14:30"},
        )

        assert updated.status == AppointmentStatus.COMPLETED
        assert updated.appointment_time == "14:30"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_update", [
        {"status": "bogus"},
        {"appointment_date": "not-a-date"},
    ])
    async def test_invalid_update_leaves_appointment_untouched(self, database_fallback, bad_update):
        appointment = (await database_fallback.get_appointments())[0]
        before = appointment.to_dict()

        with pytest.raises(ValueError):
            await database_fallback.update_appointment(
                "appt-1", {"location_id": "loc-new", "appointment_time": "08:00", **bad_update},
            )

        assert appointment.to_dict() == before

    @pytest.mark.asyncio
    async def test_update_unknown_appointment(self, database_fallback):
        assert await database_fallback.update_appointment("appt-missing", {"status": "cancelled"}) is None


@pytest.mark.asyncio
async def test_health_insights_summarize_completed_results(database_fallback):
    insights = await database_fallback.get_health_insights()

    assert insights["total_tests"] == 2
    assert {t["id"] for t in insights["recent_tests"]} == {"result-1", "result-2"}
    assert insights["recommendations"]
