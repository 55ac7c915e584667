"""
Database fallback service.

Provides a seeded, in-memory demo patient (profile, lab results and
appointments) when the database is not configured, so portal pages keep
working in degraded deployments.

Data is process-lifetime only. Reads return the live structures: callers
that mutate them mutate the shared dataset.
"""

import logging
import uuid
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from prism.fallbacks.base import FallbackService
from prism.fallbacks.models import (
    Appointment,
    AppointmentStatus,
    Profile,
    TestResult,
    TestResultStatus,
    to_money,
    utc_now,
)
from prism.platform.deployment_config import Service

logger = logging.getLogger(__name__)

DEMO_USER_ID = "mock-user-123"
DEFAULT_LOCATION_ID = "loc-downtown"
DEFAULT_APPOINTMENT_TIME = "09:00"
DEFAULT_TEST_PRICE = Decimal("99.00")

# Fields callers may change through update_profile / update_appointment.
_PROFILE_MUTABLE_FIELDS = {"email", "full_name"}
_APPOINTMENT_MUTABLE_FIELDS = {"location_id", "appointment_date", "appointment_time", "status"}


def _seed_test_results(now) -> List[TestResult]:
    return [
        TestResult(
            id="result-1",
            user_id=DEMO_USER_ID,
            test_name="Complete Blood Count",
            test_category="routine",
            status=TestResultStatus.COMPLETED,
            results={
                "white_blood_cells": {"value": 7.2, "unit": "K/uL", "range": "4.0-11.0", "status": "normal"},
                "red_blood_cells": {"value": 4.5, "unit": "M/uL", "range": "4.2-5.4", "status": "normal"},
                "hemoglobin": {"value": 14.1, "unit": "g/dL", "range": "12.0-16.0", "status": "normal"},
                "platelets": {"value": 280, "unit": "K/uL", "range": "150-450", "status": "normal"},
            },
            ordered_at=now - timedelta(days=7),
            completed_at=now - timedelta(days=5),
            price=Decimal("59.00"),
        ),
        TestResult(
            id="result-2",
            user_id=DEMO_USER_ID,
            test_name="Hormone Panel",
            test_category="hormones",
            status=TestResultStatus.COMPLETED,
            results={
                "testosterone": {"value": 650, "unit": "ng/dL", "range": "300-1000", "status": "normal"},
                "cortisol": {"value": 12.5, "unit": "ug/dL", "range": "6.2-19.4", "status": "normal"},
                "thyroid_tsh": {"value": 2.1, "unit": "mIU/L", "range": "0.4-4.0", "status": "normal"},
            },
            ordered_at=now - timedelta(days=14),
            completed_at=now - timedelta(days=10),
            price=Decimal("89.00"),
        ),
        TestResult(
            id="result-3",
            user_id=DEMO_USER_ID,
            test_name="Comprehensive Metabolic Panel",
            test_category="comprehensive",
            status=TestResultStatus.PENDING,
            results=None,
            ordered_at=now - timedelta(days=2),
            completed_at=None,
            price=Decimal("119.00"),
        ),
    ]


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


class DatabaseFallback(FallbackService):
    """In-memory stand-in for the patient database."""

    service = Service.DATABASE
    display_name = "Database"
    default_latency_seconds = 0.1
    capabilities = [
        "View mock test results",
        "Browse sample health data",
        "Test appointment scheduling",
        "Explore UI functionality",
    ]
    limitations = [
        "Data is not persistent",
        "Real user accounts unavailable",
        "Payment processing disabled",
        "Email notifications disabled",
    ]

    def __init__(self, deployment_config, latency_seconds: Optional[float] = None):
        super().__init__(deployment_config, latency_seconds)
        now = utc_now()

        self.profiles: List[Profile] = [
            Profile(
                id=DEMO_USER_ID,
                email="demo@prismhealthlab.com",
                full_name="Demo Patient",
                created_at=now,
                updated_at=now,
            )
        ]
        self.test_results: List[TestResult] = _seed_test_results(now)
        self.appointments: List[Appointment] = [
            Appointment(
                id="appt-1",
                user_id=DEMO_USER_ID,
                location_id=DEFAULT_LOCATION_ID,
                appointment_date=(now + timedelta(days=3)).date(),
                appointment_time=DEFAULT_APPOINTMENT_TIME,
                status=AppointmentStatus.SCHEDULED,
                created_at=now,
            )
        ]

    # ── Profile ───────────────────────────────────────────────────────────

    async def get_profile(self, user_id: Optional[str] = None) -> Optional[Profile]:
        """Return the demo profile. The demo dataset has a single patient."""
        await self._enter("get_profile")
        return self.profiles[0] if self.profiles else None

    async def update_profile(self, user_id: Optional[str], updates: Mapping[str, Any]) -> Optional[Profile]:
        await self._enter("update_profile")

        profile = self.profiles[0] if self.profiles else None
        if profile is None:
            return None

        for key, value in updates.items():
            if key in _PROFILE_MUTABLE_FIELDS:
                setattr(profile, key, value)
        profile.updated_at = utc_now()

        logger.debug("Demo profile updated", extra={"fields": sorted(set(updates) & _PROFILE_MUTABLE_FIELDS)})
        return profile

    # ── Test results ──────────────────────────────────────────────────────

    async def get_test_results(self, user_id: Optional[str] = None) -> List[TestResult]:
        """Return the live list of demo results. New orders are inserted at the front."""
        await self._enter("get_test_results")
        return self.test_results

    async def get_test_result(self, result_id: str) -> Optional[TestResult]:
        await self._enter("get_test_result")
        return next((r for r in self.test_results if r.id == result_id), None)

    async def add_test_order(self, test_data: Mapping[str, Any]) -> TestResult:
        """Create a new pending test order. Results arrive later, never here."""
        await self._enter("add_test_order")

        price = test_data.get("price")
        result = TestResult(
            id=f"result-{uuid.uuid4().hex[:12]}",
            user_id=test_data.get("user_id") or DEMO_USER_ID,
            test_name=test_data.get("test_name") or "Unknown Test",
            test_category=test_data.get("test_category") or "other",
            status=TestResultStatus.PENDING,
            results=None,
            ordered_at=utc_now(),
            completed_at=None,
            price=to_money(price) if price else DEFAULT_TEST_PRICE,
        )

        self.test_results.insert(0, result)
        logger.info("Demo test order created", extra={"result_id": result.id, "test_name": result.test_name})
        return result

    # ── Appointments ──────────────────────────────────────────────────────

    async def get_appointments(self, user_id: Optional[str] = None) -> List[Appointment]:
        await self._enter("get_appointments")
        return self.appointments

    async def create_appointment(self, appointment_data: Mapping[str, Any]) -> Appointment:
        await self._enter("create_appointment")

        now = utc_now()
        raw_date = appointment_data.get("appointment_date")
        appointment = Appointment(
            id=f"appt-{uuid.uuid4().hex[:12]}",
            user_id=appointment_data.get("user_id") or DEMO_USER_ID,
            location_id=appointment_data.get("location_id") or DEFAULT_LOCATION_ID,
            appointment_date=_parse_date(raw_date) if raw_date else now.date(),
            appointment_time=appointment_data.get("appointment_time") or DEFAULT_APPOINTMENT_TIME,
            status=AppointmentStatus.SCHEDULED,
            created_at=now,
        )

        self.appointments.append(appointment)
        logger.info("Demo appointment created", extra={"appointment_id": appointment.id})
        return appointment

    async def update_appointment(
        self,
        appointment_id: str,
        updates: Mapping[str, Any],
    ) -> Optional[Appointment]:
        """Apply updates in place. Unknown appointment ids return None."""
        await self._enter("update_appointment")

        appointment = next((a for a in self.appointments if a.id == appointment_id), None)
        if appointment is None:
            return None

        # Convert everything before touching the live record.
        changes: Dict[str, Any] = {}
        for key, value in updates.items():
            if key not in _APPOINTMENT_MUTABLE_FIELDS:
                continue
            if key == "status":
                value = AppointmentStatus(value)
            elif key == "appointment_date":
                value = _parse_date(value)
            changes[key] = value

        for key, value in changes.items():
            setattr(appointment, key, value)
        return appointment

    # ── Insights ──────────────────────────────────────────────────────────

    async def get_health_insights(self, user_id: Optional[str] = None) -> Dict[str, Any]:
        await self._enter("get_health_insights")

        completed = [r for r in self.test_results if r.status == TestResultStatus.COMPLETED]
        return {
            "total_tests": len(completed),
            "recent_tests": [r.to_dict() for r in completed[:3]],
            "health_score": 85,
            "trends": {
                "improving": ["white_blood_cells", "hemoglobin"],
                "stable": ["platelets", "thyroid_tsh"],
                "monitoring": ["cortisol"],
            },
            "recommendations": [
                "Continue current exercise routine",
                "Consider vitamin D supplementation",
                "Schedule follow-up hormone panel in 3 months",
            ],
        }
