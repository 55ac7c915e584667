"""
Health API routes.

Provides endpoints for:
- System health report (metrics rollup, alerts, recommendations)
- Per-service health
- Deployment probe status, summary and degradation report
- Feature flags
- Alert acknowledgement
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from prism.api.dependencies import get_app_context
from prism.context import AppContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/health", tags=["health"])


# =============================================================================
# Request / Response Models
# =============================================================================

class AcknowledgeAlertRequest(BaseModel):
    """Acknowledge the alert raised at this timestamp."""
    timestamp: str = Field(description="ISO 8601 timestamp exactly as returned by the API")


class AcknowledgeAlertResponse(BaseModel):
    acknowledged: bool
    timestamp: str


class ClearAcknowledgedResponse(BaseModel):
    removed: int


class FeaturesResponse(BaseModel):
    flags: Dict[str, bool]
    deployment: Dict[str, Any]
    status: Dict[str, Any]


# =============================================================================
# Routes
# =============================================================================

@router.get("/system")
async def get_system_health(context: AppContext = Depends(get_app_context)):
    """
    Full system health report.

    Includes the per-service rollup, deployment block, headline performance
    numbers, the 10 most recent alerts and recommended actions.
    """
    return await context.health_monitor.get_system_health()


@router.get("/services/{service}")
async def get_service_health(service: str, context: AppContext = Depends(get_app_context)):
    report = await context.health_monitor.get_service_health(service)
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown service: {service}",
        )
    return report


@router.get("/status")
async def get_health_status(context: AppContext = Depends(get_app_context)):
    """Run the deployment health probes now."""
    return await context.deployment_config.get_health_status()


@router.get("/deployment")
async def get_deployment_summary(context: AppContext = Depends(get_app_context)):
    return context.deployment_config.get_deployment_summary()


@router.get("/degradation")
async def get_degradation_report(context: AppContext = Depends(get_app_context)):
    return context.feature_flags.get_degradation_report().to_dict()


@router.get("/features", response_model=FeaturesResponse)
async def get_features(context: AppContext = Depends(get_app_context)):
    flags = context.feature_flags
    return FeaturesResponse(
        flags=flags.get_flags().to_dict(),
        deployment=flags.get_deployment_info().to_dict(),
        status=flags.get_feature_status(),
    )


@router.get("/alerts")
async def get_alerts(
    limit: Optional[int] = Query(default=None, ge=1),
    context: AppContext = Depends(get_app_context),
) -> List[Dict[str, Any]]:
    return [a.to_dict() for a in context.health_monitor.get_alerts(limit)]


@router.post("/alerts/acknowledge", response_model=AcknowledgeAlertResponse)
async def acknowledge_alert(
    body: AcknowledgeAlertRequest,
    context: AppContext = Depends(get_app_context),
):
    """Acknowledge one alert. Unknown timestamps report acknowledged=false."""
    acknowledged = context.health_monitor.acknowledge_alert(body.timestamp)
    logger.info(
        "Alert acknowledge requested",
        extra={"timestamp": body.timestamp, "acknowledged": acknowledged},
    )
    return AcknowledgeAlertResponse(acknowledged=acknowledged, timestamp=body.timestamp)


@router.delete("/alerts/acknowledged", response_model=ClearAcknowledgedResponse)
async def clear_acknowledged_alerts(context: AppContext = Depends(get_app_context)):
    return ClearAcknowledgedResponse(removed=context.health_monitor.clear_acknowledged_alerts())
