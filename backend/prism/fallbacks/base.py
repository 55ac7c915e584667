"""
Shared behaviour for fallback services: the availability guard, simulated
latency and status reporting.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from prism.fallbacks.errors import FallbackNotActiveError
from prism.platform.deployment_config import DeploymentConfigManager, Service

logger = logging.getLogger(__name__)


class FallbackService:
    """
    Base class for in-memory stand-ins of real backend services.

    Subclasses set `service`, `capabilities` and `limitations`, and call
    `await self._enter(<operation>)` at the top of every public operation.
    """

    service: Service
    display_name: str = ""
    capabilities: List[str] = []
    limitations: List[str] = []
    default_latency_seconds: float = 0.1

    def __init__(self, deployment_config: DeploymentConfigManager, latency_seconds: Optional[float] = None):
        self._deployment_config = deployment_config
        self._latency = (
            self.default_latency_seconds if latency_seconds is None else latency_seconds
        )

    async def _enter(self, operation: str) -> None:
        """Guard and simulated network delay for one operation."""
        if not self.is_using_fallback():
            logger.error(
                "Fallback operation called while real service is available",
                extra={"service": self.service.value, "operation": operation},
            )
            raise FallbackNotActiveError(self.display_name or self.service.value, operation)

        await asyncio.sleep(self._latency)

    def is_using_fallback(self) -> bool:
        return self._deployment_config.should_use_fallback(self.service)

    def get_fallback_status(self) -> Dict[str, Any]:
        """Disclosure block for UI: whether mock mode is active and what it can do."""
        if self._deployment_config.is_service_enabled(self.service):
            reason = "Service temporarily unavailable"
        else:
            reason = "Service not configured"

        return {
            "service": self.service.value,
            "active": self.is_using_fallback(),
            "reason": reason,
            "capabilities": list(self.capabilities),
            "limitations": list(self.limitations),
        }
