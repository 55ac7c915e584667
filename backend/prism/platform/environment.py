"""
Environment snapshot for capability detection.

All environment-driven branching in the platform layer reads from a single
EnvironmentSnapshot built once at process start. Managers receive the
snapshot in their constructor, so tests can hand one in directly instead of
mutating os.environ.

Usage:
    from prism.platform.environment import EnvironmentSnapshot

    snapshot = EnvironmentSnapshot.from_environ()
    snapshot.environment       # Environment.DEVELOPMENT
    snapshot.get("SUPABASE_URL")
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    """Deployment environment."""
    DEVELOPMENT = "development"
    PREVIEW = "preview"
    PRODUCTION = "production"


class Platform(str, Enum):
    """Hosting platform the process runs on."""
    LOCAL = "local"
    VERCEL = "vercel"
    RENDER = "render"
    OTHER = "other"


# Every variable the platform layer consults. Anything else in the process
# environment is ignored.
TRACKED_VARIABLES = (
    "DEPLOYMENT_ENV",
    "ENV",
    "VERCEL",
    "RENDER",
    "APP_VERSION",
    "FEATURES_AVAILABLE",
    # Database (Supabase)
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    # Commerce engine (Swell)
    "SWELL_STORE_ID",
    "SWELL_PUBLIC_KEY",
    "SWELL_SECRET_KEY",
    # Cache (Upstash Redis)
    "UPSTASH_REDIS_REST_URL",
    "UPSTASH_REDIS_REST_TOKEN",
    # Push notifications
    "VAPID_PUBLIC_KEY",
    "VAPID_PRIVATE_KEY",
    # Error monitoring
    "SENTRY_DSN",
    # Health alert forwarding
    "HEALTH_ALERT_SLACK_WEBHOOK_URL",
)

DEFAULT_APP_VERSION = "1.0.0"


@dataclass(frozen=True)
class EnvironmentSnapshot:
    """
    Immutable view of the configuration-relevant environment.

    Empty strings are treated as absent, matching how deploy platforms
    render unset secrets.
    """
    values: Mapping[str, str] = field(default_factory=dict)
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        cleaned = {
            key: value
            for key, value in dict(self.values).items()
            if value is not None and value != ""
        }
        object.__setattr__(self, "values", MappingProxyType(cleaned))

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "EnvironmentSnapshot":
        """Capture the tracked variables from a mapping (default: os.environ)."""
        source = os.environ if environ is None else environ
        values = {name: source[name] for name in TRACKED_VARIABLES if name in source}
        logger.debug(
            "Captured environment snapshot",
            extra={"variables_present": sorted(k for k, v in values.items() if v)},
        )
        return cls(values=values)

    def get(self, name: str) -> Optional[str]:
        return self.values.get(name)

    def has(self, name: str) -> bool:
        return name in self.values

    @property
    def environment(self) -> Environment:
        """
        Resolve the deployment environment.

        Explicit DEPLOYMENT_ENV wins, then ENV=production, then development.
        """
        override = (self.get("DEPLOYMENT_ENV") or "").strip().lower()
        if override in {e.value for e in Environment}:
            return Environment(override)

        if (self.get("ENV") or "").strip().lower() == Environment.PRODUCTION.value:
            return Environment.PRODUCTION

        return Environment.DEVELOPMENT

    @property
    def platform(self) -> Platform:
        if self.get("VERCEL") == "1":
            return Platform.VERCEL
        if (self.get("RENDER") or "").lower() in ("1", "true"):
            return Platform.RENDER
        if self.environment == Environment.DEVELOPMENT:
            return Platform.LOCAL
        return Platform.OTHER

    @property
    def app_version(self) -> str:
        return self.get("APP_VERSION") or DEFAULT_APP_VERSION
