"""
FastAPI application entry point for the Prism portal API.

Capability detection runs once at startup. Missing backend configuration is
not fatal: the app starts in degraded or maintenance mode and serves the
fallback routes instead.
"""

import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from prism.api.routes import fallbacks
from prism.api.routes import health
from prism.context import build_app_context

# Configure structured logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _monitor_enabled() -> bool:
    return os.getenv("HEALTH_MONITOR_ENABLED", "true").strip().lower() not in ("0", "false", "no")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting Prism API")

    context = build_app_context()
    app.state.context = context

    summary = context.deployment_config.get_deployment_summary()
    if summary["critical_issues"]:
        logger.warning(
            "Critical capabilities not configured - serving fallbacks",
            extra={
                "critical_issues": summary["critical_issues"],
                "mode": summary["mode"],
            },
        )
    else:
        logger.info("All critical capabilities configured", extra={"mode": summary["mode"]})

    if _monitor_enabled():
        context.health_monitor.start_monitoring()
    else:
        logger.info("Health monitoring disabled via HEALTH_MONITOR_ENABLED")

    yield

    # Shutdown
    logger.info("Shutting down Prism API")
    context.shutdown()


# Create FastAPI app
app = FastAPI(
    title="Prism API",
    description="Runtime capability detection, fallback services and health monitoring",
    version="1.0.0",
    lifespan=lifespan
)

cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(fallbacks.router)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions with proper logging."""
    logger.error(
        "Unhandled exception",
        extra={
            "error": str(exc),
            "error_type": type(exc).__name__,
            "path": request.url.path
        },
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
