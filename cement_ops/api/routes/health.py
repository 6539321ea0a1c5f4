"""Health check API routes.

Provides REST API endpoints for health monitoring and readiness checks.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from enum import Enum

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from cement_ops.api.dependencies import ServiceContainer, get_services


# =============================================================================
# Router Configuration
# =============================================================================

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


# =============================================================================
# Enums and Constants
# =============================================================================

class HealthStatus(str, Enum):
    """Health status enum."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class DependencyStatus(str, Enum):
    """Dependency status enum."""

    UP = "up"
    DOWN = "down"
    UNKNOWN = "unknown"


SERVICE_VERSION = os.environ.get("SERVICE_VERSION", "0.1.0")


# =============================================================================
# Response Models
# =============================================================================

class DependencyHealth(BaseModel):
    """Health status for a single dependency.

    Attributes:
        name: Dependency name
        status: Current status
        message: Optional status message
    """

    name: str = Field(..., description="Dependency name")
    status: DependencyStatus = Field(..., description="Current status")
    message: str | None = Field(
        default=None,
        description="Optional status message",
    )


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: HealthStatus = Field(
        default=HealthStatus.HEALTHY,
        description="Overall service status",
    )
    service: str = Field(..., description="Service name")
    version: str = Field(
        default=SERVICE_VERSION,
        description="Service version",
    )
    timestamp: str = Field(
        default_factory=lambda: datetime.now(UTC).isoformat(),
        description="Check timestamp",
    )
    uptime_seconds: float | None = Field(
        default=None,
        description="Service uptime in seconds",
    )
    dependencies: list[DependencyHealth] = Field(
        default_factory=list,
        description="Health status of dependencies",
    )


class ReadinessResponse(BaseModel):
    """Response model for readiness check."""

    ready: bool = Field(
        default=True,
        description="Whether service is ready",
    )
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual check results",
    )


class LivenessResponse(BaseModel):
    """Response model for liveness check."""

    alive: bool = Field(
        default=True,
        description="Whether service is alive",
    )
    timestamp: str = Field(
        default_factory=lambda: datetime.now(UTC).isoformat(),
        description="Check timestamp",
    )


# =============================================================================
# Service Start Time
# =============================================================================

_service_start_time: datetime | None = None


def set_service_start_time(start_time: datetime | None = None) -> None:
    """Set the service start time for uptime calculation."""
    global _service_start_time
    _service_start_time = start_time or datetime.now(UTC)


def get_uptime_seconds() -> float | None:
    if _service_start_time is None:
        return None

    delta = datetime.now(UTC) - _service_start_time
    return delta.total_seconds()


# =============================================================================
# Dependency Checks
# =============================================================================

def check_model_gateway(services: ServiceContainer) -> DependencyHealth:
    """Report whether the model gateway has credentials.

    No request is sent; generate calls are billed.
    """
    settings = services.settings
    if settings.gemini_api_key is None:
        return DependencyHealth(
            name="model-gateway",
            status=DependencyStatus.DOWN,
            message="No API key configured",
        )
    return DependencyHealth(
        name="model-gateway",
        status=DependencyStatus.UP,
        message=settings.gemini_model,
    )


def check_vision(services: ServiceContainer) -> DependencyHealth:
    if services.vision is None:
        return DependencyHealth(name="vision", status=DependencyStatus.DOWN, message="Not configured")
    if services.settings.vision_api_key is None:
        return DependencyHealth(
            name="vision",
            status=DependencyStatus.UNKNOWN,
            message="No API key, fallback annotations in use",
        )
    return DependencyHealth(name="vision", status=DependencyStatus.UP)


def check_telemetry(services: ServiceContainer) -> DependencyHealth:
    records = len(services.history)
    if records == 0:
        return DependencyHealth(
            name="telemetry",
            status=DependencyStatus.UNKNOWN,
            message="No telemetry received yet",
        )
    return DependencyHealth(
        name="telemetry",
        status=DependencyStatus.UP,
        message=f"{records} snapshots in history",
    )


def get_all_dependency_checks(services: ServiceContainer) -> list[DependencyHealth]:
    return [
        check_model_gateway(services),
        check_vision(services),
        check_telemetry(services),
    ]


def calculate_overall_status(dependencies: list[DependencyHealth]) -> HealthStatus:
    """Calculate overall health status from dependencies.

    Args:
        dependencies: List of dependency health checks

    Returns:
        Overall HealthStatus
    """
    if not dependencies:
        return HealthStatus.HEALTHY

    down_count = sum(
        1 for d in dependencies
        if d.status == DependencyStatus.DOWN
    )
    unknown_count = sum(
        1 for d in dependencies
        if d.status == DependencyStatus.UNKNOWN
    )

    if down_count > 0:
        return HealthStatus.UNHEALTHY
    if unknown_count > 0:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


# =============================================================================
# API Endpoints
# =============================================================================

@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns comprehensive health status of the service.",
)
async def health_check(
    services: ServiceContainer = Depends(get_services),
) -> HealthResponse:
    dependencies = get_all_dependency_checks(services)

    return HealthResponse(
        status=calculate_overall_status(dependencies),
        service=services.settings.service_name,
        version=SERVICE_VERSION,
        timestamp=datetime.now(UTC).isoformat(),
        uptime_seconds=get_uptime_seconds(),
        dependencies=dependencies,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Returns whether the service is ready to accept traffic.",
)
async def readiness_check(
    services: ServiceContainer = Depends(get_services),
) -> ReadinessResponse:
    """Kubernetes-style readiness probe.

    The service is ready once the model gateway is configured and no
    pipeline run is blocking new ones.
    """
    checks = {
        "model_gateway": check_model_gateway(services).status != DependencyStatus.DOWN,
        "pipeline_idle": not services.pipeline.running,
    }

    return ReadinessResponse(
        ready=checks["model_gateway"],
        checks=checks,
    )


@router.get(
    "/live",
    response_model=LivenessResponse,
    summary="Liveness check",
    description="Returns whether the service is alive.",
)
async def liveness_check() -> LivenessResponse:
    return LivenessResponse(
        alive=True,
        timestamp=datetime.now(UTC).isoformat(),
    )


__all__ = [
    "DependencyHealth",
    "DependencyStatus",
    "HealthResponse",
    "HealthStatus",
    "LivenessResponse",
    "ReadinessResponse",
    "calculate_overall_status",
    "get_all_dependency_checks",
    "get_uptime_seconds",
    "router",
    "set_service_start_time",
]
