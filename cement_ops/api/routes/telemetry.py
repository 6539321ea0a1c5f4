"""Telemetry API routes.

Service Endpoints:
- POST /v1/telemetry - Append a snapshot to the store (and live history)
- GET /v1/telemetry/history - Most-recent-first history
- GET /v1/telemetry/latest - Latest snapshot
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from cement_ops.api.dependencies import ServiceContainer, get_services
from cement_ops.core.logging import get_logger
from cement_ops.telemetry.models import TelemetrySnapshot


logger = get_logger(__name__)


# =============================================================================
# Router Configuration
# =============================================================================

router = APIRouter(
    prefix="/v1/telemetry",
    tags=["Telemetry"],
)


# =============================================================================
# Response Models
# =============================================================================

class TelemetryAppendResponse(BaseModel):
    """Response after storing a snapshot."""

    id: str = Field(..., description="Document id assigned by the store")
    history_size: int = Field(..., description="Snapshots now in the live history")


class TelemetryHistoryResponse(BaseModel):
    """Most-recent-first telemetry history."""

    snapshots: list[TelemetrySnapshot] = Field(default_factory=list)
    total: int = Field(default=0, description="Number of snapshots returned")
    window: int = Field(..., description="Configured history window")


# =============================================================================
# API Endpoints
# =============================================================================

@router.post(
    "",
    response_model=TelemetryAppendResponse,
    status_code=201,
    summary="Append a telemetry snapshot",
)
async def append_telemetry(
    snapshot: TelemetrySnapshot,
    services: ServiceContainer = Depends(get_services),
) -> TelemetryAppendResponse:
    """Store a snapshot; the store subscription pushes it into the history."""
    document_id = await services.store.append(snapshot)
    logger.debug("Telemetry snapshot received", document_id=document_id)
    return TelemetryAppendResponse(id=document_id, history_size=len(services.history))


@router.get(
    "/history",
    response_model=TelemetryHistoryResponse,
    summary="Live telemetry history",
)
async def get_telemetry_history(
    limit: int | None = Query(default=None, ge=1, description="Maximum snapshots to return"),
    services: ServiceContainer = Depends(get_services),
) -> TelemetryHistoryResponse:
    snapshots = services.history.snapshots(limit)
    return TelemetryHistoryResponse(
        snapshots=snapshots,
        total=len(snapshots),
        window=services.history.window,
    )


@router.get(
    "/latest",
    response_model=TelemetrySnapshot,
    summary="Latest telemetry snapshot",
    responses={404: {"description": "No telemetry received yet"}},
)
async def get_latest_telemetry(
    services: ServiceContainer = Depends(get_services),
) -> TelemetrySnapshot:
    latest = services.history.latest
    if latest is None:
        raise HTTPException(status_code=404, detail="No telemetry received yet")
    return latest


__all__ = ["router"]
