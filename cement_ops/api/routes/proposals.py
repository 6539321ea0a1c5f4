"""Proposal API routes.

Service Endpoints:
- POST /v1/proposals/run - Run the multi-agent pipeline on the live history
- GET /v1/proposals/status - Running flag and steps of the current/last run
- GET /v1/proposals - Pending proposals, newest first
- POST /v1/proposals/{proposal_id}/approve - Apply a proposal
- POST /v1/proposals/{proposal_id}/reject - Discard a proposal
- GET /v1/proposals/history - Operator history log
"""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from cement_ops.advisory.schemas import (
    HistoryEntry,
    PipelineStep,
    Proposal,
    RunFailed,
)
from cement_ops.api.dependencies import ServiceContainer, get_services
from cement_ops.core.exceptions import PipelineRunError
from cement_ops.core.logging import get_logger


logger = get_logger(__name__)


# =============================================================================
# Router Configuration
# =============================================================================

router = APIRouter(
    prefix="/v1/proposals",
    tags=["Proposals"],
)


# =============================================================================
# Response Models
# =============================================================================

class PipelineRunResponse(BaseModel):
    """Result of one completed pipeline run."""

    run_id: str = Field(..., description="Run identifier")
    proposal: Proposal = Field(..., description="Assembled proposal")
    steps: list[PipelineStep] = Field(default_factory=list)
    processing_time_ms: float = Field(default=0.0, description="Run duration in milliseconds")


class PipelineStatusResponse(BaseModel):
    """Observable pipeline state."""

    running: bool = Field(..., description="Whether a run is in progress")
    state: str = Field(..., description="Current pipeline state")
    run_id: str | None = Field(default=None, description="Active run id")
    steps: list[PipelineStep] = Field(default_factory=list)
    last_error: str | None = Field(default=None, description="Error of the last failed run")


class ProposalListResponse(BaseModel):
    proposals: list[Proposal] = Field(default_factory=list)
    total: int = 0


class HistoryResponse(BaseModel):
    entries: list[HistoryEntry] = Field(default_factory=list)
    total: int = 0


# =============================================================================
# API Endpoints
# =============================================================================

@router.post(
    "/run",
    response_model=PipelineRunResponse,
    summary="Run the proposal pipeline",
    responses={
        409: {"description": "A run is already in progress"},
        502: {"description": "Model gateway failure"},
    },
)
async def run_pipeline(
    services: ServiceContainer = Depends(get_services),
) -> PipelineRunResponse:
    """Run all agents on the current history and return the proposal.

    Raises:
        PipelineBusyError: If a run is already in progress
        PipelineRunError: If a stage failed on transport errors
    """
    start_time = time.perf_counter()
    outcome = await services.pipeline.run(services.history.snapshots())
    processing_time = (time.perf_counter() - start_time) * 1000

    if isinstance(outcome, RunFailed):
        raise PipelineRunError(outcome.error, stage=outcome.stage, run_id=outcome.run_id)

    logger.info(
        "Pipeline run served",
        run_id=outcome.run_id,
        processing_time_ms=processing_time,
    )
    return PipelineRunResponse(
        run_id=outcome.run_id,
        proposal=outcome.proposal,
        steps=outcome.steps,
        processing_time_ms=processing_time,
    )


@router.get(
    "/status",
    response_model=PipelineStatusResponse,
    summary="Pipeline status",
)
async def get_pipeline_status(
    services: ServiceContainer = Depends(get_services),
) -> PipelineStatusResponse:
    pipeline = services.pipeline
    return PipelineStatusResponse(
        running=pipeline.running,
        state=pipeline.state.value,
        run_id=pipeline.active_run_id,
        steps=pipeline.steps,
        last_error=pipeline.last_error,
    )


@router.get(
    "",
    response_model=ProposalListResponse,
    summary="List pending proposals",
)
async def list_proposals(
    services: ServiceContainer = Depends(get_services),
) -> ProposalListResponse:
    proposals = services.registry.pending()
    return ProposalListResponse(proposals=proposals, total=len(proposals))


@router.get(
    "/history",
    response_model=HistoryResponse,
    summary="Operator history log",
)
async def get_history(
    services: ServiceContainer = Depends(get_services),
) -> HistoryResponse:
    entries = services.registry.history()
    return HistoryResponse(entries=entries, total=len(entries))


@router.post(
    "/{proposal_id}/approve",
    response_model=HistoryEntry,
    summary="Approve a proposal",
    responses={
        404: {"description": "Proposal not found"},
        409: {"description": "The safety gate rejected the proposal"},
    },
)
async def approve_proposal(
    proposal_id: str,
    services: ServiceContainer = Depends(get_services),
) -> HistoryEntry:
    return services.registry.approve(proposal_id)


@router.post(
    "/{proposal_id}/reject",
    response_model=HistoryEntry,
    summary="Reject a proposal",
    responses={404: {"description": "Proposal not found"}},
)
async def reject_proposal(
    proposal_id: str,
    services: ServiceContainer = Depends(get_services),
) -> HistoryEntry:
    return services.registry.reject(proposal_id)


__all__ = ["router"]
