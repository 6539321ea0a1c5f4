"""Single-shot advisory API routes.

Service Endpoints:
- POST /v1/insights/recommendations - Three recommendations for the latest snapshot
- GET /v1/insights/recommendations - Last background-refreshed recommendations
- POST /v1/insights/flame-metrics - Flame metrics from image labels
- POST /v1/insights/flame-analysis - Vision annotation plus kiln analysis
- POST /v1/insights/agent-proposal - Goal-driven single proposal
- POST /v1/insights/chat - Operations chat with telemetry context
"""

from __future__ import annotations

import base64
import binascii
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from cement_ops.advisory.advisor import FlameAnalysis, FlameImageAnalysis
from cement_ops.advisory.schemas import Proposal
from cement_ops.api.dependencies import ServiceContainer, get_services
from cement_ops.clients.gemini import ChatMessage
from cement_ops.telemetry.models import TelemetrySnapshot


# =============================================================================
# Router Configuration
# =============================================================================

router = APIRouter(
    prefix="/v1/insights",
    tags=["Insights"],
)


# =============================================================================
# Request/Response Models
# =============================================================================

class RecommendationRequest(BaseModel):
    vision_labels: list[str] = Field(
        default_factory=list,
        description="Flame image labels to include as context",
    )


class RecommendationResponse(BaseModel):
    recommendations: list[str] = Field(default_factory=list)
    updated_at: datetime | None = Field(default=None, description="When they were generated")


class FlameMetricsRequest(BaseModel):
    vision_labels: list[str] = Field(..., min_length=1, description="Image labels")


class FlameAnalysisRequest(BaseModel):
    """Burner-camera image, inline (base64) or by URL."""

    image_base64: str | None = Field(default=None, description="Base64-encoded image bytes")
    image_url: str | None = Field(default=None, description="Image URL to download")


class AgentProposalRequest(BaseModel):
    goal: str = Field(..., min_length=1, description="Operator goal for the agent")


class ChatRequest(BaseModel):
    messages: list[ChatMessage] = Field(..., min_length=1, description="Conversation so far")


class ChatResponse(BaseModel):
    reply: str


# =============================================================================
# Helpers
# =============================================================================

def _require_latest(services: ServiceContainer) -> TelemetrySnapshot:
    latest = services.history.latest
    if latest is None:
        raise HTTPException(status_code=404, detail="No telemetry received yet")
    return latest


def _decode_image(encoded: str) -> bytes:
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=400, detail="image_base64 is not valid base64") from exc


# =============================================================================
# API Endpoints
# =============================================================================

@router.post(
    "/recommendations",
    response_model=RecommendationResponse,
    summary="Generate recommendations",
    responses={404: {"description": "No telemetry received yet"}},
)
async def generate_recommendations(
    request: RecommendationRequest,
    services: ServiceContainer = Depends(get_services),
) -> RecommendationResponse:
    latest = _require_latest(services)
    recommendations = await services.advisor.get_recommendations(latest, request.vision_labels)
    return RecommendationResponse(recommendations=recommendations, updated_at=datetime.now().astimezone())


@router.get(
    "/recommendations",
    response_model=RecommendationResponse,
    summary="Cached recommendations",
)
async def get_cached_recommendations(
    services: ServiceContainer = Depends(get_services),
) -> RecommendationResponse:
    cache = services.recommendations
    return RecommendationResponse(recommendations=cache.recommendations, updated_at=cache.updated_at)


@router.post(
    "/flame-metrics",
    response_model=FlameAnalysis,
    summary="Flame metrics from image labels",
)
async def flame_metrics(
    request: FlameMetricsRequest,
    services: ServiceContainer = Depends(get_services),
) -> FlameAnalysis:
    return await services.advisor.get_flame_metrics(request.vision_labels)


@router.post(
    "/flame-analysis",
    response_model=FlameImageAnalysis,
    summary="Kiln combustion analysis from a flame image",
)
async def flame_analysis(
    request: FlameAnalysisRequest,
    services: ServiceContainer = Depends(get_services),
) -> FlameImageAnalysis:
    if request.image_base64:
        return await services.advisor.analyze_flame_image(
            image_bytes=_decode_image(request.image_base64)
        )
    if request.image_url:
        return await services.advisor.analyze_flame_image(image_url=request.image_url)
    raise HTTPException(status_code=400, detail="Provide image_base64 or image_url")


@router.post(
    "/agent-proposal",
    response_model=Proposal,
    summary="Goal-driven single proposal",
    responses={404: {"description": "No telemetry received yet"}},
)
async def agent_proposal(
    request: AgentProposalRequest,
    services: ServiceContainer = Depends(get_services),
) -> Proposal:
    latest = _require_latest(services)
    return await services.advisor.get_agent_proposal(request.goal, latest)


@router.post(
    "/chat",
    response_model=ChatResponse,
    summary="Operations chat",
)
async def chat(
    request: ChatRequest,
    services: ServiceContainer = Depends(get_services),
) -> ChatResponse:
    reply = await services.advisor.chat(request.messages, services.history.latest)
    return ChatResponse(reply=reply)


__all__ = ["router"]
