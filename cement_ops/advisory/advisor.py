"""Single-shot advisory features.

Purpose: operator-facing model calls outside the multi-agent pipeline.
- Three recommendations for the latest telemetry snapshot
- Flame metrics from image labels
- Kiln combustion analysis from a full vision result
- A goal-driven single proposal
- Operations chat with live telemetry context

Unlike pipeline stages, these calls have no downstream stage to carry a
ParseError, so an unusable reply raises ModelOutputError.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, ValidationError

from cement_ops.advisory import prompts
from cement_ops.advisory.parser import parse_agent_response
from cement_ops.advisory.schemas import ParseError, Proposal
from cement_ops.clients.gemini import ChatMessage
from cement_ops.clients.vision import summarize_vision_result
from cement_ops.core.exceptions import AdvisorError, ModelOutputError
from cement_ops.core.logging import get_logger


if TYPE_CHECKING:
    from collections.abc import Sequence

    from cement_ops.clients.protocols import (
        ChatModelProtocol,
        ModelGatewayProtocol,
        VisionClientProtocol,
    )
    from cement_ops.telemetry.history import TelemetryHistory
    from cement_ops.telemetry.models import TelemetrySnapshot


logger = get_logger(__name__)


# =============================================================================
# Result Models
# =============================================================================

class FlameAnalysis(BaseModel):
    """Flame metrics inferred from image labels."""

    model_config = ConfigDict(extra="allow")

    flameTemp: float | None = None
    coreBrightness: float | None = None
    thermalUniformity: float | None = None
    turbulenceIndex: float | None = None
    fuelAirBalance: str | None = None
    volatileBurningEfficiency: float | None = None
    combustionHealthScore: float | None = None
    efficiencyScore: float | None = None
    riskLevel: float | None = None
    flameLength_m: float | None = None
    noxPpm: float | None = None
    so2Ppm: float | None = None


class KilnAnalysis(BaseModel):
    """Kiln combustion analysis inferred from a vision result."""

    model_config = ConfigDict(extra="allow")

    kilnOperatingState: str | None = None
    flameTemperature_C: float | None = None
    flameLength_m: float | None = None
    flameStabilityIndex: float | None = None
    thermalUniformity_percent: float | None = None
    combustionEfficiency_percent: float | None = None
    kilnHeatEfficiency_percent: float | None = None
    specificHeatConsumption_kCalPerKgClinker: float | None = None
    co_ppm: float | None = None
    nox_ppm: float | None = None
    so2_ppm: float | None = None
    combustionHealthScore: float | None = None
    operationalRiskLevel: float | None = None
    primaryConcern: str | None = None
    recommendedOperatorAction: str | None = None


class FlameImageAnalysis(BaseModel):
    """Vision result and the kiln analysis derived from it."""

    vision: dict[str, Any]
    analysis: KilnAnalysis
    fallback: bool = False


# =============================================================================
# Plant Advisor
# =============================================================================

class PlantAdvisor:
    """Single-shot advisory calls against the model gateway.

    Example:
        advisor = PlantAdvisor(gateway, vision_client)
        recommendations = await advisor.get_recommendations(history.latest)
    """

    def __init__(
        self,
        gateway: ModelGatewayProtocol,
        vision: VisionClientProtocol | None = None,
        chat_model: ChatModelProtocol | None = None,
    ) -> None:
        self._gateway = gateway
        self._vision = vision
        self._chat_model = chat_model

    async def _generate_json(self, prompt: str, feature: str) -> Any:
        text = await self._gateway.generate(prompt)
        parsed = parse_agent_response(text)
        if isinstance(parsed, ParseError):
            logger.warning("Advisor reply is not valid JSON", feature=feature, error=parsed.error)
            raise ModelOutputError(
                f"The AI model returned an invalid data format for {feature}",
                raw=parsed.raw,
            )
        return parsed

    async def get_recommendations(
        self,
        latest: TelemetrySnapshot,
        vision_labels: Sequence[str] | None = None,
    ) -> list[str]:
        """Three recommendations for the latest snapshot, as plain strings."""
        parsed = await self._generate_json(
            prompts.build_recommendation_prompt(latest, vision_labels),
            "recommendations",
        )
        if not isinstance(parsed, dict):
            raise ModelOutputError("The AI model returned an invalid data format for recommendations")
        return [str(value) for value in parsed.values()]

    async def get_flame_metrics(self, vision_labels: Sequence[str]) -> FlameAnalysis:
        parsed = await self._generate_json(
            prompts.build_flame_metrics_prompt(vision_labels),
            "metrics",
        )
        return self._validate(FlameAnalysis, parsed, "metrics")

    async def get_kiln_analysis(self, vision_result: dict[str, Any]) -> KilnAnalysis:
        summary = summarize_vision_result(vision_result)
        parsed = await self._generate_json(
            prompts.build_kiln_analysis_prompt(summary),
            "kiln analysis",
        )
        return self._validate(KilnAnalysis, parsed, "kiln analysis")

    async def analyze_flame_image(
        self,
        image_bytes: bytes | None = None,
        image_url: str | None = None,
    ) -> FlameImageAnalysis:
        """Annotate a burner-camera image and derive the kiln analysis.

        Raises:
            AdvisorError: If no vision client is configured or no image given
        """
        if self._vision is None:
            raise AdvisorError("No vision client configured")
        if image_bytes is not None:
            vision_result = await self._vision.annotate(image_bytes)
        elif image_url:
            vision_result = await self._vision.annotate_url(image_url)
        else:
            raise AdvisorError("An image or image URL is required")

        analysis = await self.get_kiln_analysis(vision_result)
        return FlameImageAnalysis(
            vision=vision_result,
            analysis=analysis,
            fallback=bool(vision_result.get("_fallback", False)),
        )

    async def get_agent_proposal(self, goal: str, latest: TelemetrySnapshot) -> Proposal:
        """Single proposal for a free-form operator goal."""
        parsed = await self._generate_json(
            prompts.build_goal_proposal_prompt(goal, latest),
            "the agent proposal",
        )
        if not isinstance(parsed, dict):
            raise ModelOutputError("The AI model returned an invalid data format for the agent proposal")

        data = dict(parsed)
        # The older proposal shape used expected_quality_impact
        if "quality_impact" not in data and "expected_quality_impact" in data:
            data["quality_impact"] = data.pop("expected_quality_impact")
        data["id"] = data.get("id") or f"prop-{int(datetime.now(UTC).timestamp() * 1000)}"
        data.setdefault("timestamp", datetime.now(UTC))
        return self._validate(Proposal, data, "the agent proposal")

    async def chat(
        self,
        messages: Sequence[ChatMessage],
        latest: TelemetrySnapshot | None = None,
    ) -> str:
        """Answer the last user turn with live telemetry in context.

        The context is sent as a leading user turn followed by a canned
        assistant acknowledgement, then the conversation so far.
        """
        if self._chat_model is None:
            raise AdvisorError("No chat model configured")
        conversation = [
            ChatMessage(role="user", content=prompts.build_chat_system_prompt(latest)),
            ChatMessage(role="assistant", content=prompts.CHAT_ACKNOWLEDGEMENT),
            *messages,
        ]
        return await self._chat_model.chat(conversation)

    @staticmethod
    def _validate(model: type[BaseModel], data: Any, feature: str) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.warning("Advisor reply failed validation", feature=feature, errors=exc.error_count())
            raise ModelOutputError(
                f"The AI model returned an invalid data format for {feature}"
            ) from exc


# =============================================================================
# Recommendation Cache
# =============================================================================

class RecommendationCache:
    """Latest recommendations, refreshed on an interval.

    Holds the last successful result so API reads never wait on the model.
    """

    def __init__(
        self,
        advisor: PlantAdvisor,
        history: TelemetryHistory,
        interval_seconds: float = 180.0,
    ) -> None:
        self._advisor = advisor
        self._history = history
        self.interval_seconds = interval_seconds
        self.recommendations: list[str] = []
        self.updated_at: datetime | None = None
        self.last_error: str | None = None

    async def refresh(self, vision_labels: Sequence[str] | None = None) -> list[str]:
        """Fetch fresh recommendations for the latest snapshot.

        Returns the cached list unchanged when no telemetry is available or
        the model call fails.
        """
        latest = self._history.latest
        if latest is None:
            logger.debug("Skipping recommendation refresh, no telemetry yet")
            return self.recommendations
        try:
            self.recommendations = await self._advisor.get_recommendations(latest, vision_labels)
        except AdvisorError as exc:
            self.last_error = exc.message
            logger.warning("Recommendation refresh failed", error=exc.message)
            return self.recommendations
        self.updated_at = datetime.now(UTC)
        self.last_error = None
        return self.recommendations

    async def run_periodic(self) -> None:
        """Refresh forever; cancel the task to stop."""
        while True:
            await self.refresh()
            await asyncio.sleep(self.interval_seconds)
