"""Prompt builders.

Every builder is a pure function: identical input renders an identical
prompt. Input data is serialized with ``json.dumps(indent=2)`` so key order
follows the insertion order of the source objects.

Stage prompts follow one layout:
    1. fixed persona preamble for the stage
    2. the stage input as JSON
    3. an instruction to return ONLY a JSON object of the documented shape
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from cement_ops.advisory.schemas import result_to_jsonable
from cement_ops.core.constants import StageName
from cement_ops.telemetry.models import TelemetrySnapshot


if TYPE_CHECKING:
    from collections.abc import Sequence

    from cement_ops.advisory.schemas import AgentResult
    from cement_ops.clients.vision import VisionSummary


def to_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def serialize_history(history: Sequence[TelemetrySnapshot | dict[str, Any]]) -> list[dict[str, Any]]:
    """Render snapshots for prompt inclusion, preserving order."""
    return [
        snapshot.to_prompt_dict() if isinstance(snapshot, TelemetrySnapshot) else dict(snapshot)
        for snapshot in history
    ]


# =============================================================================
# Stage Catalogue
# =============================================================================

FINDINGS_SHAPE = '{ "issues": [], "observations": [] }'

OPTIMIZATION_SHAPE = """{
  "action": "",
  "expected_energy_delta_kwh_ton": -3.0,
  "confidence": 0.8,
  "quality_impact": "negligible"
}"""

SAFETY_SHAPE = """{
  "risk_level": "low",
  "decision": "approved",
  "reason": ""
}"""


@dataclass(frozen=True)
class SubAgentPersona:
    """Persona preamble of one telemetry sub-agent."""

    role: str
    focus: str


SUB_AGENT_PERSONAS: dict[StageName, SubAgentPersona] = {
    StageName.KILN: SubAgentPersona(
        role="You are a Kiln Performance Expert.",
        focus=(
            "Focus on kiln temperature stability, TSR, and flame stability.\n\n"
            "Analyze the historical telemetry data for trends and patterns:"
        ),
    ),
    StageName.RAW_MILL: SubAgentPersona(
        role="You are a Raw Mill Specialist.",
        focus="Analyze power vs throughput and feed stability over time.",
    ),
    StageName.CEMENT_MILL: SubAgentPersona(
        role="You are a Cement Mill Optimization Expert.",
        focus="Analyze separator efficiency and grinding trends over time.",
    ),
    StageName.ENERGY: SubAgentPersona(
        role="You are an Energy Efficiency Auditor.",
        focus="Analyze kWh/ton and abnormal power draw patterns over time.",
    ),
}

STAGE_OUTPUT_SHAPES: dict[StageName, str] = {
    StageName.KILN: FINDINGS_SHAPE,
    StageName.RAW_MILL: FINDINGS_SHAPE,
    StageName.CEMENT_MILL: FINDINGS_SHAPE,
    StageName.ENERGY: FINDINGS_SHAPE,
    StageName.TELEMETRY_SUPER: FINDINGS_SHAPE,
    StageName.OPTIMIZATION: OPTIMIZATION_SHAPE,
    StageName.SAFETY: SAFETY_SHAPE,
}


def build_sub_agent_prompt(
    stage: StageName,
    history: Sequence[TelemetrySnapshot | dict[str, Any]],
) -> str:
    """Prompt for one telemetry sub-agent (kiln, rawMill, cementMill, energy)."""
    persona = SUB_AGENT_PERSONAS[stage]
    return (
        f"{persona.role}\n"
        f"{persona.focus}\n\n"
        "Telemetry History (most recent first):\n"
        f"{to_json(serialize_history(history))}\n\n"
        "Return JSON ONLY:\n"
        f"{FINDINGS_SHAPE}\n"
    )


def build_super_agent_prompt(outputs: Sequence[Any]) -> str:
    """Prompt merging the four sub-agent outputs (catalogue order)."""
    return (
        "You are the Telemetry Super Agent.\n"
        "Merge, deduplicate, and prioritize issues.\n\n"
        "Inputs:\n"
        f"{to_json([result_to_jsonable(output) for output in outputs])}\n\n"
        "Return JSON ONLY:\n"
        f"{FINDINGS_SHAPE}\n"
    )


def build_optimization_prompt(analysis: AgentResult) -> str:
    """Prompt asking for ONE actionable optimization from the merged analysis."""
    return (
        "You are a Cement Plant Optimization Expert.\n\n"
        "Based on the analysis, propose ONE actionable optimization.\n\n"
        "Analysis:\n"
        f"{to_json(result_to_jsonable(analysis))}\n\n"
        "Return JSON ONLY:\n"
        f"{OPTIMIZATION_SHAPE}\n"
    )


def build_safety_prompt(proposal: AgentResult) -> str:
    """Prompt for the safety gate reviewing the optimization output."""
    return (
        "You are the Safety & Quality Assurance Guardian.\n"
        "Decide whether the proposal can be applied: approve it, escalate it "
        "to an operator, or reject it.\n\n"
        "Proposal:\n"
        f"{to_json(result_to_jsonable(proposal))}\n\n"
        "Return JSON ONLY:\n"
        f"{SAFETY_SHAPE}\n"
    )


def build_repair_prompt(stage: StageName, invalid_text: str | None) -> str:
    """Follow-up prompt asking the model to fix a reply that did not parse."""
    return (
        "Your previous reply could not be parsed as JSON.\n\n"
        "Previous reply:\n"
        f"{invalid_text or ''}\n\n"
        "Rewrite it as a single, minified JSON object with exactly this shape "
        "and no text or Markdown before or after it:\n"
        f"{STAGE_OUTPUT_SHAPES[stage]}\n"
    )


# =============================================================================
# Single-shot Advisor Prompts
# =============================================================================

def _format_latest(latest: TelemetrySnapshot) -> str:
    return (
        f"- Kiln Temperature: {latest.kiln_temp_c:.2f}°C\n"
        f"- Mill Power: {latest.mill_power_kw:.2f} kW\n"
        f"- Mill Throughput: {latest.mill_throughput_tph:.2f} tph\n"
        f"- Energy Efficiency: {latest.energy_per_ton_kwh:.2f} kWh/ton\n"
        f"- Separator Efficiency: {latest.separator_efficiency * 100:.1f}%\n"
        f"- Thermal Substitution Rate: {latest.thermal_substitution_rate:.1f}%\n"
    )


def build_recommendation_prompt(
    latest: TelemetrySnapshot,
    vision_labels: Sequence[str] | None = None,
) -> str:
    """Prompt for three actionable recommendations on the latest reading."""
    vision_context = ""
    if vision_labels:
        vision_context = (
            "The flame image analysis detected the following labels: "
            f"{', '.join(vision_labels)}."
        )
    return (
        "As an expert in cement plant operations, provide 3 specific, actionable "
        "recommendations for the following situation.\n"
        f"- Kiln Temperature: {latest.kiln_temp_c:.2f}°C\n"
        f"- Mill Power: {latest.mill_power_kw:.2f} kW\n"
        f"- Mill Throughput: {latest.mill_throughput_tph:.2f} tph\n"
        f"- Vision Context: {vision_context}\n\n"
        'Return the data as a single, minified JSON object with three keys: "rec1", '
        '"rec2", and "rec3". Do not include any text or markdown formatting before '
        "or after the JSON object.\n\n"
        "Example JSON structure:\n"
        '{"rec1":"Recommendation 1 text.","rec2":"Recommendation 2 text.",'
        '"rec3":"Recommendation 3 text."}\n\n'
        "Based on the data, generate the JSON object:"
    )


def build_flame_metrics_prompt(vision_labels: Sequence[str]) -> str:
    """Prompt turning vision labels into plausible flame metrics."""
    label_context = ", ".join(vision_labels)
    return (
        "As a cement plant operations expert, analyze the following flame "
        f'characteristics detected from an image: "{label_context}". Based on these '
        "labels, generate a plausible set of at least 10 operational metrics.\n\n"
        "Return the data as a single, minified JSON object. Do not include any text "
        "or markdown formatting before or after the JSON object.\n\n"
        "Example JSON structure:\n"
        '{"flameTemp":1850,"coreBrightness":0.9,"thermalUniformity":92,'
        '"turbulenceIndex":0.3,"fuelAirBalance":"OK","volatileBurningEfficiency":94,'
        '"combustionHealthScore":89,"efficiencyScore":91,"riskLevel":0.1,'
        '"flameLength_m":5.5,"noxPpm":210,"so2Ppm":150}\n\n'
        f'Based on the labels "{label_context}", generate the JSON object:'
    )


def build_kiln_analysis_prompt(summary: VisionSummary) -> str:
    """Prompt for a combustion analysis from burner-camera vision indicators."""
    labels = ", ".join(summary.labels) or "N/A"
    objects = ", ".join(summary.objects) or "N/A"
    colors = " | ".join(summary.dominant_colors) or "N/A"
    return (
        "You are a senior cement plant lime kiln / rotary cement kiln combustion "
        "and pyro-processing expert.\n\n"
        "A kiln flame image has been analyzed using computer vision. The extracted "
        "visual indicators are:\n\n"
        f"• Visual Labels: {labels}\n"
        f"• Detected Flame Objects: {objects}\n"
        f"• Dominant Flame Colors & Intensity Distribution: {colors}\n"
        f"• Smoke / Obscuration Likelihood: {summary.smoke_likelihood}\n\n"
        "Interpret these indicators as they would appear on a real cement plant "
        "burner camera and infer the current kiln combustion condition.\n\n"
        "Generate:\n"
        "1) A realistic kiln flame and combustion analysis\n"
        "2) Key operational performance metrics\n"
        "3) Actionable operator recommendations\n\n"
        "Rules:\n"
        "- Assume coal/petcoke firing with a calciner\n"
        "- Align values with cement industry operating ranges\n"
        "- Flame instability, uneven color distribution, or smoke implies efficiency "
        "loss and emissions risk\n"
        "- Stable bright flame implies efficient heat transfer\n\n"
        "Return ONLY a single, minified JSON object with NO additional text.\n\n"
        "The JSON MUST contain:\n\n"
        '{"kilnOperatingState": "string", "flameTemperature_C": "number", '
        '"flameLength_m": "number", "flameStabilityIndex": "number", '
        '"thermalUniformity_percent": "number", "combustionEfficiency_percent": "number", '
        '"kilnHeatEfficiency_percent": "number", '
        '"specificHeatConsumption_kCalPerKgClinker": "number", "co_ppm": "number", '
        '"nox_ppm": "number", "so2_ppm": "number", "combustionHealthScore": "number", '
        '"operationalRiskLevel": "number", "primaryConcern": "string", '
        '"recommendedOperatorAction": "string"}\n\n'
        "Constraints:\n"
        "- flameTemperature_C: 1600–2000\n"
        "- specificHeatConsumption_kCalPerKgClinker: 650–900\n"
        "- percentages: 0–100\n"
        "- operationalRiskLevel: 0 (low) → 1 (high)\n\n"
        "Now generate the JSON based on the above vision indicators.\n"
    )


def build_goal_proposal_prompt(goal: str, latest: TelemetrySnapshot) -> str:
    """Prompt for a single goal-driven proposal on the latest reading."""
    return (
        f'As an AI agent with the goal to "{goal}", analyze the following telemetry '
        "data and generate a single, specific, and actionable optimization proposal.\n"
        f"{_format_latest(latest)}\n"
        "Return the data as a single, minified JSON object that matches the Proposal "
        "interface. Do not include any text or markdown formatting before or after "
        "the JSON object.\n\n"
        "Example JSON structure:\n"
        '{"action":"Slightly reduce Mill Power by 20 kW","rationale":"The current mill '
        'power is slightly high for the throughput, leading to excess energy '
        'consumption.","risk_level":"low","confidence":0.95,'
        '"expected_energy_delta_kwh_ton":-1.5,"quality_impact":"negligible",'
        '"safety_gate_decision":"approved"}\n\n'
        "Based on the goal and data, generate the JSON object:"
    )


CHAT_ACKNOWLEDGEMENT = (
    "Understood. I am an AI operations assistant for cement plants. I will use the "
    "live telemetry data you provided to answer your questions. How can I help you?"
)


def build_chat_system_prompt(latest: TelemetrySnapshot | None) -> str:
    """Context turn for the operations chat, with live telemetry when known."""
    prompt = (
        "You are an expert in cement plant operations. You are an AI operations "
        "assistant. You can help users understand plant performance, explain "
        "optimization decisions, and answer questions about cement manufacturing "
        "processes. Be concise and clear in your answers."
    )
    if latest is not None:
        prompt += (
            "\n\nHere is the latest live telemetry data from the plant for your "
            f"context:\n{_format_latest(latest)}"
        )
    return prompt
