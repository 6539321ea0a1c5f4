"""Data contracts for the proposal pipeline.

Stage output shapes, decode results, pipeline steps, the final Proposal and
the operator HistoryEntry. No business logic lives here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================

class StepStatus(str, Enum):
    """Status of one pipeline step."""

    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"


class PipelineState(str, Enum):
    """States of one pipeline run, in transition order."""

    IDLE = "idle"
    TELEMETRY_FAN_OUT = "telemetry_fan_out"
    TELEMETRY_MERGE = "telemetry_merge"
    OPTIMIZATION = "optimization"
    SAFETY = "safety"
    COMPLETE = "complete"


QualityImpact = Literal["negligible", "minor", "significant"]
RiskLevel = Literal["low", "medium", "high"]
SafetyDecision = Literal["approved", "escalated", "rejected"]


# =============================================================================
# Stage Output Schemas
# =============================================================================

class AgentFindings(BaseModel):
    """Output of the telemetry sub-agents and the super-agent."""

    model_config = ConfigDict(extra="allow")

    issues: list[str]
    observations: list[str]


class OptimizationOutput(BaseModel):
    """Output of the optimization agent."""

    model_config = ConfigDict(extra="allow")

    action: str
    expected_energy_delta_kwh_ton: float
    confidence: float = Field(..., ge=0.0, le=1.0)
    quality_impact: QualityImpact


class SafetyOutput(BaseModel):
    """Output of the safety gate."""

    model_config = ConfigDict(extra="allow")

    risk_level: RiskLevel
    decision: SafetyDecision
    reason: str


# =============================================================================
# Decode Results
# =============================================================================

@dataclass(frozen=True)
class ParseError:
    """Model text that is empty or not valid JSON.

    Parse failures are data: a ParseError is stored as the stage output and
    forwarded to the next stage's prompt unchanged.
    """

    error: str
    raw: str | None

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error, "raw": self.raw}


@dataclass(frozen=True)
class StageOk:
    """Parsed output that matches the stage schema."""

    value: BaseModel
    data: Any


@dataclass(frozen=True)
class SchemaError:
    """Parsed JSON that does not match the stage schema."""

    errors: list[str]
    data: Any


# Either the parsed JSON value or a ParseError
AgentResult = Union[Any, ParseError]
DecodedOutput = Union[StageOk, SchemaError, ParseError]


def result_to_jsonable(result: AgentResult) -> Any:
    """Render an AgentResult for prompt inclusion or API output."""
    if isinstance(result, ParseError):
        return result.to_dict()
    return result


# =============================================================================
# Pipeline Step / Proposal / History
# =============================================================================

class PipelineStep(BaseModel):
    """Observable progress record of one stage."""

    agent_name: str
    stage: str
    parent: str | None = None
    status: StepStatus = StepStatus.PENDING
    output: Any | None = None
    schema_errors: list[str] = Field(default_factory=list)


class Proposal(BaseModel):
    """Terminal artifact of one pipeline run.

    Missing fields in the model's output surface as None; any additional
    fields returned by the optimization or safety stage are kept.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str
    timestamp: datetime
    action: str | None = None
    expected_energy_delta_kwh_ton: float | None = None
    confidence: float | None = None
    quality_impact: str | None = None
    risk_level: str | None = None
    rationale: str | None = None
    safety_gate_decision: SafetyDecision | None = None


class HistoryEntry(BaseModel):
    """Operator-visible log line for an applied optimization."""

    model_config = ConfigDict(frozen=True)

    time: str
    action: str | None
    result: str
    status: Literal["success", "rejected"]


# =============================================================================
# Run Outcome
# =============================================================================

@dataclass
class RunSucceeded:
    """Pipeline run that reached the Complete state."""

    run_id: str
    proposal: Proposal
    steps: list[PipelineStep] = field(default_factory=list)


@dataclass
class RunFailed:
    """Pipeline run terminated by a transport failure."""

    run_id: str
    stage: str
    error: str
    steps: list[PipelineStep] = field(default_factory=list)


RunOutcome = Union[RunSucceeded, RunFailed]
