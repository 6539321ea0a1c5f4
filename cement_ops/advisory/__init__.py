"""Advisory package - multi-agent proposal pipeline and single-shot advisor.

Exports:
    - ProposalPipeline, PipelineConfig: Stage runner
    - ProposalAssembler: Final Proposal construction
    - ProposalRegistry: Pending proposals and operator history
    - PlantAdvisor, RecommendationCache: Single-shot advisory calls
    - parse_agent_response, decode_stage_output: Response parser
"""

from cement_ops.advisory.advisor import (
    FlameAnalysis,
    FlameImageAnalysis,
    KilnAnalysis,
    PlantAdvisor,
    RecommendationCache,
)
from cement_ops.advisory.assembler import ProposalAssembler
from cement_ops.advisory.parser import decode_stage_output, parse_agent_response
from cement_ops.advisory.registry import ProposalRegistry
from cement_ops.advisory.retry import RetryConfig, call_with_retry
from cement_ops.advisory.runner import PipelineConfig, ProposalPipeline
from cement_ops.advisory.schemas import (
    HistoryEntry,
    ParseError,
    PipelineState,
    PipelineStep,
    Proposal,
    RunFailed,
    RunOutcome,
    RunSucceeded,
    SchemaError,
    StageOk,
    StepStatus,
)


__all__ = [
    "FlameAnalysis",
    "FlameImageAnalysis",
    "HistoryEntry",
    "KilnAnalysis",
    "ParseError",
    "PipelineConfig",
    "PipelineState",
    "PipelineStep",
    "PlantAdvisor",
    "Proposal",
    "ProposalAssembler",
    "ProposalPipeline",
    "ProposalRegistry",
    "RecommendationCache",
    "RetryConfig",
    "RunFailed",
    "RunOutcome",
    "RunSucceeded",
    "SchemaError",
    "StageOk",
    "StepStatus",
    "call_with_retry",
    "decode_stage_output",
    "parse_agent_response",
]
