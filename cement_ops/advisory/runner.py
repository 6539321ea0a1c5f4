"""Multi-agent proposal pipeline.

Runs the fixed stage chain for one telemetry history:

    TelemetryFanOut  kiln, rawMill, cementMill, energy sub-agents
    TelemetryMerge   super-agent over the four outputs (catalogue order)
    Optimization     one actionable optimization
    Safety           approve / escalate / reject
    Complete         ProposalAssembler builds the Proposal

Each stage is Prompt Builder -> Model Gateway -> Response Parser. Parse and
schema failures become the stage output and flow downstream; transport
failures (after the retry budget) end the run with a RunFailed outcome.

A run is tracked by an explicit run id; requesting a second run while one
is active raises PipelineBusyError.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from cement_ops.advisory import prompts
from cement_ops.advisory.assembler import ProposalAssembler
from cement_ops.advisory.parser import decode_stage_output
from cement_ops.advisory.retry import RetryConfig, call_with_retry
from cement_ops.advisory.schemas import (
    ParseError,
    PipelineState,
    PipelineStep,
    RunFailed,
    RunSucceeded,
    SchemaError,
    StepStatus,
    result_to_jsonable,
)
from cement_ops.core.constants import (
    AGENT_DISPLAY_NAMES,
    SUB_AGENT_CATALOGUE,
    TELEMETRY_PARENT,
    StageName,
)
from cement_ops.core.exceptions import ModelTransportError, PipelineBusyError
from cement_ops.core.logging import get_logger


if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from cement_ops.advisory.schemas import AgentResult, DecodedOutput, RunOutcome
    from cement_ops.clients.protocols import ModelGatewayProtocol
    from cement_ops.core.config import Settings
    from cement_ops.telemetry.models import TelemetrySnapshot


logger = get_logger(__name__)


# =============================================================================
# Configuration
# =============================================================================

@dataclass(frozen=True)
class PipelineConfig:
    """Runtime options of the proposal pipeline.

    Attributes:
        retry: Default retry policy for every stage
        stage_retry: Per-stage overrides of ``retry``
        repair_stages: Stages that get one repair prompt after a ParseError
        parallel_fan_out: Gather the four sub-agent calls concurrently
        safety_fail_closed: Escalate when the safety output is unusable
    """

    retry: RetryConfig = field(default_factory=RetryConfig)
    stage_retry: dict[StageName, RetryConfig] = field(default_factory=dict)
    repair_stages: frozenset[StageName] = frozenset()
    parallel_fan_out: bool = True
    safety_fail_closed: bool = True

    def retry_for(self, stage: StageName) -> RetryConfig:
        return self.stage_retry.get(stage, self.retry)

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineConfig:
        return cls(
            retry=RetryConfig(
                max_retries=settings.pipeline_max_retries,
                backoff_factor=settings.pipeline_retry_backoff_factor,
                initial_delay=settings.pipeline_retry_initial_delay,
            ),
            repair_stages=frozenset(StageName) if settings.pipeline_repair_enabled else frozenset(),
            parallel_fan_out=settings.pipeline_parallel_fan_out,
            safety_fail_closed=settings.safety_fail_closed,
        )


# =============================================================================
# Proposal Pipeline
# =============================================================================

class ProposalPipeline:
    """Stage runner for the sub-agent -> super-agent -> optimization -> safety chain.

    Example:
        pipeline = ProposalPipeline(gateway, assembler=ProposalAssembler())
        outcome = await pipeline.run(history.snapshots())
        if isinstance(outcome, RunSucceeded):
            print(outcome.proposal.safety_gate_decision)
    """

    def __init__(
        self,
        gateway: ModelGatewayProtocol,
        config: PipelineConfig | None = None,
        assembler: ProposalAssembler | None = None,
    ) -> None:
        self._gateway = gateway
        self._config = config or PipelineConfig()
        self._assembler = assembler or ProposalAssembler(
            fail_closed=self._config.safety_fail_closed
        )
        self._observers: list[Callable[[PipelineStep], None]] = []
        self._steps: list[PipelineStep] = []
        self._state = PipelineState.IDLE
        self._active_run_id: str | None = None
        self.last_error: str | None = None

    # -------------------------------------------------------------------------
    # Observability
    # -------------------------------------------------------------------------

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def running(self) -> bool:
        return self._active_run_id is not None

    @property
    def active_run_id(self) -> str | None:
        return self._active_run_id

    @property
    def steps(self) -> list[PipelineStep]:
        """Snapshot of the current (or last) run's steps."""
        return [step.model_copy() for step in self._steps]

    def add_observer(self, observer: Callable[[PipelineStep], None]) -> Callable[[], None]:
        """Register a step observer; returns a function that removes it."""
        self._observers.append(observer)

        def remove() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return remove

    def _publish(self, step: PipelineStep) -> None:
        for observer in list(self._observers):
            observer(step.model_copy())

    def _start_step(self, stage: StageName, parent: str | None = None) -> PipelineStep:
        step = PipelineStep(
            agent_name=AGENT_DISPLAY_NAMES[stage],
            stage=stage.value,
            parent=parent,
            status=StepStatus.RUNNING,
        )
        self._steps.append(step)
        self._publish(step)
        return step

    def _finish_step(self, step: PipelineStep, decoded: DecodedOutput) -> AgentResult:
        output = self._output_of(decoded)
        step.output = result_to_jsonable(output)
        step.status = StepStatus.DONE
        if isinstance(decoded, SchemaError):
            step.schema_errors = list(decoded.errors)
            logger.warning("Stage output failed schema validation", stage=step.stage, errors=decoded.errors)
        elif isinstance(decoded, ParseError):
            logger.warning("Stage output is not valid JSON", stage=step.stage, error=decoded.error)
        self._publish(step)
        return output

    @staticmethod
    def _output_of(decoded: DecodedOutput) -> AgentResult:
        if isinstance(decoded, ParseError):
            return decoded
        return decoded.data

    def _enter(self, state: PipelineState) -> None:
        logger.debug("Pipeline state transition", run_id=self._active_run_id, state=state.value)
        self._state = state

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    async def run(self, history: Sequence[TelemetrySnapshot | dict[str, Any]]) -> RunOutcome:
        """Execute one full pipeline run.

        Args:
            history: Telemetry snapshots, most recent first

        Returns:
            RunSucceeded with the Proposal, or RunFailed on transport failure

        Raises:
            PipelineBusyError: When another run is in progress
        """
        if self._active_run_id is not None:
            raise PipelineBusyError(self._active_run_id)

        run_id = uuid.uuid4().hex
        self._active_run_id = run_id
        self._steps = []
        self.last_error = None
        logger.info("Pipeline run started", run_id=run_id, history_size=len(history))

        current_stage = StageName.KILN
        proposal = None
        try:
            self._enter(PipelineState.TELEMETRY_FAN_OUT)
            sub_outputs = await self._run_fan_out(history)

            current_stage = StageName.TELEMETRY_SUPER
            self._enter(PipelineState.TELEMETRY_MERGE)
            analysis = await self._run_stage(
                StageName.TELEMETRY_SUPER,
                prompts.build_super_agent_prompt(sub_outputs),
            )

            current_stage = StageName.OPTIMIZATION
            self._enter(PipelineState.OPTIMIZATION)
            optimization = await self._run_stage(
                StageName.OPTIMIZATION,
                prompts.build_optimization_prompt(analysis),
            )

            current_stage = StageName.SAFETY
            self._enter(PipelineState.SAFETY)
            safety = await self._run_stage(
                StageName.SAFETY,
                prompts.build_safety_prompt(optimization),
            )

            self._enter(PipelineState.COMPLETE)
            proposal = self._assembler.assemble(optimization, safety)
        except ModelTransportError as exc:
            failed_stage = exc.stage or current_stage.value
            self.last_error = exc.message
            logger.error("Pipeline run failed", run_id=run_id, stage=failed_stage, error=exc.message)
            return RunFailed(run_id=run_id, stage=failed_stage, error=exc.message, steps=self.steps)
        finally:
            self._active_run_id = None
            if proposal is None:
                self._state = PipelineState.IDLE

        logger.info("Pipeline run complete", run_id=run_id, decision=proposal.safety_gate_decision)
        return RunSucceeded(run_id=run_id, proposal=proposal, steps=self.steps)

    async def _run_fan_out(
        self, history: Sequence[TelemetrySnapshot | dict[str, Any]]
    ) -> list[Any]:
        """Run the four sub-agents; outputs are returned in catalogue order."""
        if self._config.parallel_fan_out:
            steps = [self._start_step(stage, TELEMETRY_PARENT) for stage in SUB_AGENT_CATALOGUE]
            tasks = [
                asyncio.ensure_future(
                    self._complete_stage(step, stage, prompts.build_sub_agent_prompt(stage, history))
                )
                for step, stage in zip(steps, SUB_AGENT_CATALOGUE)
            ]
            try:
                results = await asyncio.gather(*tasks)
            except (Exception, asyncio.CancelledError):
                # A failed sub-agent ends the run; stop its siblings
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        else:
            results = []
            for stage in SUB_AGENT_CATALOGUE:
                step = self._start_step(stage, TELEMETRY_PARENT)
                results.append(
                    await self._complete_stage(
                        step, stage, prompts.build_sub_agent_prompt(stage, history)
                    )
                )

        return [
            {"agent": AGENT_DISPLAY_NAMES[stage], **self._tagged(result)}
            for stage, result in zip(SUB_AGENT_CATALOGUE, results)
        ]

    @staticmethod
    def _tagged(result: AgentResult) -> dict[str, Any]:
        rendered = result_to_jsonable(result)
        return rendered if isinstance(rendered, dict) else {"output": rendered}

    async def _run_stage(self, stage: StageName, prompt: str) -> AgentResult:
        step = self._start_step(stage)
        return await self._complete_stage(step, stage, prompt)

    async def _complete_stage(
        self, step: PipelineStep, stage: StageName, prompt: str
    ) -> AgentResult:
        text = await self._generate(stage, prompt)
        decoded = decode_stage_output(stage, text)

        if isinstance(decoded, ParseError) and stage in self._config.repair_stages:
            logger.info("Sending repair prompt", stage=stage.value)
            repaired_text = await self._generate(stage, prompts.build_repair_prompt(stage, text))
            repaired = decode_stage_output(stage, repaired_text)
            if not isinstance(repaired, ParseError):
                decoded = repaired

        return self._finish_step(step, decoded)

    async def _generate(self, stage: StageName, prompt: str) -> str:
        return await call_with_retry(
            lambda: self._gateway.generate(prompt),
            self._config.retry_for(stage),
            stage=stage.value,
        )
