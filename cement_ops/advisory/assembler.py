"""Proposal assembler.

Merges the optimization and safety outputs into the final Proposal and
notifies the caller:

- ``on_proposal_generated(proposal)`` fires for every assembled proposal
- ``on_analysis_complete(entry)`` fires only when the safety gate approved

Safety gate outputs that cannot be decoded are handled per ``fail_closed``:
when enabled the proposal is escalated to an operator, otherwise the
decision is left empty.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, get_args

from cement_ops.advisory.schemas import (
    HistoryEntry,
    ParseError,
    Proposal,
    SafetyDecision,
)
from cement_ops.core.constants import HISTORY_TIME_FORMAT
from cement_ops.core.logging import get_logger


if TYPE_CHECKING:
    from collections.abc import Callable

    from cement_ops.advisory.schemas import AgentResult


logger = get_logger(__name__)

VALID_DECISIONS: frozenset[str] = frozenset(get_args(SafetyDecision))
FAIL_CLOSED_DECISION = "escalated"
PROPOSAL_FIELDS: frozenset[str] = frozenset(Proposal.model_fields)


def _as_mapping(result: AgentResult) -> dict[str, Any]:
    if isinstance(result, ParseError) or not isinstance(result, dict):
        return {}
    return result


def _coerce_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _coerce_str(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def format_energy_delta(value: float | None) -> str:
    """Render an energy delta for the operator history, e.g. ``-1.5 kWh/ton``."""
    if value is None:
        return "n/a"
    return f"{value:.1f} kWh/ton"


class ProposalAssembler:
    """Builds the Proposal from the last two stage outputs."""

    def __init__(
        self,
        on_proposal_generated: Callable[[Proposal], None] | None = None,
        on_analysis_complete: Callable[[HistoryEntry], None] | None = None,
        fail_closed: bool = True,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._on_proposal_generated = on_proposal_generated
        self._on_analysis_complete = on_analysis_complete
        self.fail_closed = fail_closed
        self._clock = clock or (lambda: datetime.now(UTC))

    def assemble(self, optimization: AgentResult, safety: AgentResult) -> Proposal:
        """Merge stage outputs into a Proposal and fire callbacks.

        Safety fields take precedence on key collisions.
        """
        optimization_data = _as_mapping(optimization)
        safety_data = _as_mapping(safety)
        merged = {**optimization_data, **safety_data}

        decision, rationale = self._resolve_decision(safety, safety_data)
        now = self._clock()

        extras = {key: value for key, value in merged.items() if key not in PROPOSAL_FIELDS}
        proposal = Proposal(
            **extras,
            id=str(uuid.uuid4()),
            timestamp=now,
            action=_coerce_str(merged.get("action")),
            expected_energy_delta_kwh_ton=_coerce_float(merged.get("expected_energy_delta_kwh_ton")),
            confidence=_coerce_float(merged.get("confidence")),
            quality_impact=_coerce_str(merged.get("quality_impact")),
            risk_level=_coerce_str(merged.get("risk_level")),
            rationale=rationale,
            safety_gate_decision=decision,
        )

        logger.info(
            "Proposal assembled",
            proposal_id=proposal.id,
            decision=proposal.safety_gate_decision,
        )

        if self._on_proposal_generated is not None:
            self._on_proposal_generated(proposal)

        if proposal.safety_gate_decision == "approved" and self._on_analysis_complete is not None:
            self._on_analysis_complete(self.history_entry_for(proposal, now))

        return proposal

    def _resolve_decision(
        self,
        safety: AgentResult,
        safety_data: dict[str, Any],
    ) -> tuple[Any, str | None]:
        decision = safety_data.get("decision")
        rationale = _coerce_str(safety_data.get("reason"))
        if decision in VALID_DECISIONS:
            return decision, rationale

        if not self.fail_closed:
            return None, rationale

        if isinstance(safety, ParseError):
            cause = safety.error
        else:
            cause = f"invalid decision {decision!r}"
        logger.warning("Safety gate output unusable, escalating", cause=cause)
        return FAIL_CLOSED_DECISION, f"Safety gate output could not be validated ({cause})"

    @staticmethod
    def history_entry_for(proposal: Proposal, when: datetime) -> HistoryEntry:
        """Operator history line for an approved proposal."""
        return HistoryEntry(
            time=when.astimezone().strftime(HISTORY_TIME_FORMAT),
            action=proposal.action,
            result=format_energy_delta(proposal.expected_energy_delta_kwh_ton),
            status="success",
        )
