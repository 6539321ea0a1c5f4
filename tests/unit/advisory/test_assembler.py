"""Unit tests for the proposal assembler."""

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from cement_ops.advisory.assembler import ProposalAssembler, format_energy_delta
from cement_ops.advisory.schemas import HistoryEntry, ParseError


OPTIMIZATION = {
    "action": "Reduce kiln fuel by 2%",
    "expected_energy_delta_kwh_ton": -1.5,
    "confidence": 0.82,
    "quality_impact": "negligible",
}
APPROVED = {"risk_level": "low", "decision": "approved", "reason": "Within limits"}
FIXED_NOW = datetime(2024, 5, 1, 10, 30, 15, tzinfo=UTC)


@pytest.fixture
def callbacks() -> tuple[MagicMock, MagicMock]:
    return MagicMock(), MagicMock()


@pytest.fixture
def assembler(callbacks) -> ProposalAssembler:
    on_proposal, on_complete = callbacks
    return ProposalAssembler(
        on_proposal_generated=on_proposal,
        on_analysis_complete=on_complete,
        clock=lambda: FIXED_NOW,
    )


class TestAssemble:
    def test_merges_optimization_and_safety(self, assembler) -> None:
        proposal = assembler.assemble(OPTIMIZATION, APPROVED)

        assert proposal.action == "Reduce kiln fuel by 2%"
        assert proposal.expected_energy_delta_kwh_ton == -1.5
        assert proposal.confidence == 0.82
        assert proposal.quality_impact == "negligible"
        assert proposal.risk_level == "low"
        assert proposal.rationale == "Within limits"
        assert proposal.safety_gate_decision == "approved"
        assert proposal.timestamp == FIXED_NOW

    def test_ids_are_unique(self, assembler) -> None:
        first = assembler.assemble(OPTIMIZATION, APPROVED)
        second = assembler.assemble(OPTIMIZATION, APPROVED)

        assert first.id != second.id

    def test_safety_wins_on_collision(self, assembler) -> None:
        safety = {**APPROVED, "action": "Hold current settings"}

        proposal = assembler.assemble(OPTIMIZATION, safety)

        assert proposal.action == "Hold current settings"

    def test_extra_fields_are_kept(self, assembler) -> None:
        proposal = assembler.assemble({**OPTIMIZATION, "target": "kiln"}, APPROVED)

        assert proposal.model_dump()["target"] == "kiln"

    def test_missing_fields_are_none(self, assembler) -> None:
        proposal = assembler.assemble({}, APPROVED)

        assert proposal.action is None
        assert proposal.expected_energy_delta_kwh_ton is None


class TestCallbacks:
    def test_approved_fires_both_callbacks(self, assembler, callbacks) -> None:
        on_proposal, on_complete = callbacks

        proposal = assembler.assemble(OPTIMIZATION, APPROVED)

        on_proposal.assert_called_once_with(proposal)
        entry = on_complete.call_args.args[0]
        assert isinstance(entry, HistoryEntry)
        assert entry.action == "Reduce kiln fuel by 2%"
        assert entry.result == "-1.5 kWh/ton"
        assert entry.status == "success"
        assert entry.time == FIXED_NOW.astimezone().strftime("%H:%M:%S")

    @pytest.mark.parametrize("decision", ["escalated", "rejected"])
    def test_non_approved_skips_history(self, assembler, callbacks, decision) -> None:
        on_proposal, on_complete = callbacks

        assembler.assemble(OPTIMIZATION, {**APPROVED, "decision": decision})

        on_proposal.assert_called_once()
        on_complete.assert_not_called()


class TestSafetyFailureHandling:
    def test_fail_closed_escalates_parse_error(self, assembler, callbacks) -> None:
        _, on_complete = callbacks
        safety = ParseError(error="Invalid JSON returned by agent", raw="{oops")

        proposal = assembler.assemble(OPTIMIZATION, safety)

        assert proposal.safety_gate_decision == "escalated"
        assert "Invalid JSON returned by agent" in proposal.rationale
        on_complete.assert_not_called()

    def test_fail_closed_escalates_unknown_decision(self, assembler) -> None:
        proposal = assembler.assemble(OPTIMIZATION, {**APPROVED, "decision": "maybe"})

        assert proposal.safety_gate_decision == "escalated"

    def test_fail_open_leaves_decision_empty(self, callbacks) -> None:
        on_proposal, on_complete = callbacks
        assembler = ProposalAssembler(
            on_proposal_generated=on_proposal,
            on_analysis_complete=on_complete,
            fail_closed=False,
        )

        proposal = assembler.assemble(OPTIMIZATION, ParseError(error="Empty response from agent", raw=""))

        assert proposal.safety_gate_decision is None
        assert proposal.rationale is None
        on_proposal.assert_called_once_with(proposal)
        on_complete.assert_not_called()


class TestFormatEnergyDelta:
    def test_formats_one_decimal(self) -> None:
        assert format_energy_delta(-2.345) == "-2.3 kWh/ton"

    def test_missing_delta(self) -> None:
        assert format_energy_delta(None) == "n/a"
