"""Unit tests for the proposal registry."""

from datetime import UTC, datetime

import pytest

from cement_ops.advisory.registry import ProposalRegistry
from cement_ops.advisory.schemas import HistoryEntry, Proposal
from cement_ops.core.exceptions import ProposalNotFoundError, ProposalRejectedError


FIXED_NOW = datetime(2024, 5, 1, 8, 15, 0, tzinfo=UTC)


def make_proposal(
    proposal_id: str,
    delta: float | None = -2.0,
    decision: str | None = "escalated",
) -> Proposal:
    return Proposal(
        id=proposal_id,
        timestamp=FIXED_NOW,
        action=f"Action {proposal_id}",
        expected_energy_delta_kwh_ton=delta,
        safety_gate_decision=decision,
    )


@pytest.fixture
def registry() -> ProposalRegistry:
    return ProposalRegistry(clock=lambda: FIXED_NOW)


class TestPending:
    def test_newest_first(self, registry) -> None:
        registry.add(make_proposal("a"))
        registry.add(make_proposal("b"))

        assert [p.id for p in registry.pending()] == ["b", "a"]

    def test_get_unknown_raises(self, registry) -> None:
        with pytest.raises(ProposalNotFoundError):
            registry.get("missing")


class TestDecisions:
    def test_approve_removes_and_logs_success(self, registry) -> None:
        registry.add(make_proposal("a"))

        entry = registry.approve("a")

        assert registry.pending() == []
        assert entry.status == "success"
        assert entry.result == "-2.0 kWh/ton"
        assert entry.time == FIXED_NOW.astimezone().strftime("%H:%M:%S")
        assert registry.history() == [entry]

    def test_reject_removes_and_logs_rejection(self, registry) -> None:
        registry.add(make_proposal("a"))

        entry = registry.reject("a")

        assert registry.pending() == []
        assert entry.status == "rejected"
        assert entry.action == "Action a"

    def test_gate_rejected_proposal_cannot_be_approved(self, registry) -> None:
        registry.add(make_proposal("a", decision="rejected"))

        with pytest.raises(ProposalRejectedError):
            registry.approve("a")

        assert [p.id for p in registry.pending()] == ["a"]
        assert registry.history() == []

    def test_gate_rejected_proposal_can_be_discarded(self, registry) -> None:
        registry.add(make_proposal("a", decision="rejected"))

        entry = registry.reject("a")

        assert entry.status == "rejected"
        assert registry.pending() == []

    def test_gate_approved_proposal_logged_once(self, registry) -> None:
        gate_entry = HistoryEntry(time="08:15:00", action="Action a", result="-2.0 kWh/ton", status="success")
        registry.add(make_proposal("a", decision="approved"))
        registry.record_gate_approval(gate_entry)

        entry = registry.approve("a")

        assert entry == gate_entry
        assert registry.pending() == []
        assert registry.history() == [gate_entry]

    def test_gate_entry_belongs_to_newest_proposal(self, registry) -> None:
        registry.add(make_proposal("a", decision="escalated"))
        registry.add(make_proposal("b", decision="approved"))
        registry.record_gate_approval(
            HistoryEntry(time="08:15:00", action="Action b", result="-2.0 kWh/ton", status="success")
        )

        registry.approve("a")

        assert len(registry.history()) == 2

    def test_decision_on_unknown_raises(self, registry) -> None:
        with pytest.raises(ProposalNotFoundError):
            registry.approve("missing")
        with pytest.raises(ProposalNotFoundError):
            registry.reject("missing")


class TestHistory:
    def test_newest_first_and_bounded(self) -> None:
        registry = ProposalRegistry(max_history=2)
        entries = [
            HistoryEntry(time=f"10:00:0{i}", action=f"a{i}", result="n/a", status="success")
            for i in range(3)
        ]

        for entry in entries:
            registry.add_history_entry(entry)

        assert registry.history() == [entries[2], entries[1]]


class TestPendingBound:
    def test_oldest_pending_dropped(self) -> None:
        registry = ProposalRegistry(max_pending=2)

        for proposal_id in ("a", "b", "c"):
            registry.add(make_proposal(proposal_id))

        assert [p.id for p in registry.pending()] == ["c", "b"]
        with pytest.raises(ProposalNotFoundError):
            registry.approve("a")
