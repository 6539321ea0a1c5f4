"""Pending proposals and the operator history log.

The pipeline core never persists proposals; the service keeps them here so
an operator can approve or reject each one. Both lists are newest first and
bounded.

Proposals the safety gate approved are logged once, when the assembler
reports them; approving one afterwards removes it from the pending list
without logging it again. Proposals the gate rejected cannot be approved.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from cement_ops.advisory.assembler import format_energy_delta
from cement_ops.advisory.schemas import HistoryEntry, Proposal
from cement_ops.core.constants import HISTORY_TIME_FORMAT
from cement_ops.core.exceptions import ProposalNotFoundError, ProposalRejectedError
from cement_ops.core.logging import get_logger


if TYPE_CHECKING:
    from collections.abc import Callable


logger = get_logger(__name__)


class ProposalRegistry:
    """In-memory proposal list with operator decisions.

    Example:
        registry = ProposalRegistry()
        assembler = ProposalAssembler(
            on_proposal_generated=registry.add,
            on_analysis_complete=registry.record_gate_approval,
        )
    """

    def __init__(
        self,
        max_pending: int = 100,
        max_history: int = 100,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._proposals: list[Proposal] = []
        self._history: list[HistoryEntry] = []
        self._gate_entries: dict[str, HistoryEntry] = {}
        self._max_pending = max_pending
        self._max_history = max_history
        self._clock = clock or (lambda: datetime.now(UTC))

    def add(self, proposal: Proposal) -> None:
        self._proposals.insert(0, proposal)
        for dropped in self._proposals[self._max_pending:]:
            self._gate_entries.pop(dropped.id, None)
            logger.debug("Pending proposal dropped", proposal_id=dropped.id)
        del self._proposals[self._max_pending:]

    def record_gate_approval(self, entry: HistoryEntry) -> None:
        """Log the success entry of a gate-approved proposal.

        The assembler reports the approval right after adding the proposal,
        so the entry belongs to the newest pending proposal.
        """
        self.add_history_entry(entry)
        if self._proposals:
            self._gate_entries[self._proposals[0].id] = entry

    def pending(self) -> list[Proposal]:
        return list(self._proposals)

    def get(self, proposal_id: str) -> Proposal:
        for proposal in self._proposals:
            if proposal.id == proposal_id:
                return proposal
        raise ProposalNotFoundError(proposal_id)

    def approve(self, proposal_id: str) -> HistoryEntry:
        """Apply a pending proposal.

        Raises:
            ProposalNotFoundError: If the id is not pending
            ProposalRejectedError: If the safety gate rejected the proposal
        """
        proposal = self.get(proposal_id)
        if proposal.safety_gate_decision == "rejected":
            raise ProposalRejectedError(proposal_id)
        self._proposals.remove(proposal)

        logged = self._gate_entries.pop(proposal_id, None)
        if logged is not None:
            logger.info("Proposal approved by operator", proposal_id=proposal_id, already_logged=True)
            return logged

        entry = HistoryEntry(
            time=self._now(),
            action=proposal.action,
            result=format_energy_delta(proposal.expected_energy_delta_kwh_ton),
            status="success",
        )
        self.add_history_entry(entry)
        logger.info("Proposal approved by operator", proposal_id=proposal_id)
        return entry

    def reject(self, proposal_id: str) -> HistoryEntry:
        """Discard a pending proposal and log the rejection."""
        proposal = self._pop(proposal_id)
        self._gate_entries.pop(proposal_id, None)
        entry = HistoryEntry(
            time=self._now(),
            action=proposal.action,
            result="Rejected by operator",
            status="rejected",
        )
        self.add_history_entry(entry)
        logger.info("Proposal rejected by operator", proposal_id=proposal_id)
        return entry

    def add_history_entry(self, entry: HistoryEntry) -> None:
        self._history.insert(0, entry)
        del self._history[self._max_history:]

    def history(self) -> list[HistoryEntry]:
        return list(self._history)

    def _pop(self, proposal_id: str) -> Proposal:
        proposal = self.get(proposal_id)
        self._proposals.remove(proposal)
        return proposal

    def _now(self) -> str:
        return self._clock().astimezone().strftime(HISTORY_TIME_FORMAT)
