"""Telemetry store contract and in-memory implementation.

The production store is a managed document database; the service only
depends on the three operations of TelemetryStoreProtocol. The in-memory
store backs local runs and tests.

Pattern: Protocol duck typing (real and in-memory stores are interchangeable)
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from cement_ops.core.logging import get_logger


if TYPE_CHECKING:
    from collections.abc import Callable

    from cement_ops.telemetry.models import TelemetrySnapshot


logger = get_logger(__name__)


@runtime_checkable
class TelemetryStoreProtocol(Protocol):
    """Read/write/subscribe contract of the telemetry store."""

    async def get_history(self, limit: int | None = None) -> list[TelemetrySnapshot]:
        """Return stored snapshots, newest first.

        Args:
            limit: Maximum number of snapshots, None for all

        Raises:
            TelemetryStoreError: When the store cannot be read
        """
        ...

    async def append(self, snapshot: TelemetrySnapshot) -> str:
        """Store a snapshot and return its document id."""
        ...

    def on_latest_update(
        self, callback: Callable[[TelemetrySnapshot | None], None]
    ) -> Callable[[], None]:
        """Subscribe to the latest snapshot; returns an unsubscribe function."""
        ...


class InMemoryTelemetryStore:
    """Process-local telemetry store.

    Subscribers are called once on subscription with the current latest
    snapshot (or None when empty), then after every append.
    """

    def __init__(self) -> None:
        self._documents: list[TelemetrySnapshot] = []
        self._subscribers: list[Callable[[TelemetrySnapshot | None], None]] = []

    async def get_history(self, limit: int | None = None) -> list[TelemetrySnapshot]:
        newest_first = list(reversed(self._documents))
        return newest_first if limit is None else newest_first[:limit]

    async def append(self, snapshot: TelemetrySnapshot) -> str:
        document_id = snapshot.id or uuid.uuid4().hex
        stored = snapshot.model_copy(update={"id": document_id})
        self._documents.append(stored)
        logger.debug("Telemetry appended", document_id=document_id, total=len(self._documents))
        self._notify(stored)
        return document_id

    def on_latest_update(
        self, callback: Callable[[TelemetrySnapshot | None], None]
    ) -> Callable[[], None]:
        self._subscribers.append(callback)
        callback(self._documents[-1] if self._documents else None)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, latest: TelemetrySnapshot) -> None:
        for callback in list(self._subscribers):
            callback(latest)

    def __len__(self) -> int:
        return len(self._documents)
