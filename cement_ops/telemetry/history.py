"""Bounded, most-recent-first telemetry history."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Iterable

    from cement_ops.telemetry.models import TelemetrySnapshot


class TelemetryHistory:
    """Fixed-size window of snapshots, newest first.

    Used for trend display and as the input of every telemetry sub-agent
    prompt. Pushing past the window drops the oldest snapshot.

    Example:
        history = TelemetryHistory(window=20)
        history.push(snapshot)
        history.latest  # -> snapshot
    """

    def __init__(self, window: int = 20) -> None:
        if window < 1:
            raise ValueError("History window must be at least 1")
        self._window = window
        self._items: deque[TelemetrySnapshot] = deque(maxlen=window)

    @property
    def window(self) -> int:
        return self._window

    @property
    def latest(self) -> TelemetrySnapshot | None:
        return self._items[0] if self._items else None

    def push(self, snapshot: TelemetrySnapshot) -> None:
        """Record a new snapshot as the most recent entry."""
        self._items.appendleft(snapshot)

    def record_latest(self, snapshot: TelemetrySnapshot | None) -> bool:
        """Push a store update unless it is already the newest entry.

        Returns:
            True if the snapshot was added
        """
        if snapshot is None:
            return False
        current = self.latest
        if current is not None and snapshot.id is not None and current.id == snapshot.id:
            return False
        self.push(snapshot)
        return True

    def replace(self, snapshots: Iterable[TelemetrySnapshot]) -> None:
        """Replace the window with snapshots given newest first."""
        self._items.clear()
        for snapshot in snapshots:
            if len(self._items) == self._window:
                break
            self._items.append(snapshot)

    def snapshots(self, limit: int | None = None) -> list[TelemetrySnapshot]:
        items = list(self._items)
        return items if limit is None else items[:limit]

    def __len__(self) -> int:
        return len(self._items)
