"""Telemetry snapshots, bounded history, store contract and CSV fallback."""

from cement_ops.telemetry.bootstrap import load_initial_history
from cement_ops.telemetry.csv_loader import load_csv_snapshots, parse_csv_text
from cement_ops.telemetry.history import TelemetryHistory
from cement_ops.telemetry.models import TelemetrySnapshot
from cement_ops.telemetry.store import InMemoryTelemetryStore, TelemetryStoreProtocol


__all__ = [
    "InMemoryTelemetryStore",
    "TelemetryHistory",
    "TelemetrySnapshot",
    "TelemetryStoreProtocol",
    "load_csv_snapshots",
    "load_initial_history",
    "parse_csv_text",
]
