"""Initial history selection on service startup."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cement_ops.core.logging import get_logger
from cement_ops.telemetry.csv_loader import load_csv_snapshots


if TYPE_CHECKING:
    from cement_ops.core.config import Settings
    from cement_ops.telemetry.models import TelemetrySnapshot
    from cement_ops.telemetry.store import TelemetryStoreProtocol


logger = get_logger(__name__)


async def load_initial_history(
    store: TelemetryStoreProtocol,
    settings: Settings,
) -> list[TelemetrySnapshot]:
    """Pick the startup history, newest first.

    The store is preferred when it holds at least
    ``telemetry_min_store_records`` snapshots; otherwise (or when the store
    fails) the first ``telemetry_history_window`` rows of the CSV export are
    used.
    """
    try:
        stored = await store.get_history(settings.telemetry_store_fetch_limit)
    except Exception as exc:
        logger.error(
            "Error initializing telemetry from store",
            error=str(exc),
            error_type=type(exc).__name__,
        )
    else:
        if len(stored) >= settings.telemetry_min_store_records:
            logger.info("Telemetry history loaded from store", records=len(stored))
            return stored
        logger.info(
            "Insufficient stored telemetry, loading CSV fallback",
            records=len(stored),
            required=settings.telemetry_min_store_records,
        )

    csv_rows = load_csv_snapshots(settings.telemetry_csv_path)
    return csv_rows[: settings.telemetry_history_window]
