"""CSV export loader used when the telemetry store has too little history.

The export has a header row; numeric columns are parsed as floats (blank
becomes 0.0) and the fuel_mix column holds a JSON array. Quoted fields with
doubled-quote escapes are handled by the csv module.
"""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from cement_ops.core.constants import NUMERIC_TELEMETRY_FIELDS
from cement_ops.core.logging import get_logger
from cement_ops.telemetry.models import TelemetrySnapshot


logger = get_logger(__name__)


def _parse_float(value: str) -> float:
    try:
        return float(value) if value.strip() else 0.0
    except ValueError:
        return 0.0


def _parse_fuel_mix(value: str) -> list[dict[str, Any]]:
    if not value.strip():
        return []
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        logger.warning("Failed to parse fuel_mix", value=value)
        return []
    return parsed if isinstance(parsed, list) else []


def _convert_row(row: dict[str, str]) -> dict[str, Any]:
    converted: dict[str, Any] = {}
    for header, raw_value in row.items():
        if header is None:
            continue
        value = raw_value or ""
        if header in NUMERIC_TELEMETRY_FIELDS:
            converted[header] = _parse_float(value)
        elif header == "fuel_mix":
            converted[header] = _parse_fuel_mix(value)
        elif value:
            converted[header] = value
    return converted


def parse_csv_text(text: str) -> list[TelemetrySnapshot]:
    """Parse CSV export text into snapshots, preserving row order.

    Rows that cannot form a snapshot (e.g. missing timestamp) are skipped.
    """
    reader = csv.DictReader(io.StringIO(text.strip()))
    snapshots: list[TelemetrySnapshot] = []
    for line_number, row in enumerate(reader, start=2):
        try:
            snapshots.append(TelemetrySnapshot.model_validate(_convert_row(row)))
        except ValidationError as exc:
            logger.warning("Skipping invalid CSV row", line=line_number, errors=exc.error_count())
    return snapshots


def load_csv_snapshots(path: str | Path) -> list[TelemetrySnapshot]:
    """Load snapshots from a CSV export file.

    Returns:
        Snapshots in file order, or an empty list when the file is unreadable
    """
    csv_path = Path(path)
    try:
        text = csv_path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("Error loading CSV data", path=str(csv_path), error=str(exc))
        return []
    return parse_csv_text(text)
