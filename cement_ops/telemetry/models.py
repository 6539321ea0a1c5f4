"""Telemetry data contracts.

A TelemetrySnapshot is one timestamped reading of plant sensor values. It is
immutable once received; unknown readings sent by the producer are kept as
extra fields so nothing the plant reports is dropped from prompts.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TelemetrySnapshot(BaseModel):
    """One reading of kiln, mill and energy sensors."""

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str | None = Field(default=None, description="Store document id")
    timestamp: str = Field(..., description="Reading time (ISO 8601)")
    mill_power_kw: float = Field(..., description="Raw/cement mill power draw")
    mill_throughput_tph: float = Field(..., description="Mill throughput in t/h")
    separator_efficiency: float = Field(..., description="Separator efficiency (0..1)")
    kiln_temp_c: float = Field(..., description="Kiln burning zone temperature")
    energy_per_ton_kwh: float = Field(..., description="Specific energy in kWh/ton")
    thermal_substitution_rate: float = Field(
        ...,
        description="Share of alternative fuels in percent",
    )
    cooler_fan_rpm: float | None = None
    raw_caO: float | None = None
    raw_siO2: float | None = None
    raw_al2O3: float | None = None
    raw_fe2O3: float | None = None
    raw_moisture: float | None = None
    clinker_temp_c: float | None = None
    fuel_mix: list[dict[str, Any]] = Field(default_factory=list)

    def to_prompt_dict(self) -> dict[str, Any]:
        """Serialize for prompt inclusion, dropping unset optional readings."""
        return self.model_dump(mode="json", exclude_none=True)
