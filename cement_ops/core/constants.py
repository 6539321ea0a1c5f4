"""Pipeline stage identifiers and shared constant values."""

from enum import Enum


# =============================================================================
# Pipeline Stages
# =============================================================================

class StageName(str, Enum):
    """Identifiers of every stage in the proposal pipeline."""

    KILN = "kiln"
    RAW_MILL = "rawMill"
    CEMENT_MILL = "cementMill"
    ENERGY = "energy"
    TELEMETRY_SUPER = "telemetrySuper"
    OPTIMIZATION = "optimization"
    SAFETY = "safety"


# Fan-out order of the telemetry sub-agents; the super-agent input array is
# always assembled in this order.
SUB_AGENT_CATALOGUE: tuple[StageName, ...] = (
    StageName.KILN,
    StageName.RAW_MILL,
    StageName.CEMENT_MILL,
    StageName.ENERGY,
)

AGENT_DISPLAY_NAMES: dict[StageName, str] = {
    StageName.KILN: "Kiln Agent",
    StageName.RAW_MILL: "Raw Mill Agent",
    StageName.CEMENT_MILL: "Cement Mill Agent",
    StageName.ENERGY: "Energy Agent",
    StageName.TELEMETRY_SUPER: "Telemetry Super Agent",
    StageName.OPTIMIZATION: "Optimization Agent",
    StageName.SAFETY: "Safety Gate Agent",
}

TELEMETRY_PARENT = "telemetry"


# =============================================================================
# Parser Messages
# =============================================================================

EMPTY_RESPONSE_ERROR = "Empty response from agent"
INVALID_JSON_ERROR = "Invalid JSON returned by agent"


# =============================================================================
# Telemetry
# =============================================================================

NUMERIC_TELEMETRY_FIELDS: tuple[str, ...] = (
    "mill_power_kw",
    "mill_throughput_tph",
    "separator_efficiency",
    "kiln_temp_c",
    "cooler_fan_rpm",
    "raw_caO",
    "raw_siO2",
    "raw_al2O3",
    "raw_fe2O3",
    "raw_moisture",
    "clinker_temp_c",
    "energy_per_ton_kwh",
    "thermal_substitution_rate",
)

HISTORY_TIME_FORMAT = "%H:%M:%S"
